"""Configuration package for the meldoc installer."""

from .exceptions import ConfigurationError
from .settings import InstallerSettings, InstallOptions, load_settings

__all__ = [
    "ConfigurationError",
    "InstallerSettings",
    "InstallOptions",
    "load_settings",
]
