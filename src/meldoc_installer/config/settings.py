"""Installer configuration settings."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class InstallerSettings(BaseSettings):
    """Where the meldoc CLI comes from and how it is fetched.

    Every field can be overridden with a ``MELDOC_``-prefixed environment
    variable, e.g. ``MELDOC_INSTALL_DIR`` or ``MELDOC_VERSION_SOURCE``.
    """

    tool_name: str = Field(default="meldoc", description="Name of the binary")
    github_repo: str = Field(
        default="meldoc-io/meldoc-cli", description="GitHub repository (owner/repo)"
    )
    github_url: str = Field(
        default="https://github.com", description="GitHub web base URL"
    )
    github_api_url: str = Field(
        default="https://api.github.com", description="GitHub API base URL"
    )
    version_source: Literal["github", "static"] = Field(
        default="github",
        description="Resolve 'latest' via the releases API or a static LATEST file",
    )
    latest_url: Optional[str] = Field(
        default=None, description="Static LATEST pointer URL"
    )
    github_token: Optional[str] = Field(
        default=None, description="Token sent to the GitHub API (rate limits)"
    )
    install_dir: Optional[str] = Field(
        default=None, description="Install directory override"
    )
    http_timeout: Optional[float] = Field(
        default=None, description="Total HTTP timeout in seconds (transport default if unset)"
    )
    log_level: str = Field(default="WARNING", description="Log level")
    log_file: Optional[str] = Field(
        default=None, description="Also write logs to this file (rotated)"
    )
    json_logs: bool = Field(default=False, description="Render logs as JSON")

    model_config = SettingsConfigDict(env_prefix="MELDOC_")

    @property
    def releases_url(self) -> str:
        """Releases page of the repository."""
        return f"{self.github_url.rstrip('/')}/{self.github_repo}/releases"

    @property
    def latest_release_api_url(self) -> str:
        """Releases API document describing the latest release."""
        return (
            f"{self.github_api_url.rstrip('/')}/repos/{self.github_repo}/releases/latest"
        )

    @property
    def pointer_url(self) -> str:
        """Static pointer file holding the latest version string."""
        if self.latest_url:
            return self.latest_url
        return f"{self.releases_url}/latest/download/LATEST"


@dataclass(frozen=True)
class InstallOptions:
    """User-selected flags for one installer run."""

    global_install: bool = False
    target_dir: Optional[str] = None
    version: str = "latest"
    force: bool = False
    quiet: bool = False
    path_hint: bool = True
    # None means "use the platform default" (on for Windows, off for Unix)
    path_setup: Optional[bool] = None

    @property
    def show_path_hint(self) -> bool:
        return self.path_hint and not self.quiet


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load installer settings overrides from a YAML file."""
    path = Path(config_path).expanduser()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigurationError(
            "Cannot read configuration file", {"error": str(e)}, source=str(path)
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(
            "Invalid configuration file", {"error": str(e)}, source=str(path)
        )

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration file must contain a mapping",
            {"type": type(data).__name__},
            source=str(path),
        )

    return data


def load_settings(config_file: Optional[str] = None) -> InstallerSettings:
    """Build settings from defaults, environment, and an optional YAML file.

    Values from the file take precedence over environment variables.
    """
    overrides = load_config_file(config_file) if config_file else {}
    unknown = sorted(set(overrides) - set(InstallerSettings.model_fields))
    if unknown:
        raise ConfigurationError(
            "Unknown configuration keys", {"keys": unknown}, source=config_file
        )

    try:
        return InstallerSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid configuration values",
            {"errors": [err["msg"] for err in e.errors()]},
            source=config_file,
        )
