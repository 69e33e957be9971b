"""Installation and uninstallation of the meldoc CLI binary."""

from .compatibility import SystemCompatibilityChecker
from .errors import (
    BinaryNotFoundError,
    ChecksumMismatchError,
    DownloadError,
    ExtractionError,
    InstallationError,
    InstallFailedError,
    PathIntegrationError,
    UninstallationError,
    UnsupportedPlatformError,
    VersionLookupError,
)
from .manager import InstallationManager
from .platform import PlatformTag, current_platform, detect_platform
from .uninstaller import UninstallationManager
from .versions import ResolvedVersion, VersionResolver

__all__ = [
    "InstallationManager",
    "InstallationError",
    "SystemCompatibilityChecker",
    "UninstallationManager",
    "UninstallationError",
    "UnsupportedPlatformError",
    "VersionLookupError",
    "DownloadError",
    "ChecksumMismatchError",
    "ExtractionError",
    "BinaryNotFoundError",
    "InstallFailedError",
    "PathIntegrationError",
    "PlatformTag",
    "ResolvedVersion",
    "VersionResolver",
    "current_platform",
    "detect_platform",
]
