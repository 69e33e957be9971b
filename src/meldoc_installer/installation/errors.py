"""Installer error taxonomy.

Every fatal condition aborts the run immediately; nothing is retried. Each
error names the step that failed so the user can retry that step by hand.
"""

from typing import Any, Dict, Optional


class InstallationError(Exception):
    """Installation-related error with context information."""

    step = "install"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        self.suggestion = suggestion
        super().__init__(message)


class UnsupportedPlatformError(InstallationError):
    """OS or architecture outside the supported enumeration."""

    step = "detect-platform"


class VersionLookupError(InstallationError):
    """Static pointer or release metadata unreachable or empty."""

    step = "resolve-version"


class DownloadError(InstallationError):
    """Artifact transfer failed or returned empty content."""

    step = "download"


class ChecksumMismatchError(InstallationError):
    """Manifest entry found but the digest disagrees."""

    step = "verify-checksum"


class ExtractionError(InstallationError):
    """Archive could not be unpacked."""

    step = "extract"


class BinaryNotFoundError(InstallationError):
    """No matching executable located after extraction."""

    step = "locate-binary"


class InstallFailedError(InstallationError):
    """Copy or rename into the target directory failed."""

    step = "install"


class PathIntegrationError(InstallationError):
    """Automatic PATH setup failed; callers fall back to manual instructions."""

    step = "path-setup"


class UninstallationError(Exception):
    """Uninstallation-related error with context information."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)
