"""Platform detection and the per-platform install strategy table."""

import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from .errors import UnsupportedPlatformError

SUPPORTED_OS = ("linux", "darwin", "windows")
SUPPORTED_ARCH = ("amd64", "arm64")

_OS_MARKERS = (
    ("linux", "linux"),
    ("darwin", "darwin"),
    ("windows", "windows"),
    ("mingw", "windows"),
    ("msys", "windows"),
    ("cygwin", "windows"),
)

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


@dataclass(frozen=True)
class PlatformTag:
    """Canonical {os, arch} pair used to name artifacts."""

    os: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"


@dataclass(frozen=True)
class PlatformStrategy:
    """How installation differs on one operating system."""

    os: str
    archive_ext: str
    exe_suffix: str
    path_setup_default: bool
    elevation: str

    def executable_name(self, tool_name: str) -> str:
        return f"{tool_name}{self.exe_suffix}"


STRATEGIES: Dict[str, PlatformStrategy] = {
    "linux": PlatformStrategy(
        os="linux",
        archive_ext="tar.gz",
        exe_suffix="",
        path_setup_default=False,
        elevation="sudo",
    ),
    "darwin": PlatformStrategy(
        os="darwin",
        archive_ext="tar.gz",
        exe_suffix="",
        path_setup_default=False,
        elevation="sudo",
    ),
    "windows": PlatformStrategy(
        os="windows",
        archive_ext="zip",
        exe_suffix=".exe",
        path_setup_default=True,
        elevation="runas",
    ),
}


def detect_platform(system: str, machine: str) -> PlatformTag:
    """Classify raw kernel and machine strings into a PlatformTag.

    Args:
        system: Kernel name, e.g. ``uname -s`` or ``platform.system()``
        machine: Machine architecture, e.g. ``uname -m``

    Raises:
        UnsupportedPlatformError: If either value is not recognized
    """
    kernel = (system or "").strip().lower()
    os_name = next(
        (canonical for marker, canonical in _OS_MARKERS if marker in kernel), None
    )
    if os_name is None:
        raise UnsupportedPlatformError(
            f"Unsupported OS: {system or 'unknown'}",
            {"system": system, "supported": list(SUPPORTED_OS)},
        )

    arch = _ARCH_ALIASES.get((machine or "").strip().lower())
    if arch is None:
        raise UnsupportedPlatformError(
            f"Unsupported architecture: {machine or 'unknown'}",
            {"machine": machine, "supported": list(SUPPORTED_ARCH)},
        )

    return PlatformTag(os=os_name, arch=arch)


def current_platform() -> PlatformTag:
    """Detect the platform of the running interpreter."""
    return detect_platform(platform.system(), platform.machine())


def strategy_for(tag: PlatformTag) -> PlatformStrategy:
    """Return the strategy table row for a platform."""
    return STRATEGIES[tag.os]


def default_target_dir(
    tag: PlatformTag,
    tool_name: str,
    global_install: bool = False,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Default install directory for a platform.

    User installs go to ``~/.local/bin`` (Unix) or
    ``%LOCALAPPDATA%\\Programs\\<tool>`` (Windows). Global installs go to
    ``/usr/local/bin`` (``/opt/homebrew/bin`` on Apple Silicon Homebrew
    setups) or ``%ProgramFiles%\\<tool>``.
    """
    environ = os.environ if environ is None else environ
    home = home or Path.home()

    if tag.is_windows:
        if global_install:
            program_files = environ.get("ProgramFiles") or r"C:\Program Files"
            return Path(program_files) / tool_name
        local_app_data = environ.get("LOCALAPPDATA")
        base = Path(local_app_data) if local_app_data else home / "AppData" / "Local"
        return base / "Programs" / tool_name

    if global_install:
        if tag.os == "darwin" and Path("/opt/homebrew/bin").is_dir():
            return Path("/opt/homebrew/bin")
        return Path("/usr/local/bin")

    return home / ".local" / "bin"


def resolve_target_dir(
    tag: PlatformTag,
    tool_name: str,
    explicit_dir: Optional[str] = None,
    env_dir: Optional[str] = None,
    global_install: bool = False,
) -> Path:
    """Pick the target directory.

    Order: explicit ``--dir``, then the configured override
    (``MELDOC_INSTALL_DIR``), then the global or user default.
    """
    for candidate in (explicit_dir, env_dir):
        if candidate:
            return Path(candidate).expanduser()
    return default_target_dir(tag, tool_name, global_install=global_install)
