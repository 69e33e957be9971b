"""PATH integration: shell startup files on Unix, the registry on Windows."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, MutableMapping, Optional

from ..config.logging import get_logger
from .errors import PathIntegrationError
from .platform import PlatformTag

logger = get_logger(__name__)

# Checked in this order; the first one that exists is edited
SHELL_RC_CANDIDATES = (
    ".zshrc",
    ".bashrc",
    ".bash_profile",
    ".profile",
    ".config/fish/config.fish",
)

ALREADY_ON_PATH = "already_on_path"
CONFIGURED = "configured"
ALREADY_CONFIGURED = "already_configured"
MANUAL = "manual"
SKIPPED = "skipped"

_USER_ENV_KEY = "Environment"
_SYSTEM_ENV_KEY = r"SYSTEM\CurrentControlSet\Control\Session Manager\Environment"


def normalize_entry(entry: str, windows: bool = False) -> str:
    """Normalize one PATH entry for comparison."""
    value = os.path.expanduser(entry.strip().strip('"'))
    if len(value) > 1:
        value = value.rstrip("/\\") or value[:1]
    return value.lower() if windows else value


def split_path(path_value: str, windows: bool = False) -> List[str]:
    separator = ";" if windows else ":"
    return [entry for entry in path_value.split(separator) if entry.strip()]


def is_on_path(directory, path_value: str, windows: bool = False) -> bool:
    """True if ``directory`` is an entry of ``path_value``.

    Trailing separators are ignored; comparison is case-insensitive on
    Windows.
    """
    wanted = normalize_entry(str(directory), windows)
    return any(
        normalize_entry(entry, windows) == wanted
        for entry in split_path(path_value, windows)
    )


def append_path_entry(path_value: str, directory, windows: bool = False) -> Optional[str]:
    """New PATH value with ``directory`` appended, or None if already present."""
    if is_on_path(directory, path_value, windows):
        return None
    separator = ";" if windows else ":"
    existing = path_value.rstrip(separator)
    return f"{existing}{separator}{directory}" if existing else str(directory)


@dataclass(frozen=True)
class PathIntegrationResult:
    """What the PATH step did."""

    status: str
    message: str = ""
    location: Optional[str] = None
    instructions: List[str] = field(default_factory=list)


class WindowsPathStore:
    """Persistent PATH value in the user or machine environment registry key."""

    def __init__(self, system_wide: bool = False):
        self.system_wide = system_wide

    @property
    def description(self) -> str:
        scope = "machine" if self.system_wide else "user"
        return f"{scope} PATH (registry)"

    def _open(self, access):
        import winreg

        if self.system_wide:
            return winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, _SYSTEM_ENV_KEY, 0, access)
        return winreg.CreateKeyEx(winreg.HKEY_CURRENT_USER, _USER_ENV_KEY, 0, access)

    def read(self) -> str:
        import winreg

        with self._open(winreg.KEY_READ) as key:
            try:
                value, _ = winreg.QueryValueEx(key, "Path")
            except FileNotFoundError:
                return ""
        return value or ""

    def write(self, value: str) -> None:
        import winreg

        with self._open(winreg.KEY_SET_VALUE) as key:
            winreg.SetValueEx(key, "Path", 0, winreg.REG_EXPAND_SZ, value)


class PathIntegrator:
    """Makes the target directory reachable through PATH, or says how to."""

    def __init__(
        self,
        tool_name: str,
        platform: PlatformTag,
        home: Optional[Path] = None,
        environ: Optional[MutableMapping[str, str]] = None,
        store: Optional[WindowsPathStore] = None,
    ):
        self.tool_name = tool_name
        self.platform = platform
        self.home = Path(home) if home is not None else Path.home()
        self.environ = os.environ if environ is None else environ
        self.store = store

    @property
    def windows(self) -> bool:
        return self.platform.is_windows

    def is_on_path(self, directory) -> bool:
        return is_on_path(directory, self.environ.get("PATH", ""), self.windows)

    def find_shell_rc(self) -> Optional[Path]:
        for candidate in SHELL_RC_CANDIDATES:
            rc = self.home / candidate
            if rc.is_file():
                return rc
        return None

    def integrate(
        self,
        target_dir: Path,
        setup: bool,
        show_hint: bool = True,
        system_wide: bool = False,
    ) -> PathIntegrationResult:
        """Run the PATH step. Never raises; failures become manual instructions."""
        target_dir = Path(target_dir)

        if self.is_on_path(target_dir):
            return PathIntegrationResult(
                status=ALREADY_ON_PATH, message=f"{target_dir} is already on PATH"
            )

        if setup:
            try:
                if self.windows:
                    return self.setup_windows(target_dir, system_wide)
                return self.setup_unix(target_dir)
            except (PathIntegrationError, OSError) as e:
                reason = getattr(e, "message", str(e))
                logger.warning("Automatic PATH setup failed", error=reason)
                return PathIntegrationResult(
                    status=MANUAL,
                    message=f"Could not configure PATH automatically: {reason}",
                    instructions=self.manual_instructions(target_dir),
                )

        if not show_hint:
            return PathIntegrationResult(status=SKIPPED)

        return PathIntegrationResult(
            status=MANUAL,
            message="PATH configuration needed",
            instructions=self.manual_instructions(target_dir),
        )

    def export_line(self, target_dir: Path, rc: Optional[Path] = None) -> str:
        if rc is not None and rc.name == "config.fish":
            return f"fish_add_path {target_dir}"
        return f'export PATH="{target_dir}:$PATH"'

    def setup_unix(self, target_dir: Path) -> PathIntegrationResult:
        rc = self.find_shell_rc()
        if rc is None:
            raise PathIntegrationError(
                "No shell startup file found",
                {"searched": [str(self.home / c) for c in SHELL_RC_CANDIDATES]},
            )

        content = rc.read_text(encoding="utf-8", errors="replace")
        if str(target_dir) in content:
            return PathIntegrationResult(
                status=ALREADY_CONFIGURED,
                message=f"PATH already configured in {rc}",
                location=str(rc),
                instructions=[f"source {rc}"],
            )

        prefix = "" if not content or content.endswith("\n") else "\n"
        with open(rc, "a", encoding="utf-8") as f:
            f.write(
                f"{prefix}\n# Added by {self.tool_name} installer\n"
                f"{self.export_line(target_dir, rc)}\n"
            )

        logger.info("Added directory to PATH", rc_file=str(rc), directory=str(target_dir))
        return PathIntegrationResult(
            status=CONFIGURED,
            message=f"Added {target_dir} to PATH in {rc}",
            location=str(rc),
            instructions=[f"source {rc}"],
        )

    def setup_windows(self, target_dir: Path, system_wide: bool = False) -> PathIntegrationResult:
        store = self.store or WindowsPathStore(system_wide=system_wide)
        current = store.read()
        updated = append_path_entry(current, target_dir, windows=True)

        if updated is None:
            status = ALREADY_CONFIGURED
            message = f"{target_dir} is already in the {store.description}"
        else:
            store.write(updated)
            status = CONFIGURED
            message = f"Added {target_dir} to the {store.description}"
            logger.info("Updated persistent PATH", scope=store.description, directory=str(target_dir))

        # Make the current session usable without a restart
        session = append_path_entry(self.environ.get("PATH", ""), target_dir, windows=True)
        if session is not None:
            self.environ["PATH"] = session

        return PathIntegrationResult(
            status=status,
            message=message,
            location=store.description,
            instructions=["Restart your terminal to pick up the new PATH"],
        )

    def manual_instructions(self, target_dir: Path) -> List[str]:
        if self.windows:
            return [
                "[Environment]::SetEnvironmentVariable('Path', "
                "[Environment]::GetEnvironmentVariable('Path', 'User') + "
                f"';{target_dir}', 'User')"
            ]

        rc = self.find_shell_rc()
        line = self.export_line(target_dir, rc)
        if rc is None:
            return [line]
        if rc.name == "config.fish":
            return [f"echo '{line}' >> {rc}"]
        return [f"echo '{line}' >> {rc} && source {rc}"]
