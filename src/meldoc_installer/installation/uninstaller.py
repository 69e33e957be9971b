"""Uninstallation: locate and remove the binary and its state directories."""

import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.logging import get_logger
from .errors import UninstallationError, UnsupportedPlatformError
from .installer import query_version
from .platform import PlatformTag, current_platform, default_target_dir, strategy_for

logger = get_logger(__name__)

STATE_DIR_MAX_DEPTH = 5


class UninstallationManager:
    """Handles removal of the installed binary and ``.<tool>`` directories."""

    def __init__(
        self,
        tool_name: str = "meldoc",
        platform: Optional[PlatformTag] = None,
        home: Optional[Path] = None,
        runner=subprocess.run,
        which=shutil.which,
    ):
        self.tool_name = tool_name
        self.home = Path(home) if home is not None else Path.home()
        self.runner = runner
        self.which = which
        try:
            self.platform = platform or current_platform()
        except UnsupportedPlatformError:
            self.platform = None
        self.state_dir_name = f".{tool_name}"

    @property
    def executable_name(self) -> str:
        if self.platform is None:
            return self.tool_name
        return strategy_for(self.platform).executable_name(self.tool_name)

    @property
    def search_dirs(self) -> List[Path]:
        """Directories checked when the tool is not found on PATH."""
        dirs = [
            Path("/usr/local/bin"),
            Path("/usr/bin"),
            self.home / ".local" / "bin",
            self.home / "bin",
        ]
        if self.platform is not None:
            for global_install in (False, True):
                candidate = default_target_dir(
                    self.platform, self.tool_name, global_install=global_install, home=self.home
                )
                if candidate not in dirs:
                    dirs.append(candidate)
        return dirs

    def find_installation(self) -> Optional[Dict[str, Any]]:
        """Locate the installed binary: PATH lookup first, then common directories."""
        found = self.which(self.tool_name)
        if found:
            path = Path(found)
        else:
            path = next(
                (
                    d / self.executable_name
                    for d in self.search_dirs
                    if (d / self.executable_name).is_file()
                ),
                None,
            )
        if path is None:
            return None

        return {
            "path": path,
            "version": query_version(path, self.runner) or "unknown",
        }

    def remove_binary(self, path: Path) -> Dict[str, Any]:
        """Delete the binary, retrying with elevation when permission is denied."""
        path = Path(path)
        try:
            path.unlink()
            logger.info("Removed binary", path=str(path))
            return {"removed": str(path), "elevated": False}
        except FileNotFoundError:
            return {"removed": None, "elevated": False}
        except PermissionError as e:
            denied = e

        if self.platform is not None and self.platform.is_windows:
            raise UninstallationError(
                "Failed to remove binary. Run the uninstaller from an elevated prompt.",
                {"path": str(path), "error": str(denied)},
            )

        if self.which("sudo") is None:
            raise UninstallationError(
                "Failed to remove binary. Try running with sudo.",
                {"path": str(path), "error": str(denied)},
            )

        try:
            self.runner(["sudo", "rm", "-f", str(path)], check=True)
        except (OSError, subprocess.CalledProcessError) as e:
            raise UninstallationError(
                "Failed to remove binary", {"path": str(path), "error": str(e)}
            )

        logger.info("Removed binary with sudo", path=str(path))
        return {"removed": str(path), "elevated": True}

    def find_state_directories(self, max_depth: int = STATE_DIR_MAX_DEPTH) -> List[Path]:
        """All ``.<tool>`` directories under the home directory, ``max_depth`` levels deep."""
        found = []

        def on_error(error: OSError) -> None:
            logger.debug("Skipping unreadable directory", error=str(error))

        for dirpath, dirnames, _ in os.walk(self.home, onerror=on_error):
            depth = len(Path(dirpath).relative_to(self.home).parts)
            if self.state_dir_name in dirnames:
                found.append(Path(dirpath) / self.state_dir_name)
                dirnames.remove(self.state_dir_name)
            if depth + 1 >= max_depth:
                dirnames[:] = []
            else:
                dirnames.sort()

        return sorted(found)

    def remove_state_directories(self, directories: List[Path]) -> Dict[str, Any]:
        results = {"removed_items": [], "warnings": []}
        for directory in directories:
            if not Path(directory).is_dir():
                continue
            try:
                shutil.rmtree(directory)
                results["removed_items"].append(str(directory))
            except OSError as e:
                results["warnings"].append(f"Could not remove {directory}: {e}")
        return results

    def verify_removal(self) -> Dict[str, Any]:
        """Check whether the tool is still resolvable on PATH."""
        still_found = self.which(self.tool_name)
        if still_found:
            return {
                "removed": False,
                "message": f"{self.tool_name} is still in PATH (may be cached)",
                "path": still_found,
            }
        return {
            "removed": True,
            "message": f"{self.tool_name} has been completely removed",
        }

    def get_uninstall_preview(self, keep_data: bool = False) -> Dict[str, Any]:
        """Preview what would be removed during uninstallation."""
        preview = {"will_remove": [], "will_preserve": [], "warnings": []}

        installation = self.find_installation()
        if installation is None:
            preview["warnings"].append(f"{self.tool_name} is not installed")
        else:
            preview["will_remove"].append(f"binary: {installation['path']}")

        for directory in self.find_state_directories():
            if keep_data:
                preview["will_preserve"].append(f"state: {directory}")
            else:
                preview["will_remove"].append(f"state: {directory}")

        return preview

    def perform_uninstallation(self, keep_data: bool = False) -> Dict[str, Any]:
        """Remove the binary and, unless ``keep_data``, all state directories."""
        results = {
            "removed_items": [],
            "preserved_items": [],
            "warnings": [],
            "timestamp": datetime.now().isoformat(),
        }

        installation = self.find_installation()
        if installation is None:
            raise UninstallationError(
                f"{self.tool_name} is not installed or not found in PATH",
                {"searched": [str(d) for d in self.search_dirs]},
            )

        removal = self.remove_binary(installation["path"])
        if removal["removed"]:
            results["removed_items"].append(f"binary: {removal['removed']}")

        state_dirs = self.find_state_directories()
        if keep_data:
            results["preserved_items"].extend(str(d) for d in state_dirs)
        else:
            cleanup = self.remove_state_directories(state_dirs)
            results["removed_items"].extend(cleanup["removed_items"])
            results["warnings"].extend(cleanup["warnings"])

        verification = self.verify_removal()
        if not verification["removed"]:
            results["warnings"].append(verification["message"])

        return results
