"""Pre-flight checks for the install target."""

import os
import platform
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import UnsupportedPlatformError
from .platform import detect_platform


class SystemCompatibilityChecker:
    """Checks the host and target directory before anything is downloaded."""

    def __init__(self, tool_name: str = "meldoc"):
        self.tool_name = tool_name

    def check_install_target(
        self, target_dir: Path, required_mb: int = 50
    ) -> Dict[str, Any]:
        """Combined target directory report."""
        report = {
            "compatible": True,
            "issues": [],
            "warnings": [],
            "system_info": {},
        }

        permission_check = self.check_permissions(target_dir)
        report["system_info"]["permissions"] = permission_check
        if not permission_check["writable"]:
            report["issues"].append(permission_check["message"])

        disk_check = self.check_disk_space(target_dir, required_mb)
        report["system_info"]["disk"] = disk_check
        if not disk_check["sufficient"]:
            report["warnings"].append(disk_check["message"])

        report["compatible"] = not report["issues"]
        return report

    def check_platform_support(
        self, system: Optional[str] = None, machine: Optional[str] = None
    ) -> Dict[str, Any]:
        """Check operating system and architecture support."""
        system = system if system is not None else platform.system()
        machine = machine if machine is not None else platform.machine()
        try:
            tag = detect_platform(system, machine)
        except UnsupportedPlatformError as e:
            return {
                "supported": False,
                "system": system,
                "machine": machine,
                "message": e.message,
            }
        return {
            "supported": True,
            "system": system,
            "machine": machine,
            "platform": str(tag),
            "message": f"{system} {machine} is supported ({tag})",
        }

    def check_permissions(self, target_dir: Path) -> Dict[str, Any]:
        """Check whether the current user can create files in ``target_dir``.

        The directory is created first when possible. A throwaway
        ``.<tool>-write-test.<pid>`` file is used as the probe.
        """
        target_dir = Path(target_dir)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            pass

        probe = target_dir / f".{self.tool_name}-write-test.{os.getpid()}"
        try:
            probe.touch()
            probe.unlink()
            writable = True
        except OSError:
            writable = False

        return {
            "writable": writable,
            "exists": target_dir.is_dir(),
            "message": "Directory is writable"
            if writable
            else f"Target directory is not writable: {target_dir}",
        }

    def check_disk_space(self, target_dir: Path, required_mb: int = 50) -> Dict[str, Any]:
        """Check available disk space on the volume holding ``target_dir``."""
        probe = Path(target_dir)
        while not probe.exists() and probe != probe.parent:
            probe = probe.parent

        try:
            available_mb = shutil.disk_usage(probe).free / (1024 * 1024)
        except OSError:
            return {
                "sufficient": True,
                "message": "Could not check disk space",
            }

        if available_mb >= required_mb:
            return {
                "sufficient": True,
                "available_mb": int(available_mb),
                "required_mb": required_mb,
                "message": f"{int(available_mb)}MB available (≥{required_mb}MB required)",
            }
        return {
            "sufficient": False,
            "available_mb": int(available_mb),
            "required_mb": required_mb,
            "message": f"Low disk space: {int(available_mb)}MB available, {required_mb}MB recommended",
        }
