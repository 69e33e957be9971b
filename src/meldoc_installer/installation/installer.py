"""Atomic placement of the binary into the target directory."""

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, List, Optional

from ..config.logging import get_logger
from .errors import InstallFailedError
from .platform import PlatformStrategy

logger = get_logger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


def query_version(binary: Path, runner: Runner = subprocess.run) -> Optional[str]:
    """First line of ``<binary> version``, or None if it cannot be run."""
    try:
        result = runner(
            [str(binary), "version"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    if result.returncode != 0:
        return None
    lines = (result.stdout or "").strip().splitlines()
    return lines[0].strip() if lines else None


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class BinaryInstaller:
    """Copies a binary next to its destination, then renames it into place.

    The rename is the only step visible to other readers of the old
    binary. Elevation (``sudo`` or a UAC prompt) wraps only the
    mkdir/copy/chmod/rename steps.
    """

    def __init__(
        self,
        tool_name: str,
        strategy: PlatformStrategy,
        runner: Runner = subprocess.run,
    ):
        self.tool_name = tool_name
        self.strategy = strategy
        self.runner = runner

    @property
    def executable_name(self) -> str:
        return self.strategy.executable_name(self.tool_name)

    def destination(self, target_dir: Path) -> Path:
        return Path(target_dir) / self.executable_name

    def install(self, source: Path, target_dir: Path, elevate: bool = False) -> Path:
        """Install ``source`` as ``<target_dir>/<tool>`` and return the path."""
        target_dir = Path(target_dir)
        dest = self.destination(target_dir)

        if elevate:
            self._install_elevated(Path(source), target_dir, dest)
        else:
            self._install_direct(Path(source), target_dir, dest)

        logger.info("Installed binary", destination=str(dest), elevated=elevate)
        return dest

    def _install_direct(self, source: Path, target_dir: Path, dest: Path) -> None:
        tmp_path = None
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.executable_name}.new.", dir=target_dir
            )
            os.close(fd)
            tmp_path = Path(tmp_name)

            shutil.copyfile(source, tmp_path)
            if self.strategy.os != "windows":
                os.chmod(tmp_path, 0o755)
            os.replace(tmp_path, dest)
            tmp_path = None
        except OSError as e:
            raise InstallFailedError(
                f"Failed to install binary to {dest}",
                {"destination": str(dest), "error": str(e)},
                suggestion="Close running copies of the tool or choose another directory with --dir",
            )
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

    def _install_elevated(self, source: Path, target_dir: Path, dest: Path) -> None:
        tmp_path = target_dir / f".{self.executable_name}.new.{os.getpid()}"

        if self.strategy.elevation == "runas":
            commands = [self._runas_command(source, target_dir, tmp_path, dest)]
        else:
            commands = [
                ["sudo", "mkdir", "-p", str(target_dir)],
                ["sudo", "cp", str(source), str(tmp_path)],
                ["sudo", "chmod", "755", str(tmp_path)],
                ["sudo", "mv", "-f", str(tmp_path), str(dest)],
            ]

        for command in commands:
            logger.debug("Running elevated", command=command)
            try:
                self.runner(command, check=True)
            except (OSError, subprocess.CalledProcessError) as e:
                self._cleanup_elevated(tmp_path)
                raise InstallFailedError(
                    f"Failed to install binary to {dest} with elevated permissions",
                    {"destination": str(dest), "command": " ".join(command), "error": str(e)},
                    suggestion="Re-run with administrator rights or choose a directory under your home with --dir",
                )

    def _runas_command(
        self, source: Path, target_dir: Path, tmp_path: Path, dest: Path
    ) -> List[str]:
        inner = (
            f'if not exist "{target_dir}" mkdir "{target_dir}"'
            f' && copy /y "{source}" "{tmp_path}"'
            f' && move /y "{tmp_path}" "{dest}"'
        )
        script = (
            "$p = Start-Process -FilePath 'cmd.exe' "
            f"-ArgumentList {_ps_quote('/c ' + inner)} "
            "-Verb RunAs -Wait -PassThru -WindowStyle Hidden; exit $p.ExitCode"
        )
        return ["powershell", "-NoProfile", "-NonInteractive", "-Command", script]

    def _cleanup_elevated(self, tmp_path: Path) -> None:
        if self.strategy.elevation != "sudo":
            return
        try:
            self.runner(["sudo", "rm", "-f", str(tmp_path)], check=False)
        except OSError as e:
            logger.debug("Could not remove temporary file", path=str(tmp_path), error=str(e))
