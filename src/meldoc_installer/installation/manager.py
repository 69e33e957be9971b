"""Installation pipeline: detect, resolve, fetch, verify, install, integrate PATH."""

import shutil
import subprocess
import tempfile
import time
from contextlib import AsyncExitStack
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..config.logging import get_logger, log_step
from ..config.settings import InstallerSettings, InstallOptions
from .artifacts import ArtifactFetcher, build_artifact
from .compatibility import SystemCompatibilityChecker
from .errors import InstallFailedError
from .extractor import extract_archive, locate_binary
from .http import HttpClient
from .installer import BinaryInstaller, query_version
from .path_integration import PathIntegrator
from .platform import PlatformTag, current_platform, resolve_target_dir, strategy_for
from .versions import VersionResolver

logger = get_logger(__name__)

STATUS_INSTALLED = "installed"
STATUS_ALREADY_INSTALLED = "already_installed"


class InstallationManager:
    """Runs one installation, strictly step by step.

    Collaborators can be injected for tests; by default the host platform,
    a fresh aiohttp client, and ``subprocess.run`` are used.
    """

    def __init__(
        self,
        settings: Optional[InstallerSettings] = None,
        platform: Optional[PlatformTag] = None,
        http_client: Optional[HttpClient] = None,
        runner=subprocess.run,
        path_integrator: Optional[PathIntegrator] = None,
        compatibility_checker: Optional[SystemCompatibilityChecker] = None,
        scratch_root: Optional[Path] = None,
    ):
        self.settings = settings or InstallerSettings()
        self._platform = platform
        self.http_client = http_client
        self.runner = runner
        self.path_integrator = path_integrator
        self.compatibility_checker = compatibility_checker or SystemCompatibilityChecker(
            self.settings.tool_name
        )
        self.scratch_root = scratch_root

    @property
    def platform(self) -> PlatformTag:
        if self._platform is None:
            self._platform = current_platform()
        return self._platform

    def target_dir(self, options: InstallOptions) -> Path:
        return resolve_target_dir(
            self.platform,
            self.settings.tool_name,
            explicit_dir=options.target_dir,
            env_dir=self.settings.install_dir,
            global_install=options.global_install,
        )

    def _installer(self) -> BinaryInstaller:
        return BinaryInstaller(
            self.settings.tool_name, strategy_for(self.platform), runner=self.runner
        )

    def _path_integrator(self) -> PathIntegrator:
        return self.path_integrator or PathIntegrator(
            self.settings.tool_name, self.platform
        )

    def get_installation_info(self, options: Optional[InstallOptions] = None) -> Dict[str, Any]:
        """Describe where the tool would be installed on this host.

        On an unsupported host only the platform report is returned.
        """
        options = options or InstallOptions()
        if self._platform is None:
            support = self.compatibility_checker.check_platform_support()
            if not support["supported"]:
                return {
                    "platform": f"{support['system']}/{support['machine']}",
                    "supported": False,
                    "message": support["message"],
                }

        target_dir = self.target_dir(options)
        installer = self._installer()
        dest = installer.destination(target_dir)
        strategy = strategy_for(self.platform)

        info = {
            "platform": str(self.platform),
            "supported": True,
            "archive_format": strategy.archive_ext,
            "target_dir": str(target_dir),
            "destination": str(dest),
            "installed": dest.is_file(),
            "on_path": self._path_integrator().is_on_path(target_dir),
            "version_source": self.settings.version_source,
            "releases": self.settings.releases_url,
        }
        if dest.is_file():
            info["installed_version"] = query_version(dest, self.runner) or "unknown version"
        return info

    async def perform_install(self, options: Optional[InstallOptions] = None) -> Dict[str, Any]:
        """Install the tool according to ``options``.

        Returns a result dict; raises an InstallationError subclass on any
        fatal condition. The scratch directory is removed on every exit path.
        """
        options = options or InstallOptions()
        results = {
            "status": STATUS_INSTALLED,
            "steps_completed": [],
            "warnings": [],
            "timestamp": datetime.now().isoformat(),
        }

        tag = self.platform
        strategy = strategy_for(tag)
        results["platform"] = str(tag)
        results["steps_completed"].append(f"Platform detected: {tag}")

        target_dir = self.target_dir(options)
        installer = self._installer()
        dest = installer.destination(target_dir)
        results["target_dir"] = str(target_dir)
        results["destination"] = str(dest)

        report = self.compatibility_checker.check_install_target(target_dir)
        results["warnings"].extend(report["warnings"])
        elevate = not report["compatible"]
        if elevate and not options.global_install:
            raise InstallFailedError(
                f"Target directory is not writable: {target_dir}",
                {"target_dir": str(target_dir), "issues": report["issues"]},
                suggestion="Choose a directory under $HOME using --dir, or use --global for a system-wide install",
            )
        results["elevated"] = elevate

        if dest.exists() and not options.force:
            results["status"] = STATUS_ALREADY_INSTALLED
            results["installed_version"] = (
                query_version(dest, self.runner) or "unknown version"
            )
            logger.info("Already installed", destination=str(dest))
            return results

        async with AsyncExitStack() as stack:
            http = self.http_client
            if http is None:
                http = await stack.enter_async_context(
                    HttpClient(timeout=self.settings.http_timeout)
                )

            resolver = VersionResolver(
                http,
                source=self.settings.version_source,
                api_url=self.settings.latest_release_api_url,
                pointer_url=self.settings.pointer_url,
                api_token=self.settings.github_token,
            )
            version = await resolver.resolve(options.version)
            results["version"] = version.tag
            results["steps_completed"].append(f"Version resolved: {version.tag}")

            artifact = build_artifact(
                self.settings.tool_name, version, tag, self.settings.releases_url
            )
            results["artifact"] = artifact.filename
            results["download_url"] = artifact.download_url
            fetcher = ArtifactFetcher(http, self.settings.releases_url)

            scratch = Path(
                tempfile.mkdtemp(
                    prefix=f"{self.settings.tool_name}-install-", dir=self.scratch_root
                )
            )
            try:
                started = time.monotonic()
                archive = await fetcher.download(artifact, scratch)
                log_step(logger, "download", (time.monotonic() - started) * 1000,
                         artifact=artifact.filename)
                results["steps_completed"].append("Artifact downloaded")

                checksum = await fetcher.verify(artifact, archive)
                results["checksum"] = checksum.status
                results["warnings"].extend(fetcher.warnings)
                if checksum.verified:
                    results["steps_completed"].append("Checksum verified")

                extract_dir = scratch / "extracted"
                extract_archive(archive, extract_dir)
                binary = locate_binary(extract_dir, installer.executable_name)
                results["steps_completed"].append("Archive extracted")

                started = time.monotonic()
                installer.install(binary, target_dir, elevate=elevate)
                log_step(logger, "install", (time.monotonic() - started) * 1000,
                         destination=str(dest))
                results["steps_completed"].append("Binary installed")
            finally:
                shutil.rmtree(scratch, ignore_errors=True)

        results["installed_version"] = query_version(dest, self.runner) or "unknown"

        path_setup = (
            options.path_setup
            if options.path_setup is not None
            else strategy.path_setup_default
        )
        path_result = self._path_integrator().integrate(
            target_dir,
            setup=path_setup,
            show_hint=options.show_path_hint,
            system_wide=options.global_install,
        )
        results["path"] = path_result
        results["steps_completed"].append(f"PATH: {path_result.status}")

        return results
