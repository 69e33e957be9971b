"""Artifact naming, download, and best-effort checksum verification."""

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..config.logging import get_logger
from .errors import ChecksumMismatchError, DownloadError
from .http import FETCH_ERRORS, TRANSPORT_ERRORS, HttpClient
from .platform import PlatformTag, strategy_for
from .versions import ResolvedVersion

logger = get_logger(__name__)

CHECKSUM_MANIFEST = "SHA256SUMS"

CHECKSUM_VERIFIED = "verified"
CHECKSUM_SKIPPED = "skipped"


@dataclass(frozen=True)
class ArtifactDescriptor:
    """Where one platform/version archive lives."""

    filename: str
    download_url: str
    checksum_url: str


@dataclass(frozen=True)
class ChecksumResult:
    """Outcome of checksum verification."""

    status: str
    expected: Optional[str] = None
    actual: Optional[str] = None
    message: str = ""

    @property
    def verified(self) -> bool:
        return self.status == CHECKSUM_VERIFIED


def artifact_filename(tool_name: str, version: ResolvedVersion, tag: PlatformTag) -> str:
    """``<tool>-<numeric-version>-<os>-<arch>.<ext>``"""
    ext = strategy_for(tag).archive_ext
    return f"{tool_name}-{version.numeric}-{tag.os}-{tag.arch}.{ext}"


def build_artifact(
    tool_name: str,
    version: ResolvedVersion,
    tag: PlatformTag,
    releases_url: str,
) -> ArtifactDescriptor:
    """Compute the artifact descriptor for a release and platform."""
    filename = artifact_filename(tool_name, version, tag)
    base = f"{releases_url.rstrip('/')}/download/{version.tag}"
    return ArtifactDescriptor(
        filename=filename,
        download_url=f"{base}/{filename}",
        checksum_url=f"{base}/{CHECKSUM_MANIFEST}",
    )


def find_checksum(manifest: str, filename: str) -> Optional[str]:
    """Find the digest recorded for ``filename`` in a SHA256SUMS manifest.

    Lines are ``<hex-digest>  <filename>``; a leading ``*`` on the name
    (binary mode marker) is ignored. An exact name match wins over a line
    that merely contains the filename.
    """
    substring_match = None
    for line in manifest.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        digest, name = parts[0], " ".join(parts[1:]).lstrip("*")
        if name == filename:
            return digest.lower()
        if substring_match is None and filename in line:
            substring_match = digest.lower()
    return substring_match


def sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ArtifactFetcher:
    """Downloads an artifact into the scratch directory and checks its digest."""

    def __init__(self, http: HttpClient, releases_url: str):
        self.http = http
        self.releases_url = releases_url
        self.warnings: List[str] = []

    async def download(self, artifact: ArtifactDescriptor, scratch_dir: Path) -> Path:
        """Download the archive; empty or failed transfers are fatal."""
        destination = Path(scratch_dir) / artifact.filename
        details = {
            "url": artifact.download_url,
            "artifact": artifact.filename,
            "releases": self.releases_url,
        }

        try:
            size = await self.http.download(artifact.download_url, destination)
        except TRANSPORT_ERRORS as e:
            raise DownloadError(
                "Download failed",
                dict(details, error=str(e)),
                suggestion="Check that the version and artifact exist, then re-run the installer",
            )
        except OSError as e:
            raise DownloadError(
                "Could not write downloaded file", dict(details, error=str(e))
            )

        if not destination.is_file() or destination.stat().st_size == 0:
            raise DownloadError(
                "Downloaded file is empty or doesn't exist",
                dict(details, bytes=size),
                suggestion="Re-run the installer",
            )

        logger.info("Downloaded artifact", artifact=artifact.filename, bytes=size)
        return destination

    async def verify(self, artifact: ArtifactDescriptor, archive: Path) -> ChecksumResult:
        """Verify the archive against the release's checksum manifest.

        A missing manifest or a manifest without this artifact only produces
        a warning. A recorded digest that disagrees raises
        ChecksumMismatchError.
        """
        try:
            manifest = await self.http.fetch_text(artifact.checksum_url)
        except FETCH_ERRORS as e:
            message = f"Could not download {CHECKSUM_MANIFEST}, skipping verification"
            logger.warning(message, url=artifact.checksum_url, error=str(e))
            self.warnings.append(message)
            return ChecksumResult(status=CHECKSUM_SKIPPED, message=message)

        expected = find_checksum(manifest, artifact.filename)
        if not expected:
            message = f"Checksum not found for {artifact.filename}"
            logger.warning(message, url=artifact.checksum_url)
            self.warnings.append(message)
            return ChecksumResult(status=CHECKSUM_SKIPPED, message=message)

        actual = sha256_file(archive)
        if actual != expected:
            raise ChecksumMismatchError(
                "Checksum verification failed!",
                {"artifact": artifact.filename, "expected": expected, "actual": actual},
                suggestion="The download may be corrupted or tampered with; re-run the installer",
            )

        logger.info("Checksum verified", artifact=artifact.filename, sha256=actual)
        return ChecksumResult(
            status=CHECKSUM_VERIFIED,
            expected=expected,
            actual=actual,
            message="Checksum verified",
        )
