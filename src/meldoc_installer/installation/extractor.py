"""Archive extraction and binary discovery inside the scratch directory."""

import os
import tarfile
import zipfile
from pathlib import Path
from typing import List, Optional

from ..config.logging import get_logger
from .errors import BinaryNotFoundError, ExtractionError

logger = get_logger(__name__)

# tarfile extraction filters ship with 3.12 and the 3.9.17+/3.10.12+/3.11.4+ patch releases
HAS_TAR_FILTERS = hasattr(tarfile, "data_filter")


def _is_within(base: Path, target: Path) -> bool:
    try:
        target.resolve().relative_to(base.resolve())
        return True
    except ValueError:
        return False


def _check_tar_members(tar: tarfile.TarFile, destination: Path) -> None:
    for member in tar.getmembers():
        target = destination / member.name
        if member.issym():
            link_target = target.parent / member.linkname
        elif member.islnk():
            link_target = destination / member.linkname
        else:
            link_target = target
        if (
            member.isdev()
            or not _is_within(destination, target)
            or not _is_within(destination, link_target)
        ):
            raise ExtractionError(
                f"Archive member escapes extraction directory: {member.name}",
                {"archive": str(tar.name)},
            )


def extract_archive(archive: Path, destination: Path) -> None:
    """Unpack a ``.tar.gz`` or ``.zip`` archive into ``destination``.

    Members that would land outside ``destination`` are rejected.
    """
    archive = Path(archive)
    destination = Path(destination)
    name = archive.name.lower()

    try:
        if name.endswith((".tar.gz", ".tgz")):
            with tarfile.open(archive, "r:gz") as tar:
                if HAS_TAR_FILTERS:
                    tar.extractall(destination, filter="data")
                else:
                    _check_tar_members(tar, destination)
                    tar.extractall(destination)
        elif name.endswith(".zip"):
            with zipfile.ZipFile(archive) as zf:
                for member in zf.namelist():
                    if not _is_within(destination, destination / member):
                        raise ExtractionError(
                            f"Archive member escapes extraction directory: {member}",
                            {"archive": str(archive)},
                        )
                zf.extractall(destination)
        else:
            raise ExtractionError(
                f"Unsupported archive format: {archive.name}",
                {"archive": str(archive)},
            )
    except (tarfile.TarError, zipfile.BadZipFile, OSError, EOFError) as e:
        raise ExtractionError(
            "Failed to extract archive", {"archive": str(archive), "error": str(e)}
        )

    logger.debug("Extracted archive", archive=str(archive), destination=str(destination))


def _search(root: Path, name: str, max_depth: int) -> Optional[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        depth = len(Path(dirpath).relative_to(root).parts)
        if name in filenames:
            return Path(dirpath) / name
        if depth + 1 >= max_depth:
            dirnames[:] = []
        else:
            dirnames.sort()
    return None


def locate_binary(root: Path, executable_name: str, max_depth: int = 3) -> Path:
    """Find the tool's executable after extraction.

    Looks at ``root/<name>`` first, then searches at most ``max_depth``
    directory levels (``root`` itself counts as level one).
    """
    root = Path(root)
    direct = root / executable_name
    if direct.is_file():
        return direct

    found = _search(root, executable_name, max_depth)
    if found is not None and found.is_file():
        return found

    raise BinaryNotFoundError(
        "Binary not found after extraction",
        {"expected": executable_name, "contents": list_contents(root)},
    )


def list_contents(root: Path, limit: int = 50) -> List[str]:
    """Relative paths under ``root`` for error reports."""
    entries = []
    for path in sorted(Path(root).rglob("*")):
        entries.append(str(path.relative_to(root)))
        if len(entries) >= limit:
            break
    return entries
