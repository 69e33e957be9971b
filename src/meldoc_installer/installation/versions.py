"""Version resolution: explicit input, static LATEST pointer, or releases API."""

import json
import re
from dataclasses import dataclass
from typing import Optional

from ..config.logging import get_logger
from .errors import VersionLookupError
from .http import FETCH_ERRORS, HttpClient

logger = get_logger(__name__)

LATEST = "latest"

_TAG_NAME_PATTERN = re.compile(r'"tag_name"\s*:\s*"([^"]*)"')


@dataclass(frozen=True)
class ResolvedVersion:
    """A release version in both of its spellings.

    ``tag`` ("v1.2.3") appears in download URLs; ``numeric`` ("1.2.3")
    appears only inside artifact filenames.
    """

    tag: str
    numeric: str

    def __str__(self) -> str:
        return self.tag


def normalize_version(value: str) -> ResolvedVersion:
    """Normalize "v1.2.3" or "1.2.3" into a ResolvedVersion."""
    value = value.strip()
    numeric = value[1:] if value[:1] in ("v", "V") else value
    if not numeric:
        raise VersionLookupError(f"Invalid version: {value!r}")
    return ResolvedVersion(tag=f"v{numeric}", numeric=numeric)


def extract_tag_name(document: str) -> Optional[str]:
    """Pull ``tag_name`` out of a releases API document.

    Falls back to pattern extraction when the body is not valid JSON.
    """
    try:
        data = json.loads(document)
    except ValueError:
        match = _TAG_NAME_PATTERN.search(document)
        return match.group(1) if match else None

    if not isinstance(data, dict):
        return None
    tag = data.get("tag_name")
    return tag if isinstance(tag, str) else None


class VersionResolver:
    """Turns a requested version into a ResolvedVersion.

    ``source`` selects how "latest" is looked up: ``"github"`` reads the
    releases API document, ``"static"`` reads a plain-text pointer file.
    """

    def __init__(
        self,
        http: HttpClient,
        source: str = "github",
        api_url: Optional[str] = None,
        pointer_url: Optional[str] = None,
        api_token: Optional[str] = None,
    ):
        if source not in ("github", "static"):
            raise ValueError(f"Unknown version source: {source}")
        self.http = http
        self.source = source
        self.api_url = api_url
        self.pointer_url = pointer_url
        self.api_token = api_token

    async def resolve(self, requested: Optional[str] = LATEST) -> ResolvedVersion:
        requested = (requested or LATEST).strip()
        if requested.lower() != LATEST:
            return normalize_version(requested)

        if self.source == "static":
            raw = await self._from_pointer()
        else:
            raw = await self._from_releases_api()

        resolved = normalize_version(raw)
        logger.info("Resolved latest version", version=resolved.tag, source=self.source)
        return resolved

    async def _from_pointer(self) -> str:
        url = self.pointer_url
        try:
            body = await self.http.fetch_text(url)
        except FETCH_ERRORS as e:
            raise VersionLookupError(
                "Could not fetch the latest version pointer",
                {"url": url, "error": str(e)},
                suggestion="Check your internet connection or pass --version",
            )

        version = body.strip()
        if not version:
            raise VersionLookupError(
                "Latest version pointer is empty", {"url": url}
            )
        return version

    async def _from_releases_api(self) -> str:
        url = self.api_url
        headers = {"Accept": "application/vnd.github+json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        try:
            body = await self.http.fetch_text(url, headers=headers)
        except FETCH_ERRORS as e:
            raise VersionLookupError(
                "Could not fetch release information from GitHub",
                {"url": url, "error": str(e)},
                suggestion="Check your internet connection or pass --version",
            )

        tag = (extract_tag_name(body or "") or "").strip()
        if not tag:
            raise VersionLookupError(
                "Could not determine latest version", {"url": url}
            )
        return tag
