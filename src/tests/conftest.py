"""Pytest configuration and shared fixtures."""

import hashlib
import io
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, Optional, Union

import aiohttp
import pytest
from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from meldoc_installer.config.settings import InstallerSettings
from meldoc_installer.installation.platform import PlatformTag

BINARY_CONTENT = b"#!/bin/sh\necho 'meldoc 2.3.4'\n"


def http_error(url: str, status: int = 404) -> aiohttp.ClientResponseError:
    """Build the error aiohttp raises for a non-2xx response."""
    request_info = aiohttp.RequestInfo(
        URL(url), "GET", CIMultiDictProxy(CIMultiDict()), URL(url)
    )
    return aiohttp.ClientResponseError(
        request_info, (), status=status, message="Not Found"
    )


class FakeHttpClient:
    """In-memory stand-in for HttpClient.

    ``routes`` maps URLs to ``bytes``/``str`` bodies or to an exception
    instance that is raised when the URL is requested.
    """

    def __init__(self, routes: Optional[Dict[str, Union[bytes, str, BaseException]]] = None):
        self.routes = dict(routes or {})
        self.requests = []

    def _lookup(self, url: str):
        self.requests.append(url)
        body = self.routes.get(url)
        if body is None:
            raise http_error(url)
        if isinstance(body, BaseException):
            raise body
        return body

    async def fetch_text(self, url: str, headers=None) -> str:
        body = self._lookup(url)
        return body.decode("utf-8") if isinstance(body, bytes) else body

    async def download(self, url: str, destination: Path) -> int:
        body = self._lookup(url)
        data = body.encode("utf-8") if isinstance(body, str) else body
        Path(destination).write_bytes(data)
        return len(data)


def make_tar_gz(members: Dict[str, bytes], mode: int = 0o755) -> bytes:
    """Build a gzip-compressed tarball from ``{name: content}``."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = mode
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def make_zip(members: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@pytest.fixture
def settings() -> InstallerSettings:
    """Settings pinned to the public defaults regardless of the environment."""
    return InstallerSettings(
        tool_name="meldoc",
        github_repo="meldoc-io/meldoc-cli",
        github_url="https://github.com",
        github_api_url="https://api.github.com",
        version_source="github",
        latest_url=None,
        github_token=None,
        install_dir=None,
    )


@pytest.fixture
def linux_amd64() -> PlatformTag:
    return PlatformTag(os="linux", arch="amd64")


@pytest.fixture
def fake_home(tmp_path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home
