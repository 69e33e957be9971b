"""HTTP transport used for version lookups and artifact downloads."""

import asyncio
from pathlib import Path
from typing import Dict, Optional

import aiofiles
import aiohttp

from ..__version__ import __version__
from ..config.logging import get_logger

logger = get_logger(__name__)

# Errors a caller should translate into its own step failure
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)
# fetch_text also fails on bodies that are not valid text
FETCH_ERRORS = TRANSPORT_ERRORS + (UnicodeDecodeError,)


class HttpClient:
    """Thin aiohttp wrapper: fetch small text bodies, stream files to disk.

    Non-2xx responses raise ``aiohttp.ClientResponseError``. No retries are
    made; when ``timeout`` is None the aiohttp defaults apply.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        chunk_size: int = 64 * 1024,
    ):
        self.timeout = timeout
        self.headers = {"User-Agent": f"meldoc-installer/{__version__}"}
        self.headers.update(headers or {})
        self.chunk_size = chunk_size
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "HttpClient":
        kwargs = {"headers": self.headers, "raise_for_status": True}
        if self.timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)
        self._session = aiohttp.ClientSession(**kwargs)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HttpClient used outside of 'async with'")
        return self._session

    async def fetch_text(
        self, url: str, headers: Optional[Dict[str, str]] = None
    ) -> str:
        """GET a URL and return its decoded body.

        Raises ``UnicodeDecodeError`` when the body is not valid text in the
        response charset.
        """
        logger.debug("Fetching", url=url)
        async with self.session.get(url, headers=headers) as response:
            return await response.text()

    async def download(self, url: str, destination: Path) -> int:
        """Stream a URL into ``destination``; return the number of bytes written."""
        logger.debug("Downloading", url=url, destination=str(destination))
        written = 0
        async with self.session.get(url) as response:
            async with aiofiles.open(destination, "wb") as f:
                async for chunk in response.content.iter_chunked(self.chunk_size):
                    await f.write(chunk)
                    written += len(chunk)
        logger.debug("Download finished", url=url, bytes=written)
        return written
