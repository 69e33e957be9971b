"""Tests for version resolution."""

import aiohttp
import pytest

from conftest import FakeHttpClient
from meldoc_installer.installation.errors import VersionLookupError
from meldoc_installer.installation.versions import (
    ResolvedVersion,
    VersionResolver,
    extract_tag_name,
    normalize_version,
)

API_URL = "https://api.github.com/repos/meldoc-io/meldoc-cli/releases/latest"
POINTER_URL = "https://example.com/meldoc/LATEST"


class TestNormalizeVersion:
    """Test tag/numeric normalization."""

    @pytest.mark.parametrize("value", ["v1.2.3", "1.2.3", " v1.2.3\n", "V1.2.3"])
    def test_both_spellings(self, value):
        assert normalize_version(value) == ResolvedVersion(tag="v1.2.3", numeric="1.2.3")

    @pytest.mark.parametrize("value", ["", "v", "  "])
    def test_empty_rejected(self, value):
        with pytest.raises(VersionLookupError):
            normalize_version(value)


class TestExtractTagName:
    def test_json_document(self):
        assert extract_tag_name('{"tag_name": "v2.0.0", "name": "Release"}') == "v2.0.0"

    def test_malformed_document_falls_back_to_pattern(self):
        assert extract_tag_name('garbage "tag_name": "v2.0.1", {') == "v2.0.1"

    def test_missing_tag(self):
        assert extract_tag_name('{"message": "Not Found"}') is None
        assert extract_tag_name("[]") is None


class TestVersionResolver:
    """Test the three resolution paths."""

    @pytest.mark.asyncio
    async def test_explicit_version_needs_no_network(self):
        http = FakeHttpClient()
        resolver = VersionResolver(http, api_url=API_URL)

        result = await resolver.resolve("1.4.0")

        assert result == ResolvedVersion(tag="v1.4.0", numeric="1.4.0")
        assert http.requests == []

    @pytest.mark.asyncio
    async def test_latest_from_releases_api(self):
        http = FakeHttpClient({API_URL: '{"tag_name": "v2.3.4"}'})
        resolver = VersionResolver(http, source="github", api_url=API_URL)

        result = await resolver.resolve("latest")

        assert result.tag == "v2.3.4"
        assert result.numeric == "2.3.4"
        assert http.requests == [API_URL]

    @pytest.mark.asyncio
    async def test_latest_from_static_pointer(self):
        http = FakeHttpClient({POINTER_URL: "v1.9.0\n"})
        resolver = VersionResolver(http, source="static", pointer_url=POINTER_URL)

        result = await resolver.resolve()

        assert result.tag == "v1.9.0"

    @pytest.mark.asyncio
    async def test_empty_pointer_is_fatal(self):
        http = FakeHttpClient({POINTER_URL: "  \n"})
        resolver = VersionResolver(http, source="static", pointer_url=POINTER_URL)

        with pytest.raises(VersionLookupError) as exc_info:
            await resolver.resolve("latest")

        assert "empty" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unreachable_pointer_is_fatal(self):
        http = FakeHttpClient(
            {POINTER_URL: aiohttp.ClientConnectionError("connection refused")}
        )
        resolver = VersionResolver(http, source="static", pointer_url=POINTER_URL)

        with pytest.raises(VersionLookupError) as exc_info:
            await resolver.resolve("latest")

        assert exc_info.value.details["url"] == POINTER_URL
        assert exc_info.value.step == "resolve-version"

    @pytest.mark.asyncio
    async def test_undecodable_pointer_is_fatal(self):
        http = FakeHttpClient({POINTER_URL: b"\xff\xfev1.9.0\n"})
        resolver = VersionResolver(http, source="static", pointer_url=POINTER_URL)

        with pytest.raises(VersionLookupError) as exc_info:
            await resolver.resolve("latest")

        assert exc_info.value.details["url"] == POINTER_URL

    @pytest.mark.asyncio
    async def test_undecodable_api_document_is_fatal(self):
        http = FakeHttpClient({API_URL: b"\x80\x81{\"tag_name\": \"v2.3.4\"}"})
        resolver = VersionResolver(http, api_url=API_URL)

        with pytest.raises(VersionLookupError) as exc_info:
            await resolver.resolve("latest")

        assert exc_info.value.step == "resolve-version"

    @pytest.mark.asyncio
    async def test_api_document_without_tag_is_fatal(self):
        http = FakeHttpClient({API_URL: '{"message": "API rate limit exceeded"}'})
        resolver = VersionResolver(http, api_url=API_URL)

        with pytest.raises(VersionLookupError) as exc_info:
            await resolver.resolve("latest")

        assert "Could not determine latest version" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_api_not_found_is_fatal(self):
        resolver = VersionResolver(FakeHttpClient(), api_url=API_URL)

        with pytest.raises(VersionLookupError):
            await resolver.resolve("latest")

    @pytest.mark.asyncio
    async def test_token_sent_as_bearer(self, mocker):
        http = mocker.Mock()
        http.fetch_text = mocker.AsyncMock(return_value='{"tag_name": "v1.0.0"}')
        resolver = VersionResolver(http, api_url=API_URL, api_token="s3cr3t")

        await resolver.resolve("latest")

        _, kwargs = http.fetch_text.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer s3cr3t"

    def test_unknown_source(self):
        with pytest.raises(ValueError):
            VersionResolver(FakeHttpClient(), source="ftp")
