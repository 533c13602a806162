"""Tests for registry clients."""

import subprocess
from unittest.mock import patch

import httpx
import pytest

from lockdiff.models import Unresolved
from lockdiff.registry import NpmCliClient, NpmRegistryClient, RegistryError, parse_view_output
from lockdiff.resolve import VersionResolver

PACKUMENT = {
    "name": "foo",
    "dist-tags": {"latest": "2.0.0", "next": "3.0.0-rc.1"},
    "versions": {
        "1.0.0": {},
        "1.1.0": {},
        "1.2.0-beta.1": {},
        "2.0.0": {},
        "3.0.0-rc.1": {},
    },
}


def make_client(handler) -> NpmRegistryClient:
    return NpmRegistryClient(
        registry_url="https://registry.example.com/",
        transport=httpx.MockTransport(handler),
    )


class TestNpmRegistryClient:
    """Test the HTTP registry client."""

    @pytest.mark.asyncio
    async def test_range_returns_matching_versions(self):
        """Should return published versions satisfying the range."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=PACKUMENT)

        versions = await make_client(handler).fetch_versions("foo", "^1.0.0")

        assert versions == ["1.0.0", "1.1.0"]
        assert str(requests[0].url) == "https://registry.example.com/foo"
        assert requests[0].headers["accept"] == "application/vnd.npm.install-v1+json"

    @pytest.mark.asyncio
    async def test_dist_tag_returns_single_version(self):
        """Should return the tagged version for a dist-tag."""
        client = make_client(lambda request: httpx.Response(200, json=PACKUMENT))
        assert await client.fetch_versions("foo", "latest") == "2.0.0"
        assert await client.fetch_versions("foo", "next") == "3.0.0-rc.1"

    @pytest.mark.asyncio
    async def test_unknown_tag_returns_nothing(self):
        """Should return nothing for an unknown dist-tag."""
        client = make_client(lambda request: httpx.Response(200, json=PACKUMENT))
        assert await client.fetch_versions("foo", "canary") == []

    def test_scoped_package_url(self):
        """Should escape the slash of scoped package names."""
        client = NpmRegistryClient()
        assert client.package_url("@types/node") == "https://registry.npmjs.org/@types%2Fnode"

    @pytest.mark.asyncio
    async def test_not_found(self):
        """Should raise a registry error for unknown packages."""
        client = make_client(lambda request: httpx.Response(404, json={"error": "Not found"}))
        with pytest.raises(RegistryError) as exc_info:
            await client.fetch_versions("missing", "latest")
        assert "not found" in str(exc_info.value).lower()

    @pytest.mark.asyncio
    async def test_server_error(self):
        """Should raise a registry error for server errors."""
        client = make_client(lambda request: httpx.Response(500))
        with pytest.raises(RegistryError) as exc_info:
            await client.fetch_versions("foo", "latest")
        assert "HTTP error" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Should raise a registry error on timeout."""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(RegistryError) as exc_info:
            await make_client(handler).fetch_versions("foo", "latest")
        assert "Timeout" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_body(self):
        """Should raise a registry error for non-JSON bodies."""
        client = make_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(RegistryError):
            await client.fetch_versions("foo", "latest")

    @pytest.mark.asyncio
    async def test_undecodable_body(self):
        """Should report a body that is not valid UTF-8 as a registry error."""
        client = make_client(lambda request: httpx.Response(200, content=b'\xff\xfe{"x":'))
        with pytest.raises(RegistryError):
            await client.fetch_versions("foo", "latest")

    @pytest.mark.asyncio
    async def test_versions_not_a_mapping(self):
        """Should reject a packument whose versions field is not an object."""
        client = make_client(lambda request: httpx.Response(200, json={"versions": ["1.0.0"]}))
        with pytest.raises(RegistryError) as exc_info:
            await client.fetch_versions("foo", "^1.0.0")
        assert "versions is not a mapping" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_dist_tags_not_a_mapping(self):
        """Should reject a packument whose dist-tags field is not an object."""
        client = make_client(lambda request: httpx.Response(200, json={"dist-tags": "2.0.0", "versions": {}}))
        with pytest.raises(RegistryError):
            await client.fetch_versions("foo", "latest")

    @pytest.mark.asyncio
    async def test_missing_fields_mean_no_versions(self):
        """Should treat absent or null dist-tags and versions as empty."""
        client = make_client(lambda request: httpx.Response(200, json={"name": "foo", "dist-tags": None}))
        assert await client.fetch_versions("foo", "latest") == []

    @pytest.mark.asyncio
    async def test_malformed_answer_resolves_to_registry_error(self):
        """Should let the resolver turn a malformed answer into a sentinel."""
        client = make_client(lambda request: httpx.Response(200, content=b'\xff\xfe{"x":'))
        version = await VersionResolver(client).resolve("foo", "latest")
        assert version is Unresolved.REGISTRY_ERROR


class TestNpmCliClient:
    """Test the npm executable client."""

    @pytest.mark.asyncio
    async def test_runs_npm_view(self):
        """Should run npm view with the configured timeout."""
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout='["1.0.0", "1.1.0"]\n', stderr="")
        with patch("lockdiff.registry.subprocess.run", return_value=completed) as mock_run:
            versions = await NpmCliClient(timeout=5).fetch_versions("foo", "^1.0.0")

        assert versions == ["1.0.0", "1.1.0"]
        command = mock_run.call_args[0][0]
        assert command == ["npm", "view", "foo@^1.0.0", "version", "--json"]
        assert mock_run.call_args[1]["timeout"] == 5

    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        """Should raise a registry error when npm exits non-zero."""
        error = subprocess.CalledProcessError(1, ["npm"], stderr="npm ERR! 404 Not Found\n")
        with patch("lockdiff.registry.subprocess.run", side_effect=error):
            with pytest.raises(RegistryError) as exc_info:
                await NpmCliClient().fetch_versions("missing", "latest")
        assert "404" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Should raise a registry error when npm times out."""
        error = subprocess.TimeoutExpired(["npm"], 10)
        with patch("lockdiff.registry.subprocess.run", side_effect=error):
            with pytest.raises(RegistryError):
                await NpmCliClient().fetch_versions("foo", "latest")

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        """Should raise a registry error when npm is not installed."""
        with patch("lockdiff.registry.subprocess.run", side_effect=FileNotFoundError("npm")):
            with pytest.raises(RegistryError):
                await NpmCliClient().fetch_versions("foo", "latest")

    def test_registry_flag_only_when_configured(self):
        """Should pass --registry to npm only when a registry was given."""
        assert NpmCliClient().command("foo", "latest") == ["npm", "view", "foo@latest", "version", "--json"]
        assert NpmCliClient(registry_url="https://npm.example.com").command("foo", "latest") == [
            "npm", "view", "foo@latest", "version", "--json", "--registry", "https://npm.example.com"
        ]

    @pytest.mark.asyncio
    async def test_undecodable_output_is_replaced(self):
        """Should decode npm output leniently so bad bytes never escape."""
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="\ufffd\ufffd", stderr="")
        with patch("lockdiff.registry.subprocess.run", return_value=completed) as mock_run:
            versions = await NpmCliClient().fetch_versions("foo", "latest")

        assert versions == []
        assert mock_run.call_args[1]["errors"] == "replace"


class TestParseViewOutput:
    """Test parsing of npm view output."""

    def test_json_string(self):
        """Should parse a single JSON version."""
        assert parse_view_output('"2.0.0"\n') == "2.0.0"

    def test_json_list(self):
        """Should parse a JSON list of versions."""
        assert parse_view_output('[\n  "1.0.0",\n  "1.0.1"\n]') == ["1.0.0", "1.0.1"]

    def test_non_json_fallback(self):
        """Should pull quoted versions out of non-JSON output."""
        output = "foo@1.0.0 '1.0.0'\nfoo@1.0.1 '1.0.1'\n"
        assert parse_view_output(output) == ["1.0.0", "1.0.1"]

    def test_empty(self):
        """Should treat blank output as no versions."""
        assert parse_view_output("  \n") == []
