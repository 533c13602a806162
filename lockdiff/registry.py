"""npm registry queries."""

import asyncio
import json
import re
import subprocess
from typing import Protocol
from urllib.parse import quote

import httpx

from .versions import InvalidRange, Range, parse

DEFAULT_REGISTRY = "https://registry.npmjs.org"
DEFAULT_TIMEOUT = 10.0

_QUOTED = re.compile(r"""['"](.+?)['"]""")


class RegistryError(Exception):
    """A registry lookup failed (timeout, HTTP error, bad output)."""


class RegistryClient(Protocol):
    """Anything that can answer "which versions match name@spec"."""

    async def fetch_versions(self, package_name: str, spec: str) -> str | list[str]:
        ...


class NpmRegistryClient:
    """Query the npm registry over HTTP."""

    def __init__(
        self,
        registry_url: str = DEFAULT_REGISTRY,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the registry client.

        Args:
            registry_url: Base URL of the registry
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.registry_url = registry_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def package_url(self, package_name: str) -> str:
        # Scoped packages keep the leading @ but escape the slash
        return f"{self.registry_url}/{quote(package_name, safe='@')}"

    async def fetch_versions(self, package_name: str, spec: str) -> str | list[str]:
        """Get the published versions matching a range or dist-tag.

        Args:
            package_name: Name of the package
            spec: Version range (e.g. "^1.2.0") or dist-tag (e.g. "latest")

        Returns:
            The tagged version for a dist-tag, otherwise every published
            version satisfying the range
        """
        metadata = await self._fetch_packument(package_name)

        dist_tags = metadata["dist-tags"]
        if spec in dist_tags:
            return dist_tags[spec]

        versions = list(metadata["versions"].keys())
        try:
            range_ = Range(spec)
        except InvalidRange:
            return []

        matching = []
        for version in versions:
            parsed = parse(version)
            if parsed is not None and range_.test(parsed):
                matching.append(version)
        return matching

    async def _fetch_packument(self, package_name: str) -> dict:
        url = self.package_url(package_name)
        headers = {"Accept": "application/vnd.npm.install-v1+json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=headers)
                if response.status_code == 404:
                    raise RegistryError(f"Package {package_name} not found")
                response.raise_for_status()
                metadata = response.json()

        except httpx.TimeoutException:
            raise RegistryError(f"Timeout fetching metadata for {package_name}")
        except httpx.HTTPStatusError as e:
            raise RegistryError(f"HTTP error fetching {package_name}: {e}")
        except httpx.HTTPError as e:
            raise RegistryError(f"Network error fetching {package_name}: {e}")
        except ValueError:
            # Undecodable or non-JSON body
            raise RegistryError(f"Invalid registry response for {package_name}")

        if not isinstance(metadata, dict):
            raise RegistryError(f"Invalid registry response for {package_name}")
        for key in ("dist-tags", "versions"):
            if metadata.get(key) is None:
                metadata[key] = {}
            elif not isinstance(metadata[key], dict):
                raise RegistryError(f"Invalid registry response for {package_name}: {key} is not a mapping")
        return metadata


class NpmCliClient:
    """Query the registry through ``npm view``, honouring the user's npm config."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        registry_url: str | None = None,
        npm: str = "npm",
    ):
        """Initialize the npm client.

        Args:
            timeout: Per-command timeout in seconds
            registry_url: Registry to pass to npm; None leaves it to .npmrc
            npm: npm executable
        """
        self.timeout = timeout
        self.registry_url = registry_url
        self.npm = npm

    async def fetch_versions(self, package_name: str, spec: str) -> str | list[str]:
        return await asyncio.to_thread(self._view, package_name, spec)

    def command(self, package_name: str, spec: str) -> list[str]:
        command = [self.npm, "view", f"{package_name}@{spec}", "version", "--json"]
        if self.registry_url:
            command += ["--registry", self.registry_url]
        return command

    def _view(self, package_name: str, spec: str) -> str | list[str]:
        command = self.command(package_name, spec)
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
                check=True,
            )
        except subprocess.TimeoutExpired:
            raise RegistryError(f"Command timed out: {' '.join(command)}")
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip().splitlines()
            reason = detail[0] if detail else f"exit status {e.returncode}"
            raise RegistryError(f"Command failed: {' '.join(command)}: {reason}")
        except OSError as e:
            raise RegistryError(f"Unable to run {self.npm}: {e}")

        return parse_view_output(completed.stdout)


def parse_view_output(output: str) -> str | list[str]:
    """Parse ``npm view ... version --json`` output.

    Falls back to pulling quoted strings out line by line when the output is
    not JSON (older npm releases print a JS-ish listing).
    """
    output = output.strip()
    if not output:
        return []
    try:
        versions = json.loads(output)
    except json.JSONDecodeError:
        versions = []
        for line in output.splitlines():
            match = _QUOTED.search(line)
            if match:
                versions.append(match.group(1))
    return versions
