"""Resolve a range or dist-tag to a single concrete version."""

import logging

from .models import Manifest, Unresolved
from .registry import RegistryClient, RegistryError
from .versions import max_satisfying, valid

logger = logging.getLogger(__name__)


class VersionResolver:
    """Reduce registry answers to one valid version or an ``Unresolved`` sentinel."""

    def __init__(self, client: RegistryClient):
        self.client = client

    async def resolve(self, package_name: str, spec: str) -> str | Unresolved:
        """Resolve ``package_name@spec``.

        Args:
            package_name: Name of the package
            spec: Version range or dist-tag

        Returns:
            The highest valid version satisfying ``spec``. When the registry
            answered but nothing satisfies ``spec`` as a range (dist-tags
            never do), the last valid version of the answer is used instead.
        """
        try:
            answer = await self.client.fetch_versions(package_name, spec)
        except RegistryError as e:
            logger.warning(f"Error fetching version for {package_name}: {e}")
            return Unresolved.REGISTRY_ERROR

        versions = answer if isinstance(answer, list) else [answer]
        valid_versions = [v for v in versions if valid(v)]

        if not valid_versions:
            logger.warning(f"No valid versions found for {package_name}")
            return Unresolved.NO_VALID_VERSION

        return max_satisfying(valid_versions, spec) or valid_versions[-1]

    async def installable(self, package_name: str, manifest: Manifest) -> str | Unresolved:
        """Resolve the version a fresh install would pick for a declared dependency."""
        dependency = manifest.get(package_name)
        if dependency is None:
            logger.warning(f"Package {package_name} not found in package.json")
            return Unresolved.NOT_IN_MANIFEST
        return await self.resolve(package_name, dependency.spec)

    async def latest(self, package_name: str) -> str | Unresolved:
        return await self.resolve(package_name, "latest")
