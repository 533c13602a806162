"""Three-way version comparison."""

import logging
from collections.abc import Callable

from .lockfile import installed_version
from .models import ComparisonResult, Dependency, Lockfile, Manifest, Unresolved
from .resolve import VersionResolver
from .versions import diff, major, valid

logger = logging.getLogger(__name__)


def classify(
    dependency: Dependency, installed: str, installable: str, latest: str
) -> ComparisonResult:
    """Compare the locked, installable and latest versions of a dependency.

    Args:
        dependency: The manifest declaration
        installed: Version pinned in the lockfile
        installable: Highest version satisfying the declared range
        latest: Version under the ``latest`` dist-tag

    Returns:
        The comparison result

    Raises:
        ValueError: If any of the versions is not a valid semantic version
    """
    normalized = [valid(v) for v in (installed, installable, latest)]
    if None in normalized:
        raise ValueError(f"Invalid version for {dependency.name}: {installed}, {installable}, {latest}")
    installed, installable, latest = normalized

    installable_changed = installable != installed
    latest_changed = installed != latest
    major_changed = major(installed) != major(latest)

    if latest_changed:
        diff_kind = diff(installed, latest)
    elif installable_changed:
        diff_kind = diff(installed, installable)
    else:
        diff_kind = None

    return ComparisonResult(
        dependency=dependency,
        installed=installed,
        installable=installable,
        latest=latest,
        installable_changed=installable_changed,
        latest_changed=latest_changed,
        major_changed=major_changed,
        diff_kind=diff_kind,
    )


async def compare_dependency(
    dependency: Dependency,
    manifest: Manifest,
    lockfile: Lockfile,
    resolver: VersionResolver,
) -> ComparisonResult | None:
    """Resolve and classify one dependency, or return None if it must be skipped."""
    name = dependency.name
    installed = installed_version(name, lockfile)
    installable = await resolver.installable(name, manifest)
    latest = await resolver.latest(name)

    versions = (installed, installable, latest)
    if any(isinstance(v, Unresolved) for v in versions):
        logger.warning(f"Unable to determine all versions for {name}. Skipping.")
        return None

    if not all(valid(v) for v in versions):
        logger.warning(f"Invalid version detected for {name}. Skipping.")
        return None

    return classify(dependency, installed, installable, latest)


async def compare_project(
    manifest: Manifest,
    lockfile: Lockfile,
    resolver: VersionResolver,
    on_progress: Callable[[str], None] | None = None,
) -> list[ComparisonResult]:
    """Compare every declared dependency, one at a time, in manifest order.

    A failure for one dependency is logged and does not stop the others.
    """
    results: list[ComparisonResult] = []

    for dependency in manifest.dependencies:
        if on_progress:
            on_progress(dependency.name)
        try:
            result = await compare_dependency(dependency, manifest, lockfile, resolver)
        except Exception as e:
            logger.warning(f"Error processing package {dependency.name}: {e}")
            continue
        if result is not None:
            results.append(result)

    return results
