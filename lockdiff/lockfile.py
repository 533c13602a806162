"""package.json and package-lock.json reading."""

import json
from pathlib import Path

from .models import Category, Dependency, Lockfile, Manifest, Unresolved

MANIFEST_NAME = "package.json"
LOCKFILE_NAME = "package-lock.json"


class ProjectFileError(Exception):
    """A manifest or lockfile is missing or cannot be parsed."""


def find_project_files(directory: Path) -> tuple[Path, Path]:
    """Locate package.json and package-lock.json in ``directory``.

    Raises:
        ProjectFileError: If either file is missing
    """
    manifest_path = directory / MANIFEST_NAME
    lockfile_path = directory / LOCKFILE_NAME
    if not manifest_path.is_file() or not lockfile_path.is_file():
        raise ProjectFileError(
            "Both package.json and package-lock.json must exist in the specified directory."
        )
    return manifest_path, lockfile_path


def _read_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProjectFileError(f"Failed to parse {path.name}: {e}")
    if not isinstance(data, dict):
        raise ProjectFileError(f"Failed to parse {path.name}: expected a JSON object")
    return data


def parse_manifest(data: dict) -> Manifest:
    """Build a Manifest from package.json content.

    Sections are merged in runtime, development, peer order; a name declared
    in several sections keeps its first declaration.
    """
    seen: set[str] = set()
    dependencies: list[Dependency] = []

    for category in Category:
        section = data.get(category.value) or {}
        if not isinstance(section, dict):
            continue
        for name, spec in section.items():
            if name in seen or not isinstance(spec, str):
                continue
            seen.add(name)
            dependencies.append(Dependency(name=name, spec=spec, category=category))

    return Manifest(
        name=data.get("name"),
        version=data.get("version"),
        dependencies=tuple(dependencies),
    )


def parse_lockfile(data: dict) -> Lockfile:
    packages = data.get("packages")
    legacy = data.get("dependencies")
    return Lockfile(
        lockfile_version=data.get("lockfileVersion"),
        packages=packages if isinstance(packages, dict) else {},
        dependencies=legacy if isinstance(legacy, dict) else {},
    )


def load_manifest(path: Path) -> Manifest:
    return parse_manifest(_read_json(path))


def load_lockfile(path: Path) -> Lockfile:
    return parse_lockfile(_read_json(path))


def installed_version(package_name: str, lockfile: Lockfile) -> str | Unresolved:
    """Get the version pinned for a top-level dependency.

    Args:
        package_name: Name of the package
        lockfile: Parsed lockfile

    Returns:
        The pinned version, or ``Unresolved.NOT_INSTALLED``
    """
    # npm 7+
    entry = lockfile.packages.get(f"node_modules/{package_name}")
    if isinstance(entry, dict) and entry.get("version"):
        return entry["version"]

    # npm 6 and earlier
    entry = lockfile.dependencies.get(package_name)
    if isinstance(entry, dict) and entry.get("version"):
        return entry["version"]

    return Unresolved.NOT_INSTALLED
