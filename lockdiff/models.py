"""Core data models for lockdiff."""

from dataclasses import dataclass, field
from enum import Enum


class Category(str, Enum):
    """Manifest section a dependency is declared in."""

    RUNTIME = "dependencies"
    DEVELOPMENT = "devDependencies"
    PEER = "peerDependencies"


class Unresolved(str, Enum):
    """Sentinel values standing in for a version that could not be determined."""

    NOT_IN_MANIFEST = "Not found in package.json"
    REGISTRY_ERROR = "Error fetching version"
    NO_VALID_VERSION = "Unable to determine"
    NOT_INSTALLED = "Not installed"


class Severity(str, Enum):
    """Visual weight of a drift."""

    UNCHANGED = "unchanged"
    MINOR = "minor"
    MAJOR = "major"


@dataclass(frozen=True)
class Dependency:
    """A single dependency declared in package.json."""

    name: str
    spec: str
    category: Category = Category.RUNTIME


@dataclass(frozen=True)
class Manifest:
    """A parsed package.json."""

    name: str | None
    version: str | None
    dependencies: tuple[Dependency, ...] = ()

    def get(self, name: str) -> Dependency | None:
        for dependency in self.dependencies:
            if dependency.name == name:
                return dependency
        return None


@dataclass(frozen=True)
class Lockfile:
    """A parsed package-lock.json.

    ``packages`` holds the npm 7+ path-keyed entries, ``dependencies`` the
    flat npm 6 entries. Either may be empty.
    """

    lockfile_version: int | None = None
    packages: dict = field(default_factory=dict)
    dependencies: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ComparisonResult:
    """Three-way comparison of one dependency."""

    dependency: Dependency
    installed: str
    installable: str
    latest: str
    installable_changed: bool
    latest_changed: bool
    major_changed: bool
    diff_kind: str | None = None


@dataclass(frozen=True)
class ReportRow:
    """A comparison selected for display."""

    result: ComparisonResult
    severity: Severity


@dataclass
class Report:
    """Rows to display; ``empty`` means nothing drifted."""

    rows: list[ReportRow]

    @property
    def empty(self) -> bool:
        return not self.rows
