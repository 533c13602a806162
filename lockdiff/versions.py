"""npm-flavoured semantic version helpers built on the semver library.

npm ranges (``^1.2.0``, ``~1.2``, ``1.x``, ``>=1.0.0 <2.0.0 || 3.x``,
``1.2 - 2.3.4``) are desugared into sets of primitive comparators which are
then checked with ``semver.Version`` ordering.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from semver import Version

_PARTIAL = re.compile(
    r"""^
    (?P<op><=|>=|<|>|=|~>|~|\^)?
    \s*v?
    (?P<major>0|[1-9]\d*|[xX*])
    (?:\.(?P<minor>0|[1-9]\d*|[xX*])
      (?:\.(?P<patch>0|[1-9]\d*|[xX*])
        (?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
        (?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
      )?
    )?$""",
    re.VERBOSE,
)
_HYPHEN = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_OPERATOR_SPACE = re.compile(r"(<=|>=|<|>|=|~>|~|\^)\s+")


class InvalidRange(ValueError):
    """Range text that is not valid npm range syntax."""


def parse(value) -> Version | None:
    """Parse a strict semantic version, tolerating one leading ``v``."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.startswith("v"):
        text = text[1:]
    try:
        return Version.parse(text)
    except ValueError:
        return None


def valid(value) -> str | None:
    """Return the normalized version string, or None if ``value`` is not semver."""
    version = parse(value)
    if version is None:
        return None
    return str(version.replace(build=None))


def major(value: str) -> int:
    version = parse(value)
    if version is None:
        raise ValueError(f"Invalid version: {value!r}")
    return version.major


def _main(version: Version) -> tuple[int, int, int]:
    return version.major, version.minor, version.patch


def diff(a: str, b: str) -> str | None:
    """Return the release type separating two versions, or None if equal.

    Mirrors npm's ``semver.diff``: one of major, premajor, minor, preminor,
    patch, prepatch or prerelease.
    """
    v1, v2 = parse(a), parse(b)
    if v1 is None or v2 is None:
        raise ValueError(f"Invalid version: {a!r} / {b!r}")

    comparison = v1.compare(v2)
    if comparison == 0:
        return None

    high, low = (v1, v2) if comparison > 0 else (v2, v1)
    high_has_pre = high.prerelease is not None
    low_has_pre = low.prerelease is not None

    if low_has_pre and not high_has_pre:
        # 1.0.0-rc.1 -> 1.0.0 is a major bump, 1.2.0-rc.1 -> 1.2.0 a minor one
        if not low.patch and not low.minor:
            return "major"
        if _main(low) == _main(high):
            if low.minor and not low.patch:
                return "minor"
            return "patch"

    prefix = "pre" if high_has_pre else ""
    if v1.major != v2.major:
        return prefix + "major"
    if v1.minor != v2.minor:
        return prefix + "minor"
    if v1.patch != v2.patch:
        return prefix + "patch"
    return "prerelease"


@dataclass(frozen=True)
class Comparator:
    """A primitive ``<op><version>`` test; ``version`` None matches anything."""

    operator: str = ""
    version: Version | None = None

    def test(self, version: Version) -> bool:
        if self.version is None:
            return True
        comparison = version.compare(self.version)
        if self.operator == "<":
            return comparison < 0
        if self.operator == "<=":
            return comparison <= 0
        if self.operator == ">":
            return comparison > 0
        if self.operator == ">=":
            return comparison >= 0
        return comparison == 0


ANY = Comparator()
NOTHING = Comparator("<", Version(0, 0, 0, "0"))


def _is_x(part: str | None) -> bool:
    return part is None or part in ("x", "X", "*")


def _v(major: int, minor: int = 0, patch: int = 0, prerelease: str | None = None) -> Version:
    return Version(major, minor, patch, prerelease)


def _caret(M, m, p, pre) -> list[Comparator]:
    if _is_x(M):
        return [ANY]
    M = int(M)
    if _is_x(m):
        return [Comparator(">=", _v(M)), Comparator("<", _v(M + 1, prerelease="0"))]
    m = int(m)
    if _is_x(p):
        if M == 0:
            return [Comparator(">=", _v(M, m)), Comparator("<", _v(M, m + 1, prerelease="0"))]
        return [Comparator(">=", _v(M, m)), Comparator("<", _v(M + 1, prerelease="0"))]
    p = int(p)
    low = Comparator(">=", _v(M, m, p, pre))
    if M == 0:
        if m == 0:
            return [low, Comparator("<", _v(M, m, p + 1, prerelease="0"))]
        return [low, Comparator("<", _v(M, m + 1, prerelease="0"))]
    return [low, Comparator("<", _v(M + 1, prerelease="0"))]


def _tilde(M, m, p, pre) -> list[Comparator]:
    if _is_x(M):
        return [ANY]
    M = int(M)
    if _is_x(m):
        return [Comparator(">=", _v(M)), Comparator("<", _v(M + 1, prerelease="0"))]
    m = int(m)
    upper = Comparator("<", _v(M, m + 1, prerelease="0"))
    if _is_x(p):
        return [Comparator(">=", _v(M, m)), upper]
    return [Comparator(">=", _v(M, m, int(p), pre)), upper]


def _xrange(op, M, m, p, pre) -> list[Comparator]:
    if op == "=" and (_is_x(M) or _is_x(m) or _is_x(p)):
        op = ""

    if _is_x(M):
        if op in (">", "<"):
            return [NOTHING]
        return [ANY]

    M = int(M)
    if op and (_is_x(m) or _is_x(p)):
        minor_x = _is_x(m)
        m = 0 if minor_x else int(m)
        p = 0
        prerelease = None
        if op == ">":
            op = ">="
            if minor_x:
                M, m = M + 1, 0
            else:
                m += 1
        elif op == "<=":
            op = "<"
            if minor_x:
                M += 1
            else:
                m += 1
        if op == "<":
            prerelease = "0"
        return [Comparator(op, _v(M, m, p, prerelease))]

    if _is_x(m):
        return [Comparator(">=", _v(M)), Comparator("<", _v(M + 1, prerelease="0"))]
    m = int(m)
    if _is_x(p):
        return [Comparator(">=", _v(M, m)), Comparator("<", _v(M, m + 1, prerelease="0"))]
    return [Comparator(op or "=", _v(M, m, int(p), pre))]


def _match(token: str) -> re.Match:
    match = _PARTIAL.match(token)
    if not match:
        raise InvalidRange(f"Invalid comparator: {token!r}")
    return match


def _comparators(token: str) -> list[Comparator]:
    match = _match(token)
    op = match.group("op") or ""
    parts = match.group("major", "minor", "patch", "pre")
    if op == "^":
        return _caret(*parts)
    if op in ("~", "~>"):
        return _tilde(*parts)
    return _xrange(op, *parts)


def _hyphen(low: str, high: str) -> list[Comparator]:
    lo = _match(low)
    hi = _match(high)
    if lo.group("op") or hi.group("op"):
        raise InvalidRange(f"Invalid hyphen range: {low} - {high}")

    comparators = []
    M, m, p, pre = lo.group("major", "minor", "patch", "pre")
    if not _is_x(M):
        if _is_x(m):
            comparators.append(Comparator(">=", _v(int(M))))
        elif _is_x(p):
            comparators.append(Comparator(">=", _v(int(M), int(m))))
        else:
            comparators.append(Comparator(">=", _v(int(M), int(m), int(p), pre)))

    M, m, p, pre = hi.group("major", "minor", "patch", "pre")
    if not _is_x(M):
        if _is_x(m):
            comparators.append(Comparator("<", _v(int(M) + 1, prerelease="0")))
        elif _is_x(p):
            comparators.append(Comparator("<", _v(int(M), int(m) + 1, prerelease="0")))
        else:
            comparators.append(Comparator("<=", _v(int(M), int(m), int(p), pre)))

    return comparators or [ANY]


class Range:
    """An npm version range: a union of comparator sets."""

    def __init__(self, text: str):
        if not isinstance(text, str):
            raise InvalidRange(f"Invalid range: {text!r}")
        self.sets: list[list[Comparator]] = [
            self._parse_set(part.strip()) for part in re.split(r"\|\|", text.strip())
        ]

    @staticmethod
    def _parse_set(text: str) -> list[Comparator]:
        if not text:
            return [ANY]
        hyphen = _HYPHEN.match(text)
        if hyphen:
            return _hyphen(hyphen.group("low"), hyphen.group("high"))
        comparators: list[Comparator] = []
        for token in _OPERATOR_SPACE.sub(r"\1", text).split():
            comparators.extend(_comparators(token))
        return comparators

    def test(self, version: Version) -> bool:
        return any(self._test_set(comparators, version) for comparators in self.sets)

    @staticmethod
    def _test_set(comparators: list[Comparator], version: Version) -> bool:
        if not all(comparator.test(version) for comparator in comparators):
            return False
        if version.prerelease is None:
            return True
        # Prereleases only match when the range opts in on the same tuple
        for comparator in comparators:
            if comparator.version is None or comparator.version.prerelease is None:
                continue
            if _main(comparator.version) == _main(version):
                return True
        return False


def satisfies(version: str, range_text: str) -> bool:
    parsed = parse(version)
    if parsed is None:
        return False
    try:
        return Range(range_text).test(parsed)
    except InvalidRange:
        return False


def max_satisfying(versions: Iterable[str], range_text: str) -> str | None:
    """Return the highest version satisfying ``range_text``.

    Returns None when nothing satisfies or the range itself is invalid
    (a dist-tag such as ``latest`` is not a range).
    """
    try:
        range_ = Range(range_text)
    except InvalidRange:
        return None

    best: Version | None = None
    for value in versions:
        version = parse(value)
        if version is None or not range_.test(version):
            continue
        if best is None or version.compare(best) > 0:
            best = version

    if best is None:
        return None
    return str(best.replace(build=None))
