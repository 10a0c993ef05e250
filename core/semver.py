"""npm-style semantic versions and ranges.

Supported expressions:
- exact versions ("1.2.3", "=1.2.3", "v1.2.3")
- partial versions and x-ranges ("1", "1.2", "1.x", "1.2.*", "*")
- caret ranges ^x.y.z and tilde ranges ~x.y.z / ~>x.y.z
- comparator sets split by spaces, e.g. ">=1.0.0 <2.0.0"
- hyphen ranges, e.g. "1.2.3 - 2.3.4"
- alternatives joined by "||"
"""

import functools
import operator
import re
from dataclasses import dataclass

from packaging.version import Version

from .errors import InvalidConstraintError

# Declarations that accept any published version
ANY_VERSION = ("", "*", "x", "X", "latest")
WILDCARDS = ("*", "x", "X")


def _identifier_key(identifier: str) -> tuple:
    # numeric identifiers sort numerically and below alphanumeric ones
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


@functools.total_ordering
@dataclass(frozen=True)
class SemVer:
    """A concrete version ordered by npm precedence rules.

    The release part is a plain ``major.minor.patch`` ``Version``; the
    pre-release tag is kept as its dot-separated identifiers because npm
    tags such as ``-0`` or ``-canary.1`` have no PEP 440 meaning.
    """

    release: Version
    pre: tuple[str, ...] = ()

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)

    def _key(self) -> tuple:
        if not self.pre:
            # a release outranks all of its pre-releases
            return (self.release, 1, ())
        return (self.release, 0, tuple(_identifier_key(i) for i in self.pre))

    def __lt__(self, other: "SemVer") -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = str(self.release)
        if self.pre:
            text += "-" + ".".join(self.pre)
        return text


_PARTIAL_RE = re.compile(
    r"^[v=]*\s*"
    r"(?P<major>\d+|[xX*])"
    r"(?:\.(?P<minor>\d+|[xX*])"
    r"(?:\.(?P<patch>\d+|[xX*])"
    r"(?:-?(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?"
    r")?)?$"
)
_OPERATOR = r"<=|>=|<|>|=|\^|~>|~"
_COMPARATOR_RE = re.compile(rf"^(?P<op>{_OPERATOR})?(?P<version>.*)$")
_SIMPLE_RE = re.compile(rf"^(?P<op>{_OPERATOR})?\s*(?P<version>[^\s|]+)$")
_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_OPERATOR_SPACE_RE = re.compile(rf"({_OPERATOR})\s+")

_TESTS = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "=": operator.eq,
}


@dataclass(frozen=True)
class Partial:
    """A possibly incomplete version such as ``1``, ``1.2`` or ``1.x``."""

    major: int | None
    minor: int | None = None
    patch: int | None = None
    pre: str | None = None
    wildcard: str | None = None  # first wildcard character written, if any
    size: int = 3  # number of dot-separated components written

    @property
    def is_full(self) -> bool:
        return self.patch is not None

    @property
    def precision(self) -> int:
        return sum(part is not None for part in (self.major, self.minor, self.patch))


@dataclass(frozen=True)
class Comparator:
    """A single ``<op> <version>`` test."""

    operator: str
    version: SemVer

    def test(self, version: SemVer) -> bool:
        return _TESTS[self.operator](version, self.version)


def parse_partial(text: str) -> Partial:
    """Parse a full or partial version string.

    Raises:
        InvalidConstraintError: If the text is not a version
    """
    match = _PARTIAL_RE.match(text.strip())
    if not match:
        raise InvalidConstraintError(f"Invalid version: {text!r}")

    parts: list[int | None] = []
    wildcard = None
    size = 0
    for key in ("major", "minor", "patch"):
        value = match.group(key)
        if value is not None:
            size += 1
        if value in WILDCARDS and wildcard is None:
            wildcard = value
        # everything after a wildcard or a missing part is unbounded too
        if value is None or value in WILDCARDS or wildcard is not None:
            parts.append(None)
        else:
            parts.append(int(value))

    pre = match.group("pre") if parts[2] is not None else None
    return Partial(parts[0], parts[1], parts[2], pre=pre, wildcard=wildcard, size=size)


def parse_version(text: str) -> SemVer:
    """Parse a concrete version, ignoring build metadata.

    Raises:
        InvalidConstraintError: If the text is not a full version
    """
    partial = parse_partial(text)
    if not partial.is_full:
        raise InvalidConstraintError(f"Not a full version: {text!r}")
    return _floor(partial)


def _make_version(major: int, minor: int, patch: int, pre: str | None = None) -> SemVer:
    return SemVer(Version(f"{major}.{minor}.{patch}"), tuple(pre.split(".")) if pre else ())


def _floor(partial: Partial) -> SemVer:
    return _make_version(
        partial.major or 0, partial.minor or 0, partial.patch or 0, partial.pre
    )


def _next_major(partial: Partial) -> SemVer:
    return _make_version(partial.major + 1, 0, 0)


def _next_minor(partial: Partial) -> SemVer:
    return _make_version(partial.major, partial.minor + 1, 0)


def _next_patch(partial: Partial) -> SemVer:
    return _make_version(partial.major, partial.minor, partial.patch + 1)


def _ceiling(partial: Partial) -> SemVer:
    """Exclusive upper bound of a partial version."""
    if partial.minor is None:
        return _next_major(partial)
    return _next_minor(partial)


def _caret_upper(partial: Partial) -> SemVer:
    if partial.major > 0 or partial.minor is None:
        return _next_major(partial)
    if partial.minor > 0 or partial.patch is None:
        return _next_minor(partial)
    return _next_patch(partial)


def _desugar(op: str, partial: Partial) -> list[Comparator]:
    """Turn one operator and partial version into plain comparators."""
    if partial.major is None:
        if op in ("<", ">"):
            # nothing is below or above every version
            return [Comparator("<", _make_version(0, 0, 0, "0"))]
        return []

    floor = _floor(partial)
    if op == "^":
        return [Comparator(">=", floor), Comparator("<", _caret_upper(partial))]
    if op in ("~", "~>"):
        upper = _next_major(partial) if partial.minor is None else _next_minor(partial)
        return [Comparator(">=", floor), Comparator("<", upper)]
    if op in ("", "="):
        if partial.is_full:
            return [Comparator("=", floor)]
        return [Comparator(">=", floor), Comparator("<", _ceiling(partial))]
    if op == ">":
        if partial.is_full:
            return [Comparator(">", floor)]
        return [Comparator(">=", _ceiling(partial))]
    if op == ">=":
        return [Comparator(">=", floor)]
    if op == "<":
        return [Comparator("<", floor)]
    if op == "<=":
        if partial.is_full:
            return [Comparator("<=", floor)]
        return [Comparator("<", _ceiling(partial))]
    raise InvalidConstraintError(f"Unknown operator: {op!r}")


def _hyphen(low: Partial, high: Partial) -> list[Comparator]:
    comparators = []
    if low.major is not None:
        comparators.append(Comparator(">=", _floor(low)))
    if high.major is not None:
        if high.is_full:
            comparators.append(Comparator("<=", _floor(high)))
        else:
            comparators.append(Comparator("<", _ceiling(high)))
    return comparators


def parse_range(constraint: str) -> list[list[Comparator]]:
    """Parse a range into alternatives of comparator sets.

    An empty comparator set accepts every version.

    Raises:
        InvalidConstraintError: If the range cannot be parsed
    """
    text = constraint.strip()
    if text in ANY_VERSION:
        return [[]]

    alternatives = []
    for part in text.split("||"):
        part = _OPERATOR_SPACE_RE.sub(r"\1", part.strip())
        if part in ANY_VERSION:
            alternatives.append([])
            continue

        hyphen = _HYPHEN_RE.match(part)
        if hyphen:
            alternatives.append(
                _hyphen(parse_partial(hyphen.group("low")), parse_partial(hyphen.group("high")))
            )
            continue

        comparators: list[Comparator] = []
        for token in part.split():
            match = _COMPARATOR_RE.match(token)
            comparators.extend(
                _desugar(match.group("op") or "", parse_partial(match.group("version")))
            )
        alternatives.append(comparators)

    return alternatives


def _test_set(candidate: SemVer, comparators: list[Comparator]) -> bool:
    if not comparators:
        return True
    if not all(comparator.test(candidate) for comparator in comparators):
        return False
    if candidate.is_prerelease:
        # pre-releases only match ranges that name the same release with a tag
        return any(
            comparator.version.is_prerelease
            and comparator.version.release == candidate.release
            for comparator in comparators
        )
    return True


def is_satisfied(version: str, constraint: str) -> bool:
    """Check whether a published version falls within a declared range.

    Args:
        version: Concrete version, e.g. "4.0.0"
        constraint: Range expression, e.g. "^3.0.0"

    Returns:
        True if the range accepts the version

    Raises:
        InvalidConstraintError: If either argument cannot be parsed
    """
    candidate = parse_version(version)
    return any(_test_set(candidate, comparators) for comparators in parse_range(constraint))


def _format(partial: Partial, precision: int = 3) -> str:
    parts = [str(partial.major), str(partial.minor), str(partial.patch)][:precision]
    text = ".".join(parts)
    if precision == 3 and partial.pre:
        text += f"-{partial.pre}"
    return text


def upgrade_constraint(constraint: str, version: str) -> str:
    """Build a range that accepts ``version`` in the style of ``constraint``.

    The operator, a leading "v" and the number of version parts of the
    declaration are kept, so "^1.2" becomes "^4.5" and "1.x" becomes
    "4.x". Compound ranges and upper-bound declarations become a caret range. Anything
    that does not parse is returned unchanged.

    Args:
        constraint: Declared range
        version: Version the new range must accept

    Returns:
        The upgraded range
    """
    declaration = constraint.strip()
    if declaration in ANY_VERSION:
        return constraint

    try:
        parse_range(declaration)
        target = parse_partial(version)
    except InvalidConstraintError:
        return constraint
    if not target.is_full:
        return constraint

    simple = _SIMPLE_RE.match(declaration)
    if simple is None:
        return f"^{_format(target)}"

    op = simple.group("op") or ""
    if op in ("<", "<="):
        return f"^{_format(target)}"
    if op == ">":
        op = ">="

    declared_text = simple.group("version")
    declared = parse_partial(declared_text)
    prefix = "v" if declared_text.startswith("v") else ""
    text = _format(target, declared.precision)
    if declared.wildcard:
        wildcards = [declared.wildcard] * (declared.size - declared.precision)
        text = ".".join(([text] if text else []) + wildcards)
    return f"{op}{prefix}{text}"


def max_version(versions, include_prerelease: bool = False) -> str | None:
    """Return the highest version string, skipping ones that do not parse."""
    best = None
    best_version = None
    for text in versions:
        try:
            candidate = parse_version(text)
        except InvalidConstraintError:
            continue
        if candidate.is_prerelease and not include_prerelease:
            continue
        if best_version is None or candidate > best_version:
            best, best_version = text, candidate
    return best
