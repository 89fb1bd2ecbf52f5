"""
Version domain object for zgraph.

Versions follow semver 2.0: MAJOR.MINOR.PATCH with an optional
pre-release (``-alpha.1``) and optional build metadata (``+build.5``).

Ordering and identity differ:
- compare() and the <, <=, >, >= operators ignore build metadata
- == compares every field, build metadata included
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

from ..exit_codes import ContractError, MalformedVersion

_NUMBER = r'0|[1-9]\d*'
_IDENT = r'[0-9A-Za-z-]+'

_VERSION_RE = re.compile(
    rf'^(?P<major>{_NUMBER})\.(?P<minor>{_NUMBER})\.(?P<patch>{_NUMBER})'
    rf'(?:-(?P<prerelease>{_IDENT}(?:\.{_IDENT})*))?'
    rf'(?:\+(?P<build>{_IDENT}(?:\.{_IDENT})*))?\Z'
)

_NUMERIC_IDENT_RE = re.compile(r'^\d+$')


class Ordering(Enum):
    """Result of comparing two versions."""
    LESS = -1
    EQUAL = 0
    GREATER = 1


@dataclass(frozen=True)
class Version:
    """
    Immutable semantic version.

    Examples:
        Version.parse("1.2.3")
        Version.parse("2.0.0-rc.1")
        Version.parse("1.0.0-alpha+exp.sha.5114f85")

    Attributes:
        major, minor, patch: Core version numbers
        prerelease: Dot-separated pre-release identifiers, () when absent
        build: Dot-separated build metadata identifiers, () when absent
    """

    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()
    build: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> 'Version':
        """
        Parse a version string.

        Args:
            text: Version such as "1.2.3-beta.2+linux"

        Returns:
            Parsed Version

        Raises:
            MalformedVersion: If text is not a valid semver string
        """
        if not isinstance(text, str):
            raise ContractError(f"version text must be a str, got {type(text).__name__}")

        match = _VERSION_RE.match(text)
        if not match:
            raise MalformedVersion(text)

        prerelease = tuple(match.group('prerelease').split('.')) if match.group('prerelease') else ()
        for part in prerelease:
            if _NUMERIC_IDENT_RE.match(part) and len(part) > 1 and part.startswith('0'):
                raise MalformedVersion(text, f"numeric pre-release identifier {part!r} has a leading zero")

        build = tuple(match.group('build').split('.')) if match.group('build') else ()

        return cls(
            major=int(match.group('major')),
            minor=int(match.group('minor')),
            patch=int(match.group('patch')),
            prerelease=prerelease,
            build=build,
        )

    @property
    def core(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def format(self) -> str:
        """Format back to the exact string parse() accepts."""
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += '-' + '.'.join(self.prerelease)
        if self.build:
            text += '+' + '.'.join(self.build)
        return text

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"Version({self.format()!r})"

    def __lt__(self, other: 'Version') -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare(self, other) is Ordering.LESS

    def __le__(self, other: 'Version') -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare(self, other) is not Ordering.GREATER

    def __gt__(self, other: 'Version') -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare(self, other) is Ordering.GREATER

    def __ge__(self, other: 'Version') -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare(self, other) is not Ordering.LESS


def _order(a, b) -> Ordering:
    if a < b:
        return Ordering.LESS
    if a > b:
        return Ordering.GREATER
    return Ordering.EQUAL


def _compare_prerelease(a: Tuple[str, ...], b: Tuple[str, ...]) -> Ordering:
    # A version without a pre-release has higher precedence
    if not a and not b:
        return Ordering.EQUAL
    if not a:
        return Ordering.GREATER
    if not b:
        return Ordering.LESS

    for left, right in zip(a, b):
        left_numeric = bool(_NUMERIC_IDENT_RE.match(left))
        right_numeric = bool(_NUMERIC_IDENT_RE.match(right))

        if left_numeric and right_numeric:
            result = _order(int(left), int(right))
        elif left_numeric:
            result = Ordering.LESS
        elif right_numeric:
            result = Ordering.GREATER
        else:
            result = _order(left, right)

        if result is not Ordering.EQUAL:
            return result

    return _order(len(a), len(b))


def compare(a: Version, b: Version) -> Ordering:
    """
    Compare two versions by semver precedence.

    Build metadata is ignored, so "1.0.0+a" and "1.0.0+b" compare EQUAL.
    """
    if not isinstance(a, Version) or not isinstance(b, Version):
        raise ContractError("compare() expects two Version instances")

    result = _order(a.core, b.core)
    if result is not Ordering.EQUAL:
        return result
    return _compare_prerelease(a.prerelease, b.prerelease)


def satisfies(version: Version, minimum: Version) -> bool:
    """True when version is at least minimum."""
    return compare(version, minimum) is not Ordering.LESS


def as_version(value: Union[str, Version]) -> Version:
    """Accept either a Version or its string form."""
    if isinstance(value, Version):
        return value
    return Version.parse(value)
