"""Composer version constraint parsing and matching."""

import operator
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from packaging.version import Version

from .exceptions import InvalidConstraintError, InvalidVersionError
from .versions import (
    ComposerVersion,
    normalize_stability,
    parse_stability,
    parse_version,
    stability_priority,
)

_OPERATORS: dict[str, Callable[[Version, Version], bool]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_PARTS = r"v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.(\d+))?"
_MODIFIER = r"(?:[._-]?(?:stable|beta|b|rc|alpha|a|patch|pl|p)(?:[.-]?\d+)*)?(?:[.-]?dev)?"

_ANY_RE = re.compile(r"^v?[xX*](?:\.[xX*])*$")
_TILDE_RE = re.compile(r"^~>?" + _PARTS + r"(" + _MODIFIER + r")$", re.IGNORECASE)
_CARET_RE = re.compile(r"^\^" + _PARTS + r"(" + _MODIFIER + r")$", re.IGNORECASE)
_WILDCARD_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.[xX*])+$")
_HYPHEN_RE = re.compile(r"^(\S+)\s+-\s+(\S+)$")
_OPERATOR_RE = re.compile(r"^(<>|!=|>=?|<=?|==?)?\s*(\S+)$")
_STABILITY_FLAG_RE = re.compile(r"@(stable|rc|beta|alpha|dev)$", re.IGNORECASE)
_EXPLICIT_PRERELEASE_RE = re.compile(
    r"(?:^|[\s,=<>^~])v?\d+(?:\.[\dxX*]+)*[._-]?(alpha|beta|rc|a|b)\d*(?:$|[\s,])",
    re.IGNORECASE,
)
# A lone version or branch without flags, such as 2.x-dev or dev-main
_SINGLE_VERSION_RE = re.compile(r"^[^,\s@]+$")


@dataclass(frozen=True)
class Bound:
    """A single comparison against a version."""

    op: str
    version: Version

    def matches(self, version: Version) -> bool:
        return _OPERATORS[self.op](version, self.version)

    def __str__(self) -> str:
        return f"{self.op}{self.version}"


@dataclass(frozen=True)
class Constraint:
    """A disjunction of conjunctions of bounds.

    An empty conjunction matches every version; an empty disjunction
    matches nothing.
    """

    alternatives: tuple[tuple[Bound, ...], ...]
    pretty: str = ""

    def matches(self, version: Version | ComposerVersion) -> bool:
        if isinstance(version, ComposerVersion):
            version = version.normalized
        return any(
            all(bound.matches(version) for bound in conjunction)
            for conjunction in self.alternatives
        )

    def __str__(self) -> str:
        return self.pretty or " || ".join(
            " ".join(str(bound) for bound in conjunction) or "*"
            for conjunction in self.alternatives
        )


def _version(text: str) -> Version:
    try:
        return parse_version(text).normalized
    except InvalidVersionError as e:
        raise InvalidConstraintError(str(e)) from e


def _dev(release: list[int]) -> Version:
    """Lowest possible version for a release, including its pre-releases."""
    return Version(".".join(str(part) for part in release) + ".dev0")


def _bump(parts: tuple[str | None, ...], position: int, increment: int) -> list[int]:
    """Bump the 1-based ``position`` of a version and zero what follows."""
    numbers = [int(part) if part else 0 for part in parts]
    numbers += [0] * (4 - len(numbers))
    for index in range(position, 4):
        numbers[index] = 0
    numbers[position - 1] += increment
    return numbers


def _lower_bound(text: str, modifier: str) -> Bound:
    # Without an explicit stability the lower bound admits pre-releases
    version = _version(text)
    if not modifier:
        version = _dev(list(version.release))
    return Bound(">=", version)


def _parse_atom(atom: str) -> tuple[Bound, ...]:
    atom = _STABILITY_FLAG_RE.sub("", atom) or "*"

    if _ANY_RE.match(atom):
        return ()

    match = _TILDE_RE.match(atom)
    if match:
        given = [part for part in match.groups()[:4] if part is not None]
        high_position = max(1, len(given) - 1)
        return (
            _lower_bound(atom.lstrip("~>"), match.group(5)),
            Bound("<", _dev(_bump(match.groups()[:4], high_position, 1))),
        )

    match = _CARET_RE.match(atom)
    if match:
        major, minor, patch = match.group(1), match.group(2), match.group(3)
        if major != "0" or minor is None:
            position = 1
        elif minor != "0" or patch is None:
            position = 2
        else:
            position = 3
        return (
            _lower_bound(atom[1:], match.group(5)),
            Bound("<", _dev(_bump(match.groups()[:4], position, 1))),
        )

    match = _WILDCARD_RE.match(atom)
    if match:
        given = [part for part in match.groups() if part is not None]
        position = len(given)
        low = _bump(match.groups(), position, 0)
        high = Bound("<", _dev(_bump(match.groups(), position, 1)))
        if not any(low):
            return (high,)
        return (Bound(">=", _dev(low)), high)

    match = _OPERATOR_RE.match(atom)
    if match:
        op = match.group(1) or "="
        version = _version(match.group(2))
        if op in ("<", ">=") and not version.is_prerelease and not version.is_devrelease:
            version = _dev(list(version.release))
        return (Bound(op, version),)

    raise InvalidConstraintError(f"Could not parse version constraint {atom!r}")


def _parse_hyphen(low: str, high: str) -> tuple[Bound, ...]:
    low_match = re.match(_PARTS + "(" + _MODIFIER + ")$", low, re.IGNORECASE)
    high_match = re.match(_PARTS + "(" + _MODIFIER + ")$", high, re.IGNORECASE)
    if not low_match or not high_match:
        raise InvalidConstraintError(f"Could not parse version range {low} - {high}")

    lower = _lower_bound(low, low_match.group(5))
    given = [part for part in high_match.groups()[:4] if part is not None]
    # A full version (or one with a stability) is an inclusive upper bound
    if len(given) >= 3 or high_match.group(5):
        return (lower, Bound("<=", _version(high)))
    return (lower, Bound("<", _dev(_bump(high_match.groups()[:4], len(given), 1))))


def _parse_conjunction(text: str) -> tuple[Bound, ...]:
    text = text.strip()
    hyphen = _HYPHEN_RE.match(text)
    if hyphen:
        return _parse_hyphen(hyphen.group(1), hyphen.group(2))

    # Glue operators to their versions so that ">= 1.0" stays one atom
    text = re.sub(r"([=<>!~^]+)\s+", r"\1", text)
    atoms = [atom for atom in re.split(r"\s*,\s*|\s+", text) if atom]
    if not atoms:
        raise InvalidConstraintError("Empty version constraint")

    bounds: list[Bound] = []
    for atom in atoms:
        bounds.extend(_parse_atom(atom))
    return tuple(bounds)


def parse_constraints(text: str) -> Constraint:
    """Parse a Composer version constraint.

    Args:
        text: Constraint as written in a manifest, e.g. ``^1.2 || ~2.0``

    Returns:
        The parsed constraint

    Raises:
        InvalidConstraintError: If the constraint cannot be parsed
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidConstraintError(f"Invalid version constraint {text!r}")

    alternatives = tuple(
        _parse_conjunction(group) for group in re.split(r"\s*\|\|?\s*", text.strip())
    )
    return Constraint(alternatives=alternatives, pretty=text.strip())


def extract_stability_flags(
    requirements: Mapping[str, str], minimum_stability: str = "stable"
) -> dict[str, str]:
    """Find packages whose constraints ask for a lower stability.

    Args:
        requirements: Package name to constraint text
        minimum_stability: The manifest's minimum-stability

    Returns:
        Package name to the least stable stability its constraint allows,
        only for packages less stable than ``minimum_stability``
    """
    minimum = stability_priority(minimum_stability)
    flags: dict[str, str] = {}

    for name, constraint in requirements.items():
        if not isinstance(constraint, str):
            continue
        found: list[str] = []
        for group in re.split(r"\s*\|\|?\s*", constraint.strip()):
            for atom in re.split(r"\s*,\s*|\s+", group):
                flag = _STABILITY_FLAG_RE.search(atom)
                if flag:
                    found.append(normalize_stability(flag.group(1)))
            if _SINGLE_VERSION_RE.match(group):
                stability = parse_stability(group.lstrip("=<>!~^"))
                if stability != "stable":
                    found.append(stability)
            prerelease = _EXPLICIT_PRERELEASE_RE.search(group)
            if prerelease:
                kind = prerelease.group(1).lower()
                found.append({"a": "alpha", "b": "beta"}.get(kind, kind))

        if not found:
            continue
        least_stable = max((normalize_stability(s) for s in found), key=stability_priority)
        if stability_priority(least_stable) > minimum:
            flags[name] = least_stable

    return flags
