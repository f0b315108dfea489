"""Composer version normalization on top of `packaging`."""

import re
from dataclasses import dataclass

from packaging.version import InvalidVersion, Version

from .exceptions import InvalidVersionError

STABILITIES = {
    "stable": 0,
    "RC": 5,
    "beta": 10,
    "alpha": 15,
    "dev": 20,
}

# Stands in for the "x" of a branch alias such as 1.0.x-dev
BRANCH_PLACEHOLDER = 9999999

_MODIFIER = r"[._-]?(?:(stable|beta|b|rc|alpha|a|patch|pl|p)((?:[.-]?\d+)*)?)?([.-]?dev)?"

_CLASSICAL_RE = re.compile(r"^v?(\d+)(\.\d+)?(\.\d+)?(\.\d+)?" + _MODIFIER + r"$", re.IGNORECASE)
_BRANCH_RE = re.compile(
    r"^v?(\d+)(\.(?:\d+|[xX*]))?(\.(?:\d+|[xX*]))?(\.(?:\d+|[xX*]))?[.-]?dev$"
)
_ALIAS_RE = re.compile(r"^([^,\s]+)\s+as\s+\S+$")
_FLAG_RE = re.compile(r"@(?:stable|rc|beta|alpha|dev)$", re.IGNORECASE)


@dataclass(frozen=True)
class ComposerVersion:
    """A parsed Composer version."""

    pretty: str
    normalized: Version
    stability: str = "stable"

    @property
    def is_branch(self) -> bool:
        return self.stability == "dev" and BRANCH_PLACEHOLDER in self.normalized.release


def normalize_stability(stability: str) -> str:
    """Return the canonical spelling of a stability name."""
    lowered = stability.lower()
    if lowered == "rc":
        return "RC"
    if lowered not in STABILITIES:
        raise ValueError(f"Unknown stability {stability!r}")
    return lowered


def stability_priority(stability: str) -> int:
    """Return the priority of a stability; higher means less stable."""
    return STABILITIES[normalize_stability(stability)]


def _modifier_to_pep440(modifier: str | None, number: str | None) -> tuple[str, str]:
    """Map a Composer modifier to a PEP 440 suffix and a stability."""
    if not modifier:
        return "", "stable"

    digits = re.findall(r"\d+", number or "")
    n = digits[0] if digits else "0"
    kind = modifier.lower()
    if kind in ("beta", "b"):
        return f"b{n}", "beta"
    if kind in ("alpha", "a"):
        return f"a{n}", "alpha"
    if kind == "rc":
        return f"rc{n}", "RC"
    if kind in ("patch", "pl", "p"):
        return f".post{n}", "stable"
    return "", "stable"


def parse_version(text: str) -> ComposerVersion:
    """Parse a Composer version string.

    Args:
        text: Version as written in a manifest or in repository metadata

    Returns:
        The parsed version

    Raises:
        InvalidVersionError: For named branches like ``dev-main`` and for
            anything that is not a Composer version
    """
    pretty = text.strip()
    candidate = pretty

    alias = _ALIAS_RE.match(candidate)
    if alias:
        candidate = alias.group(1)
    candidate = _FLAG_RE.sub("", candidate)

    if candidate.lower().startswith("dev-"):
        raise InvalidVersionError(f"{text!r} is a named branch, not a version")

    branch = _BRANCH_RE.match(candidate)
    if branch and any(part and part[-1] in "xX*" for part in branch.groups()[1:]):
        parts = [branch.group(1)]
        for part in branch.groups()[1:]:
            if part is None:
                parts.append(str(BRANCH_PLACEHOLDER))
            elif part[-1] in "xX*":
                parts.append(str(BRANCH_PLACEHOLDER))
            else:
                parts.append(part.lstrip("."))
        normalized = Version(".".join(parts) + ".dev0")
        return ComposerVersion(pretty=pretty, normalized=normalized, stability="dev")

    match = _CLASSICAL_RE.match(candidate)
    if not match:
        raise InvalidVersionError(f"Invalid version string {text!r}")

    release = ".".join(str(int(part.lstrip("."))) for part in match.groups()[:4] if part)
    suffix, stability = _modifier_to_pep440(match.group(5), match.group(6))
    if match.group(7):
        suffix += ".dev0"
        stability = "dev"

    try:
        normalized = Version(release + suffix)
    except InvalidVersion as e:
        raise InvalidVersionError(f"Invalid version string {text!r}: {e}") from e

    return ComposerVersion(pretty=pretty, normalized=normalized, stability=stability)


def parse_stability(text: str) -> str:
    """Return the stability of a version string without failing on branches."""
    stripped = _FLAG_RE.sub("", text.strip())
    if stripped.lower().startswith("dev-") or stripped.lower().endswith("-dev"):
        return "dev"
    try:
        return parse_version(stripped).stability
    except InvalidVersionError:
        return "stable"
