"""Core data models for Frontline."""

from collections.abc import Iterator
from dataclasses import dataclass, field

from .constraints import extract_stability_flags
from .exceptions import ManifestError
from .versions import ComposerVersion, normalize_stability

SECTIONS = ("require", "require-dev")


@dataclass
class Manifest:
    """A parsed composer.json."""

    data: dict
    filename: str = "composer.json"

    def __post_init__(self):
        if not isinstance(self.data, dict):
            raise ManifestError(f"{self.filename} does not contain a JSON object")
        for section in SECTIONS:
            # PHP encodes an empty section as []
            if not isinstance(self.data.get(section) or {}, dict):
                raise ManifestError(f'"{section}" in {self.filename} must be an object')

    def sections(self) -> Iterator[tuple[str, dict]]:
        """Yield (section, requirements) in require, require-dev order."""
        for section in SECTIONS:
            yield section, self.data.get(section) or {}

    @property
    def minimum_stability(self) -> str:
        value = self.data.get("minimum-stability") or "stable"
        try:
            return normalize_stability(value)
        except (ValueError, AttributeError):
            raise ManifestError(f"Invalid minimum-stability {value!r} in {self.filename}")

    @property
    def stability_flags(self) -> dict[str, str]:
        requirements: dict[str, str] = {}
        for _, section in self.sections():
            requirements.update(section)
        return extract_stability_flags(requirements, self.minimum_stability)

    @property
    def platform_overrides(self) -> dict:
        config = self.data.get("config")
        if not isinstance(config, dict):
            return {}
        platform = config.get("platform")
        return platform if isinstance(platform, dict) else {}


@dataclass(frozen=True)
class UpdateDecision:
    """A constraint that should be replaced in the manifest."""

    section: str  # require, require-dev
    package: str
    old_constraint: str
    new_constraint: str


@dataclass
class Candidate:
    """Best available release of a package."""

    name: str
    version: ComposerVersion
    requires: dict[str, str] = field(default_factory=dict)

    @property
    def pretty_version(self) -> str:
        return self.version.pretty

    @property
    def stability(self) -> str:
        return self.version.stability
