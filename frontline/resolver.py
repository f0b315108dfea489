"""Selection of the best available release of a package."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping

from .exceptions import InvalidVersionError
from .models import Candidate, Manifest
from .platform import PlatformInfo, satisfies
from .repository import ComposerRepository
from .versions import parse_version, stability_priority

logger = logging.getLogger(__name__)

# Larger majors are date-style versions such as 20200101
MAX_SEMVER_MAJOR = 99999


class Resolver(ABC):
    """Finds the best release of a package and recommends a constraint for it."""

    def __init__(
        self,
        repository: ComposerRepository,
        minimum_stability: str = "stable",
        stability_flags: Mapping[str, str] | None = None,
        preferred_stability: str = "stable",
    ):
        self.repository = repository
        self.minimum_stability = minimum_stability
        self.stability_flags = dict(stability_flags or {})
        self.preferred_stability = preferred_stability

    @abstractmethod
    def find_best_candidate(self, package_name: str) -> Candidate | None:
        """Return the best usable release of a package, or None."""

    def recommend_constraint(self, candidate: Candidate) -> str:
        """Recommend a constraint that admits the candidate and its compatible successors.

        ``2.3.0`` becomes ``^2.3``, ``0.5.2`` becomes ``^0.5.2`` and
        ``3.0.0-beta1`` becomes ``^3.0@beta``. Versions that do not look
        like semver, including date-style versions such as ``20200101``,
        are returned as written.
        """
        release = list(candidate.version.normalized.release)
        if len(release) > 4 or release[0] > MAX_SEMVER_MAJOR:
            return candidate.pretty_version
        release += [0] * (4 - len(release))
        if release[3] != 0:
            return candidate.pretty_version

        kept = release[:3] if release[0] == 0 else release[:2]
        constraint = ".".join(str(part) for part in kept)
        if candidate.stability != "stable":
            constraint += f"@{candidate.stability}"
        return f"^{constraint}"

    def _allowed_priority(self, package_name: str) -> int:
        stability = self.stability_flags.get(package_name, self.minimum_stability)
        return stability_priority(stability)

    def _candidates(self, package_name: str, versions: list[dict] | None) -> list[Candidate]:
        """Turn repository metadata into candidates acceptable by stability."""
        allowed = self._allowed_priority(package_name)
        candidates: list[Candidate] = []
        for data in versions or []:
            pretty = data.get("version")
            if not isinstance(pretty, str):
                continue
            try:
                version = parse_version(pretty)
            except InvalidVersionError:
                continue  # Named branches are never upgrade targets
            if version.is_branch or stability_priority(version.stability) > allowed:
                continue
            requires = data.get("require")
            candidates.append(
                Candidate(
                    name=data.get("name", package_name),
                    version=version,
                    requires=requires if isinstance(requires, dict) else {},
                )
            )
        return candidates

    def _select(self, candidates: list[Candidate]) -> Candidate | None:
        """Pick the highest version, preferring the preferred stability."""
        if not candidates:
            return None

        preferred = stability_priority(self.preferred_stability)
        best = candidates[0]
        for candidate in candidates[1:]:
            candidate_priority = stability_priority(candidate.stability)
            best_priority = stability_priority(best.stability)

            # Less stable than preferred while we already have something more stable
            if preferred < candidate_priority and best_priority < candidate_priority:
                continue

            # Less stable than preferred, but more stable than what we have
            if preferred < candidate_priority and candidate_priority < best_priority:
                best = candidate
                continue

            # Stable enough, and what we have is not
            if preferred >= candidate_priority and preferred < best_priority:
                best = candidate
                continue

            if candidate.version.normalized > best.version.normalized:
                best = candidate
        return best


class LegacyResolver(Resolver):
    """Resolver for repositories serving only v1 metadata.

    The PHP version is passed explicitly into every lookup and only the
    ``php`` requirement of a release is checked.
    """

    def __init__(self, repository: ComposerRepository, php_version: str | None = None, **kwargs):
        super().__init__(repository, **kwargs)
        self.php_version = php_version

    def find_best_candidate(self, package_name: str) -> Candidate | None:
        return self.find_best_candidate_for(package_name, self.php_version)

    def find_best_candidate_for(
        self, package_name: str, php_version: str | None
    ) -> Candidate | None:
        candidates = self._candidates(package_name, self.repository.legacy_versions(package_name))
        php = None
        if php_version is not None:
            try:
                php = parse_version(php_version)
            except InvalidVersionError:
                logger.warning("Ignoring invalid PHP version %s", php_version)
        if php is not None:
            candidates = [
                candidate
                for candidate in candidates
                if "php" not in candidate.requires or satisfies(candidate.requires["php"], php)
            ]
        return self._select(candidates)


class PlatformResolver(Resolver):
    """Resolver for repositories serving v2 metadata.

    The platform is owned by the resolver and every platform requirement
    with a known version is checked.
    """

    def __init__(self, repository: ComposerRepository, platform: PlatformInfo, **kwargs):
        super().__init__(repository, **kwargs)
        self.platform = platform

    def find_best_candidate(self, package_name: str) -> Candidate | None:
        candidates = self._candidates(package_name, self.repository.metadata_versions(package_name))
        return self._select([c for c in candidates if self.platform.allows(c.requires)])


def create_resolver(
    repository: ComposerRepository, manifest: Manifest, platform: PlatformInfo
) -> Resolver:
    """Probe the repository once and build the matching resolver.

    Args:
        repository: Repository to query
        manifest: Manifest providing minimum-stability and stability flags
        platform: Target platform of the run

    Returns:
        PlatformResolver for v2 repositories, LegacyResolver otherwise
    """
    options = {
        "minimum_stability": manifest.minimum_stability,
        "stability_flags": manifest.stability_flags,
    }
    if repository.probe_api_version() >= 2:
        logger.debug("Using platform-aware resolver")
        return PlatformResolver(repository, platform, **options)

    logger.debug("Using legacy resolver with PHP %s", platform.php_version or "unknown")
    return LegacyResolver(repository, php_version=platform.php_version, **options)
