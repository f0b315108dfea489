"""Decides which declared constraints should be upgraded."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import httpx

from .constraints import parse_constraints
from .exceptions import InvalidConstraintError
from .models import Manifest, UpdateDecision
from .platform import PlatformInfo, is_platform_package
from .repository import ComposerRepository
from .resolver import Resolver, create_resolver
from .selector import matches_mask

logger = logging.getLogger(__name__)

# Constraints pointing at a branch (dev-main, dev-feature as 1.0) are left alone
DEV_PREFIX = "dev"


@dataclass
class UpdateContext:
    """Collaborators shared by a single run."""

    resolver: Resolver

    @classmethod
    def create(
        cls,
        client: httpx.Client,
        manifest: Manifest,
        repository_url: str,
        php_version: str | None = None,
    ) -> "UpdateContext":
        """Build the context, probing the repository for its metadata API."""
        platform = PlatformInfo.from_config(manifest.platform_overrides, php_version=php_version)
        repository = ComposerRepository(client, repository_url)
        return cls(resolver=create_resolver(repository, manifest, platform))


def compute_updates(
    manifest: Manifest, masks: Iterable[str], context: UpdateContext
) -> list[UpdateDecision]:
    """Compute the constraint changes for the selected packages.

    Args:
        manifest: Parsed manifest, not modified
        masks: Package name masks from ``expand_masks``
        context: Run context holding the resolver

    Returns:
        Decisions in declaration order, require before require-dev
    """
    masks = list(masks)
    resolver = context.resolver
    decisions: list[UpdateDecision] = []

    for section, requirements in manifest.sections():
        for package_name, constraint_str in requirements.items():
            if (
                is_platform_package(package_name)
                or not matches_mask(masks, package_name)
                or (isinstance(constraint_str, str) and constraint_str.startswith(DEV_PREFIX))
            ):
                continue

            try:
                constraint = parse_constraints(constraint_str)
            except InvalidConstraintError as e:
                logger.warning("Skipping %s: %s", package_name, e)
                continue

            latest = resolver.find_best_candidate(package_name)
            if latest is None:
                logger.debug("No candidate found for %s", package_name)
                continue
            if constraint.matches(latest.version):
                logger.debug("%s %s already allows %s", package_name, constraint_str, latest.pretty_version)
                continue

            new_constraint = resolver.recommend_constraint(latest)
            if new_constraint == constraint_str:
                continue
            decisions.append(UpdateDecision(section, package_name, constraint_str, new_constraint))

    return decisions
