"""Platform package detection and the target platform of a run."""

import logging
import re
import shutil
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field

from .constraints import parse_constraints
from .exceptions import InvalidConstraintError, InvalidVersionError
from .versions import ComposerVersion, parse_version

logger = logging.getLogger(__name__)

PLATFORM_PACKAGE_RE = re.compile(
    r"(?:php(?:-64bit|-ipv6|-zts|-debug)?|hhvm|(?:ext|lib)-[a-z0-9](?:[_.-]?[a-z0-9]+)*"
    r"|composer(?:-(?:plugin|runtime)-api)?)",
    re.IGNORECASE,
)


def is_platform_package(name: str) -> bool:
    """Check if a package name refers to the platform rather than a real package.

    Args:
        name: Package name as declared in the manifest

    Returns:
        True for php, hhvm, extensions, libraries and composer APIs
    """
    return PLATFORM_PACKAGE_RE.fullmatch(name) is not None


def detect_php_version() -> str | None:
    """Ask the locally installed PHP binary for its version."""
    php = shutil.which("php")
    if php is None:
        return None

    try:
        result = subprocess.run(
            [php, "-r", "echo PHP_VERSION;"],
            capture_output=True,
            text=True,
            check=False,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Could not run %s: %s", php, e)
        return None

    if result.returncode != 0:
        logger.debug("%s exited with %d", php, result.returncode)
        return None

    # Distribution builds report e.g. 8.2.7-1ubuntu1
    match = re.match(r"\d+\.\d+\.\d+", result.stdout.strip())
    return match.group(0) if match else None


@dataclass
class PlatformInfo:
    """Versions of the platform packages candidates are checked against."""

    php_version: str | None = None
    overrides: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(
        cls,
        platform_config: Mapping[str, object],
        php_version: str | None = None,
        detect: bool = True,
    ) -> "PlatformInfo":
        """Build the platform from settings, manifest overrides and the local PHP.

        Args:
            platform_config: The manifest's ``config.platform`` mapping
            php_version: Explicit PHP version, takes precedence over everything
            detect: Whether to fall back to the local php binary

        Returns:
            PlatformInfo for the run
        """
        # A false override removes the package from the platform
        overrides = {
            name.lower(): value
            for name, value in platform_config.items()
            if isinstance(value, str)
        }
        php = php_version or overrides.get("php")
        if php is None and detect:
            php = detect_php_version()
        if php is not None:
            overrides["php"] = php
        return cls(php_version=php, overrides=overrides)

    def version_of(self, name: str) -> ComposerVersion | None:
        version = self.overrides.get(name.lower())
        if version is None:
            return None
        try:
            return parse_version(version)
        except InvalidVersionError:
            logger.warning("Ignoring invalid platform version %s for %s", version, name)
            return None

    def allows(self, requires: Mapping[str, str]) -> bool:
        """Check a candidate's requirements against every known platform package."""
        for name, constraint in requires.items():
            if not is_platform_package(name):
                continue
            version = self.version_of(name)
            if version is None:
                continue
            if not satisfies(constraint, version):
                return False
        return True


def satisfies(constraint: str, version: ComposerVersion) -> bool:
    """Check a requirement string against a version, accepting what cannot be parsed."""
    try:
        return parse_constraints(constraint).matches(version)
    except InvalidConstraintError:
        logger.debug("Ignoring unparsable requirement %r", constraint)
        return True
