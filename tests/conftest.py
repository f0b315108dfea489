"""Pytest configuration and fixtures."""

import pytest

from frontline.engine import UpdateContext
from frontline.models import Candidate
from frontline.resolver import Resolver
from frontline.versions import parse_version

SAMPLE_COMPOSER_JSON = """{
    "name": "acme/app",
    "description": "Demo application",
    "require": {
        "php": ">=8.1",
        "ext-json": "*",
        "acme/foo": "^1.0",
        "nette/utils": "^3.2",
        "tracy/tracy": "~2.9.0"
    },
    "require-dev": {
        "acme/bar": "dev-main",
        "phpunit/phpunit": "^9.5"
    },
    "minimum-stability": "stable"
}
"""

# Latest releases the fake resolver knows about
SAMPLE_RELEASES = {
    "php": "8.3.0",
    "acme/foo": "2.3.0",
    "acme/bar": "3.0.0",
    "nette/utils": "4.0.1",
    "tracy/tracy": "2.9.4",
    "phpunit/phpunit": "10.5.2",
}


class FakeResolver(Resolver):
    """Resolver answering from a fixed table of latest versions."""

    def __init__(self, releases: dict[str, str]):
        super().__init__(repository=None)
        self.releases = releases
        self.calls: list[str] = []

    def find_best_candidate(self, package_name: str) -> Candidate | None:
        self.calls.append(package_name)
        version = self.releases.get(package_name)
        if version is None:
            return None
        return Candidate(name=package_name, version=parse_version(version))


@pytest.fixture
def sample_composer_json():
    """Sample composer.json content for testing."""
    return SAMPLE_COMPOSER_JSON


@pytest.fixture
def composer_file(tmp_path):
    """Create a temporary composer.json for testing."""
    manifest = tmp_path / "composer.json"
    manifest.write_text(SAMPLE_COMPOSER_JSON, encoding="utf-8")
    return manifest


@pytest.fixture
def fake_resolver():
    """Resolver knowing the sample releases."""
    return FakeResolver(dict(SAMPLE_RELEASES))


@pytest.fixture
def update_context(fake_resolver):
    """Run context backed by the fake resolver."""
    return UpdateContext(resolver=fake_resolver)
