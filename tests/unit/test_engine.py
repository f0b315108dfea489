"""Tests for the constraint update decisions."""

import json
import logging
from unittest.mock import patch

import httpx

from frontline.engine import UpdateContext, compute_updates
from frontline.models import Manifest, UpdateDecision
from frontline.resolver import LegacyResolver, PlatformResolver
from frontline.selector import expand_masks


class TestComputeUpdates:
    """Test which constraints get upgraded."""

    def test_all_packages_by_default(self, sample_composer_json, update_context):
        """Should upgrade every outdated package when no arguments are given."""
        manifest = Manifest(json.loads(sample_composer_json))

        decisions = compute_updates(manifest, expand_masks([]), update_context)

        assert decisions == [
            UpdateDecision("require", "acme/foo", "^1.0", "^2.3"),
            UpdateDecision("require", "nette/utils", "^3.2", "^4.0"),
            UpdateDecision("require-dev", "phpunit/phpunit", "^9.5", "^10.5"),
        ]

    def test_single_vendor_mask(self, sample_composer_json, update_context):
        """Should only touch packages matching the mask."""
        manifest = Manifest(json.loads(sample_composer_json))

        decisions = compute_updates(manifest, expand_masks(["acme/*"]), update_context)

        assert decisions == [UpdateDecision("require", "acme/foo", "^1.0", "^2.3")]

    def test_unmatched_mask_produces_nothing(self, sample_composer_json, update_context):
        """Should not even query the resolver for unmatched packages."""
        manifest = Manifest(json.loads(sample_composer_json))

        decisions = compute_updates(manifest, expand_masks(["other"]), update_context)

        assert decisions == []
        assert update_context.resolver.calls == []

    def test_shortcut_group(self, sample_composer_json, update_context):
        """Should expand the nette shortcut to the nette family."""
        manifest = Manifest(json.loads(sample_composer_json))

        decisions = compute_updates(manifest, expand_masks(["nette"]), update_context)

        assert [d.package for d in decisions] == ["nette/utils"]
        assert update_context.resolver.calls == ["nette/utils", "tracy/tracy"]

    def test_platform_packages_never_queried(self, sample_composer_json, update_context):
        """Should skip php and extensions regardless of masks."""
        manifest = Manifest(json.loads(sample_composer_json))

        compute_updates(manifest, {"*"}, update_context)

        assert "php" not in update_context.resolver.calls
        assert "ext-json" not in update_context.resolver.calls

    def test_dev_constraints_never_upgraded(self, sample_composer_json, update_context):
        """Should leave branch constraints alone even when explicitly selected."""
        manifest = Manifest(json.loads(sample_composer_json))

        decisions = compute_updates(manifest, {"acme/bar"}, update_context)

        assert decisions == []
        assert update_context.resolver.calls == []

    def test_constraint_already_allowing_latest(self, update_context):
        """Should skip packages whose constraint already admits the best candidate."""
        manifest = Manifest({"require": {"tracy/tracy": "~2.9.0", "acme/foo": "2.3.0"}})

        assert compute_updates(manifest, {"*"}, update_context) == []

    def test_no_candidate_is_not_an_error(self, update_context):
        """Should silently skip packages the resolver knows nothing about."""
        manifest = Manifest({"require": {"unknown/pkg": "^1.0"}})

        assert compute_updates(manifest, {"*"}, update_context) == []
        assert update_context.resolver.calls == ["unknown/pkg"]

    def test_unparsable_constraint_is_skipped(self, update_context, caplog):
        """Should warn about and skip constraints that cannot be parsed."""
        manifest = Manifest({"require": {"acme/foo": "not a version", "nette/utils": "^3.2"}})

        with caplog.at_level(logging.WARNING, logger="frontline"):
            decisions = compute_updates(manifest, {"*"}, update_context)

        assert [d.package for d in decisions] == ["nette/utils"]
        assert "acme/foo" in caplog.text

    def test_declaration_order_is_kept(self, update_context):
        """Should emit require before require-dev, in declaration order."""
        manifest = Manifest({
            "require-dev": {"phpunit/phpunit": "^9.5"},
            "require": {"nette/utils": "^3.2", "acme/foo": "^1.0"},
        })

        decisions = compute_updates(manifest, {"*"}, update_context)

        assert [(d.section, d.package) for d in decisions] == [
            ("require", "nette/utils"),
            ("require", "acme/foo"),
            ("require-dev", "phpunit/phpunit"),
        ]

    def test_second_run_is_a_no_op(self, sample_composer_json, update_context):
        """Should find nothing to do once the decisions have been applied."""
        data = json.loads(sample_composer_json)
        for decision in compute_updates(Manifest(data), {"*"}, update_context):
            data[decision.section][decision.package] = decision.new_constraint

        assert compute_updates(Manifest(data), {"*"}, update_context) == []

    def test_manifest_is_not_modified(self, sample_composer_json, update_context):
        """Should not mutate the manifest data."""
        data = json.loads(sample_composer_json)
        manifest = Manifest(data)

        compute_updates(manifest, {"*"}, update_context)

        assert data == json.loads(sample_composer_json)

    def test_empty_sections(self, update_context):
        """Should handle manifests without requirements."""
        assert compute_updates(Manifest({"name": "acme/app"}), {"*"}, update_context) == []
        assert compute_updates(Manifest({"require": []}), {"*"}, update_context) == []


class TestUpdateContext:
    """Test building the run context."""

    def probe(self, root: dict) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=root)))

    def test_v2_repository(self):
        """Should build the platform-aware resolver from the manifest platform."""
        manifest = Manifest({"config": {"platform": {"php": "8.1.0"}}})

        with self.probe({"metadata-url": "/p2/%package%.json"}) as client:
            context = UpdateContext.create(client, manifest, "https://repo.example.org")

        assert isinstance(context.resolver, PlatformResolver)
        assert context.resolver.platform.php_version == "8.1.0"

    def test_legacy_repository(self):
        """Should build the legacy resolver with the configured PHP version."""
        with self.probe({"packages": []}) as client, \
                patch("frontline.platform.detect_php_version", return_value="8.3.0"):
            context = UpdateContext.create(client, Manifest({}), "https://repo.example.org", php_version="7.4.0")

        assert isinstance(context.resolver, LegacyResolver)
        assert context.resolver.php_version == "7.4.0"
