"""Tests for CLI functionality."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from apps.cli import main
from apps.cli.main import app
from frontline.exceptions import RepositoryError


class TestCLI:
    """Test CLI command interface."""

    def setup_method(self):
        """Setup test fixtures."""
        self.runner = CliRunner()

    @pytest.fixture(autouse=True)
    def environment(self, monkeypatch, composer_file):
        """Point the CLI at the temporary manifest and keep it offline."""
        monkeypatch.setenv("COMPOSER", str(composer_file))
        monkeypatch.delenv("FRONTLINE_REPOSITORY_URL", raising=False)
        monkeypatch.delenv("FRONTLINE_PHP_VERSION", raising=False)

    def test_cli_help_command(self):
        """Should display help when called with --help."""
        result = self.runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "composer.json" in result.output

    def test_missing_manifest(self, monkeypatch, tmp_path):
        """Should fail when the manifest does not exist."""
        monkeypatch.setenv("COMPOSER", str(tmp_path / "missing" / "composer.json"))

        result = self.runner.invoke(app, [])

        assert result.exit_code == 1
        assert "Could not find your composer.json file!" in result.output

    def test_missing_manifest_goes_to_stderr(self, monkeypatch, tmp_path):
        """Should report the missing manifest on the error console."""
        monkeypatch.setenv("COMPOSER", str(tmp_path / "missing" / "composer.json"))

        with patch.object(main.err_console, "print") as print_error, \
                patch.object(main.console, "print") as print_output:
            result = self.runner.invoke(app, [])

        assert result.exit_code == 1
        assert main.err_console.stderr
        print_error.assert_called_once_with("Could not find your composer.json file!", style="red")
        print_output.assert_not_called()

    def test_updates_all_packages(self, composer_file, update_context):
        """Should write the new constraints and show them in a table."""
        with patch("apps.cli.main.UpdateContext.create", return_value=update_context):
            result = self.runner.invoke(app, [])

        assert result.exit_code == 0
        data = json.loads(composer_file.read_text(encoding="utf-8"))
        assert data["require"]["acme/foo"] == "^2.3"
        assert data["require"]["nette/utils"] == "^4.0"
        assert data["require-dev"]["phpunit/phpunit"] == "^10.5"
        assert data["require"]["php"] == ">=8.1"
        assert "acme/foo" in result.output
        assert "^1.0" in result.output
        assert "→" in result.output
        assert "^2.3" in result.output

    def test_updates_selected_vendor(self, composer_file, sample_composer_json, update_context):
        """Should only change packages matching the arguments."""
        with patch("apps.cli.main.UpdateContext.create", return_value=update_context):
            result = self.runner.invoke(app, ["acme"])

        assert result.exit_code == 0
        expected = sample_composer_json.replace('"acme/foo": "^1.0"', '"acme/foo": "^2.3"')
        assert composer_file.read_text(encoding="utf-8") == expected
        assert "nette/utils" not in result.output

    def test_nothing_to_update(self, composer_file, sample_composer_json, update_context):
        """Should report that everything is up to date and leave the file alone."""
        with patch("apps.cli.main.UpdateContext.create", return_value=update_context):
            result = self.runner.invoke(app, ["other/*"])

        assert result.exit_code == 0
        assert "up to date" in result.output
        assert composer_file.read_text(encoding="utf-8") == sample_composer_json

    def test_repository_error(self, composer_file, sample_composer_json):
        """Should report repository failures and exit with an error."""
        with patch("apps.cli.main.UpdateContext.create", side_effect=RepositoryError("boom")):
            result = self.runner.invoke(app, [])

        assert result.exit_code == 1
        assert "Error: boom" in result.output
        assert composer_file.read_text(encoding="utf-8") == sample_composer_json

    def test_malformed_manifest(self, composer_file):
        """Should report manifests that are not valid JSON."""
        composer_file.write_text("{not json", encoding="utf-8")

        result = self.runner.invoke(app, [])

        assert result.exit_code == 1
        assert "Error" in result.output
