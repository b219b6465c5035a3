"""Unit tests for manifest loading and validation."""

import json

import pytest
from pydantic import ValidationError

from bootstrapper.config.manifest import load_manifest, parse_bool
from bootstrapper.core.exceptions import ConfigError


def write(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
    return path


class TestParseBool:
    """Boolean-like manifest values."""

    @pytest.mark.parametrize("value", [True, "true", "True", "yes", "Y", "1", "on", 1])
    def test_truthy(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", [False, "false", "No", "n", "0", "OFF", 0])
    def test_falsy(self, value):
        assert parse_bool(value) is False

    @pytest.mark.parametrize("value", ["maybe", 2, None, ""])
    def test_rejects_other_values(self, value):
        with pytest.raises(ValueError):
            parse_bool(value)


class TestLoadManifest:
    """Loading config.json into a Manifest."""

    def test_loads_valid_manifest(self, manifest_file):
        manifest = load_manifest(manifest_file)

        assert manifest.project_name == "Xperts-Labs2"
        assert manifest.location == "westeurope"
        assert manifest.deployed is False
        assert manifest.repo_names == ("hands-on-labs", "workshops")
        assert manifest.theme_repo == "docs-theme"

    def test_theme_repo_is_managed_last(self, manifest_file):
        assert load_manifest(manifest_file).managed_repos == ["hands-on-labs", "workshops", "docs-theme"]

    def test_without_theme(self, tmp_path, manifest_data):
        del manifest_data["THEME_REPO_NAME"]
        manifest = load_manifest(write(tmp_path, manifest_data))

        assert manifest.theme_repo is None
        assert manifest.managed_repos == ["hands-on-labs", "workshops"]

    def test_auxiliary_roles_are_collected(self, tmp_path, manifest_data):
        manifest_data["LANDING_PAGE_REPO_NAME"] = "landing"
        manifest_data["MKDOCS_REPO_NAME"] = "mkdocs-site"
        manifest = load_manifest(write(tmp_path, manifest_data))

        assert manifest.auxiliary_repo_names["landing_page"] == "landing"
        assert manifest.auxiliary_repo_names["mkdocs"] == "mkdocs-site"
        # only the theme repo is cloned by the docs builder
        assert "landing" not in manifest.managed_repos

    def test_boolean_deployed(self, tmp_path, manifest_data):
        manifest_data["DEPLOYED"] = True
        assert load_manifest(write(tmp_path, manifest_data)).deployed is True

    def test_manifest_is_immutable(self, manifest_file):
        manifest = load_manifest(manifest_file)
        with pytest.raises(ValidationError):
            manifest.project_name = "other"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_manifest(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        with pytest.raises(ConfigError, match="not valid JSON"):
            load_manifest(write(tmp_path, "{not json"))

    def test_non_object(self, tmp_path):
        with pytest.raises(ConfigError, match="JSON object"):
            load_manifest(write(tmp_path, ["a"]))

    @pytest.mark.parametrize("key", ["PROJECT_NAME", "LOCATION", "DEPLOYED", "REPOS"])
    def test_missing_required_key(self, tmp_path, manifest_data, key):
        del manifest_data[key]
        with pytest.raises(ConfigError) as exc_info:
            load_manifest(write(tmp_path, manifest_data))
        assert exc_info.value.config_key == key

    def test_repos_must_be_list(self, tmp_path, manifest_data):
        manifest_data["REPOS"] = "hands-on-labs"
        with pytest.raises(ConfigError, match="array of strings"):
            load_manifest(write(tmp_path, manifest_data))

    def test_empty_repos(self, tmp_path, manifest_data):
        manifest_data["REPOS"] = []
        with pytest.raises(ConfigError):
            load_manifest(write(tmp_path, manifest_data))

    def test_invalid_deployed(self, tmp_path, manifest_data):
        manifest_data["DEPLOYED"] = "sometimes"
        with pytest.raises(ConfigError, match="Invalid manifest"):
            load_manifest(write(tmp_path, manifest_data))

    def test_invalid_repo_name(self, tmp_path, manifest_data):
        manifest_data["REPOS"] = ["good", "bad name"]
        with pytest.raises(ConfigError, match="invalid repository name"):
            load_manifest(write(tmp_path, manifest_data))

    def test_secret_collision_rejected(self, tmp_path, manifest_data):
        manifest_data["REPOS"] = ["hands-on-labs", "hands_on_labs"]
        with pytest.raises(ConfigError, match="HANDS_ON_LABS_SSH_PRIVATE_KEY"):
            load_manifest(write(tmp_path, manifest_data))

    def test_theme_colliding_with_content_repo(self, tmp_path, manifest_data):
        manifest_data["THEME_REPO_NAME"] = "Workshops"
        with pytest.raises(ConfigError):
            load_manifest(write(tmp_path, manifest_data))

    def test_repo_name_starting_with_digit(self, tmp_path, manifest_data):
        manifest_data["REPOS"] = ["2024-labs"]
        with pytest.raises(ConfigError, match="secret name"):
            load_manifest(write(tmp_path, manifest_data))
