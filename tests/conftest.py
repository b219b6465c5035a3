"""
Pytest Configuration and Shared Fixtures.

This module provides common fixtures for all tests:

- manifest_data / manifest_file: A sample config.json
- settings: Settings pointing at tmp_path, never reading .env
- fake_azure / fake_github / control_repo: In-memory CLI fakes
- host_session / cloud_session: Established sessions
- prompter: A Prompter that answers with the default
"""

import json
from pathlib import Path

import pytest
from pydantic import SecretStr

from bootstrapper.config.manifest import Manifest
from bootstrapper.config.settings import Settings
from bootstrapper.core.prompts import Prompter
from bootstrapper.models.schemas import CloudSession, RepoHostSession, ServiceIdentity, StateStorage

from tests.fakes import FakeAzure, FakeGitHub, FakeGitRepository, scripted


@pytest.fixture
def manifest_data() -> dict:
    """Return a sample manifest document."""
    return {
        "PROJECT_NAME": "Xperts-Labs2",
        "LOCATION": "westeurope",
        "DEPLOYED": "false",
        "REPOS": ["hands-on-labs", "workshops"],
        "THEME_REPO_NAME": "docs-theme",
    }


@pytest.fixture
def manifest_file(tmp_path, manifest_data) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(manifest_data), encoding="utf-8")
    return path


@pytest.fixture
def manifest(manifest_data) -> Manifest:
    return Manifest(
        project_name=manifest_data["PROJECT_NAME"],
        location=manifest_data["LOCATION"],
        deployed=manifest_data["DEPLOYED"],
        repo_names=tuple(manifest_data["REPOS"]),
        auxiliary_repo_names={"theme": manifest_data["THEME_REPO_NAME"]},
    )


@pytest.fixture
def settings(tmp_path, manifest_file) -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(
        _env_file=None,
        manifest_path=manifest_file,
        ssh_dir=tmp_path / "ssh",
        github_pat=SecretStr("ghp_testtoken"),
        htpasswd=SecretStr("admin:$apr1$hash"),
        auto_create_repos=True,
        secret_retry_delay_seconds=0,
    )


@pytest.fixture
def prompter() -> Prompter:
    """Answers every question with its default."""
    return Prompter(reader=scripted([]), secret_reader=scripted([]), writer=lambda _: None)


@pytest.fixture
def fake_azure() -> FakeAzure:
    return FakeAzure()


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def control_repo(tmp_path) -> FakeGitRepository:
    path = tmp_path / "control"
    path.mkdir()
    return FakeGitRepository(path)


@pytest.fixture
def cloud_session() -> CloudSession:
    return CloudSession(
        subscription_id="00000000-0000-0000-0000-000000000001",
        subscription_name="Dev Subscription",
        tenant_id="tenant-1",
    )


@pytest.fixture
def host_session() -> RepoHostSession:
    return RepoHostSession(
        owner="acme",
        control_repo="control",
        token=SecretStr("ghp_testtoken"),
    )


@pytest.fixture
def state_storage() -> StateStorage:
    return StateStorage(
        resource_group="Xperts-Labs2-tfstate-RG",
        storage_account="xpertslabs2account",
        container="xpertslabs2tfstate",
        location="westeurope",
    )


@pytest.fixture
def service_identity() -> ServiceIdentity:
    return ServiceIdentity(
        client_id="app-Xperts-Labs2",
        client_secret=SecretStr("initial-secret"),
        tenant_id="tenant-1",
        subscription_id="00000000-0000-0000-0000-000000000001",
    )
