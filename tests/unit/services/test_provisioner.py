"""Unit tests for state storage and service identity provisioning."""

import json

import pytest

from bootstrapper.core.exceptions import CommandError, ProvisionError
from bootstrapper.models.schemas import IdentityOutcome
from bootstrapper.services.provisioner import (
    CONTRIBUTOR_ROLE,
    USER_ACCESS_ADMIN_ROLE,
    AlreadyExists,
    Created,
    ResourceProvisioner,
)


class TestStateStorage:
    """Resource group, storage account and container creation."""

    def test_creates_all_in_order(self, fake_azure, manifest, cloud_session):
        storage = ResourceProvisioner(fake_azure).create_state_storage(manifest, cloud_session)

        assert storage.resource_group == "Xperts-Labs2-tfstate-RG"
        assert storage.storage_account == "xpertslabs2account"
        assert storage.container == "xpertslabs2tfstate"
        assert [kind for kind, _ in fake_azure.created] == ["group", "storage_account", "container"]

    def test_second_run_creates_nothing(self, fake_azure, manifest, cloud_session):
        provisioner = ResourceProvisioner(fake_azure)
        first = provisioner.create_state_storage(manifest, cloud_session)
        fake_azure.created.clear()

        second = provisioner.create_state_storage(manifest, cloud_session)

        assert fake_azure.created == []
        assert first == second

    def test_partial_state_is_completed(self, fake_azure, manifest, cloud_session):
        fake_azure.groups.add("Xperts-Labs2-tfstate-RG")

        ResourceProvisioner(fake_azure).create_state_storage(manifest, cloud_session)

        assert [kind for kind, _ in fake_azure.created] == ["storage_account", "container"]

    def test_creation_failure(self, fake_azure, manifest, cloud_session):
        def fail(*args):
            raise CommandError(["az"], 1, "StorageAccountAlreadyTaken")

        fake_azure.create_storage_account = fail

        with pytest.raises(ProvisionError) as exc_info:
            ResourceProvisioner(fake_azure).create_state_storage(manifest, cloud_session)
        assert exc_info.value.details["stderr"] == "StorageAccountAlreadyTaken"


class TestServiceIdentity:
    """Created / AlreadyExists service principal paths."""

    def test_created_path(self, fake_azure, manifest, cloud_session):
        identity = ResourceProvisioner(fake_azure).create_or_reuse_service_identity(manifest, cloud_session)

        assert identity.client_id == "app-Xperts-Labs2"
        assert identity.client_secret.get_secret_value() == "initial-secret"
        assert identity.subscription_id == cloud_session.subscription_id
        assert ("app-Xperts-Labs2", USER_ACCESS_ADMIN_ROLE, cloud_session.scope) in fake_azure.roles
        assert fake_azure.credential_resets == []

    def test_already_exists_resets_credential(self, fake_azure, manifest, cloud_session):
        provisioner = ResourceProvisioner(fake_azure)
        provisioner.create_or_reuse_service_identity(manifest, cloud_session)
        fake_azure.created.clear()

        identity = provisioner.create_or_reuse_service_identity(manifest, cloud_session)

        assert identity.client_id == "app-Xperts-Labs2"
        assert identity.client_secret.get_secret_value() == "reset-secret-1"
        assert fake_azure.credential_resets == ["app-Xperts-Labs2"]
        assert fake_azure.created == []

    def test_reuse_restores_missing_contributor(self, fake_azure, manifest, cloud_session):
        fake_azure.principals["Xperts-Labs2"] = "app-existing"

        ResourceProvisioner(fake_azure).create_or_reuse_service_identity(manifest, cloud_session)

        assert ("app-existing", CONTRIBUTOR_ROLE, cloud_session.scope) in fake_azure.roles
        assert ("app-existing", USER_ACCESS_ADMIN_ROLE, cloud_session.scope) in fake_azure.roles

    def test_resolve_outcomes(self, fake_azure, cloud_session):
        provisioner = ResourceProvisioner(fake_azure)

        created = provisioner._resolve_identity("proj", cloud_session)
        existing = provisioner._resolve_identity("proj", cloud_session)

        assert isinstance(created, Created)
        assert created.outcome is IdentityOutcome.CREATED
        assert isinstance(existing, AlreadyExists)
        assert existing.outcome is IdentityOutcome.ALREADY_EXISTS
        assert existing.app_id == "app-proj"

    def test_ambiguous_display_name(self, fake_azure, manifest, cloud_session):
        fake_azure.find_service_principal_app_ids = lambda name: ["a", "b"]

        with pytest.raises(ProvisionError, match="Found 2"):
            ResourceProvisioner(fake_azure).create_or_reuse_service_identity(manifest, cloud_session)

    def test_failed_lookup(self, fake_azure, manifest, cloud_session):
        def fail(name):
            raise CommandError(["az", "ad", "sp", "list"], 1, "Insufficient privileges")

        fake_azure.find_service_principal_app_ids = fail

        with pytest.raises(ProvisionError, match="Failed to look up") as exc_info:
            ResourceProvisioner(fake_azure).create_or_reuse_service_identity(manifest, cloud_session)
        assert exc_info.value.details["stderr"] == "Insufficient privileges"
        assert fake_azure.created == []

    def test_failed_role_listing(self, fake_azure, manifest, cloud_session):
        def fail(assignee, role, scope):
            raise CommandError(["az", "role", "assignment", "list"], 1, "AuthorizationFailed")

        fake_azure.role_assignment_ids = fail

        with pytest.raises(ProvisionError, match="Failed to list"):
            ResourceProvisioner(fake_azure).create_or_reuse_service_identity(manifest, cloud_session)

    def test_missing_password(self, fake_azure, manifest, cloud_session):
        fake_azure.create_service_principal = lambda name, role, scope: {"appId": "a"}

        with pytest.raises(ProvisionError, match="No usable client id"):
            ResourceProvisioner(fake_azure).create_or_reuse_service_identity(manifest, cloud_session)

    def test_secret_is_redacted(self, fake_azure, manifest, cloud_session):
        ResourceProvisioner(fake_azure).create_or_reuse_service_identity(manifest, cloud_session)
        assert "initial-secret" not in fake_azure.runner._scrub("password=initial-secret")

    def test_sdk_auth_json(self, fake_azure, manifest, cloud_session):
        identity = ResourceProvisioner(fake_azure).create_or_reuse_service_identity(manifest, cloud_session)

        document = json.loads(identity.sdk_auth_json())

        assert document == {
            "clientId": "app-Xperts-Labs2",
            "clientSecret": "initial-secret",
            "subscriptionId": cloud_session.subscription_id,
            "tenantId": "tenant-1",
            "resourceManagerEndpointUrl": "https://management.azure.com/",
        }
