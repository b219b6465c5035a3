"""
Resource Provisioner.

Creates, or reuses, the Azure resources that hold remote Terraform state
and the service principal CI uses to run Terraform. Every step checks for
existence first, so re-running against the same subscription creates
nothing new.

Service principal handling is a two-path outcome resolved by queries, not
by parsing "already exists" text:

    lookup by display name ── none ──> Created(create-for-rbac credentials)
                           └─ one ───> AlreadyExists(reset credential by appId)
"""

from dataclasses import dataclass
from typing import Any, Callable, Union

import structlog

from bootstrapper.clients.azure import AzureCli
from bootstrapper.config.manifest import Manifest
from bootstrapper.core import naming
from bootstrapper.core.exceptions import CommandError, ProvisionError
from bootstrapper.models.schemas import (
    CloudSession,
    IdentityOutcome,
    ServiceIdentity,
    StateStorage,
)

logger = structlog.get_logger(__name__)

CONTRIBUTOR_ROLE = "Contributor"
USER_ACCESS_ADMIN_ROLE = "User Access Administrator"


@dataclass(frozen=True)
class Created:
    """A new service principal was registered."""

    credentials: dict[str, Any]
    outcome: IdentityOutcome = IdentityOutcome.CREATED


@dataclass(frozen=True)
class AlreadyExists:
    """A service principal with the name exists; `lookup` yields usable credentials."""

    app_id: str
    lookup: Callable[[], dict[str, Any]]
    outcome: IdentityOutcome = IdentityOutcome.ALREADY_EXISTS


IdentityResult = Union[Created, AlreadyExists]


class ResourceProvisioner:
    """Idempotent creation of state storage and the CI service identity."""

    def __init__(self, azure: AzureCli, storage_sku: str = "Standard_LRS"):
        self.azure = azure
        self.storage_sku = storage_sku

    # -------------------------------------------------------------------------
    # State storage
    # -------------------------------------------------------------------------

    @staticmethod
    def state_storage_names(manifest: Manifest) -> StateStorage:
        project = manifest.project_name
        return StateStorage(
            resource_group=naming.resource_group_name(project),
            storage_account=naming.storage_account_name(project),
            container=naming.container_name(project),
            location=manifest.location,
        )

    def _ensure(self, kind: str, name: str, exists: Callable[[], bool], create: Callable[[], None]) -> bool:
        """Create a resource unless it exists. Returns True when something was created."""
        if exists():
            logger.info("resource_exists", kind=kind, name=name)
            return False
        try:
            create()
        except CommandError as e:
            raise ProvisionError(f"Failed to create {kind} {name}", {"stderr": e.stderr})
        logger.info("resource_created", kind=kind, name=name)
        return True

    def create_state_storage(self, manifest: Manifest, session: CloudSession) -> StateStorage:
        """
        Ensure resource group, storage account and blob container, in that order.

        Args:
            manifest: Project manifest (name and location)
            session: Active Azure session; resources land in its subscription

        Returns:
            Names of the state storage resources

        Raises:
            ProvisionError: If any creation fails
        """
        storage = self.state_storage_names(manifest)
        logger.info(
            "state_storage_ensure",
            subscription_id=session.subscription_id,
            resource_group=storage.resource_group,
            storage_account=storage.storage_account,
            container=storage.container,
        )

        self._ensure(
            "resource_group",
            storage.resource_group,
            lambda: self.azure.group_exists(storage.resource_group),
            lambda: self.azure.create_group(storage.resource_group, storage.location),
        )
        self._ensure(
            "storage_account",
            storage.storage_account,
            lambda: self.azure.storage_account_exists(storage.storage_account, storage.resource_group),
            lambda: self.azure.create_storage_account(
                storage.storage_account, storage.resource_group, storage.location, self.storage_sku
            ),
        )
        self._ensure(
            "storage_container",
            storage.container,
            lambda: self.azure.container_exists(storage.container, storage.storage_account),
            lambda: self.azure.create_container(storage.container, storage.storage_account),
        )
        return storage

    # -------------------------------------------------------------------------
    # Service identity
    # -------------------------------------------------------------------------

    def _resolve_identity(self, name: str, session: CloudSession) -> IdentityResult:
        try:
            app_ids = self.azure.find_service_principal_app_ids(name)
        except CommandError as e:
            raise ProvisionError(f"Failed to look up service principal {name}", {"stderr": e.stderr})
        if len(app_ids) > 1:
            raise ProvisionError(
                f"Found {len(app_ids)} service principals named {name}",
                {"app_ids": app_ids},
            )
        if app_ids:
            app_id = app_ids[0]
            return AlreadyExists(app_id=app_id, lookup=lambda: self.azure.reset_app_credential(app_id))

        try:
            credentials = self.azure.create_service_principal(name, CONTRIBUTOR_ROLE, session.scope)
        except CommandError as e:
            raise ProvisionError(f"Failed to create service principal {name}", {"stderr": e.stderr})
        return Created(credentials=credentials)

    def ensure_role(self, client_id: str, role: str, scope: str) -> bool:
        """List-then-create a role assignment. Returns True when one was created."""
        try:
            existing = self.azure.role_assignment_ids(client_id, role, scope)
        except CommandError as e:
            raise ProvisionError(f"Failed to list {role!r} assignments", {"stderr": e.stderr})
        if existing:
            logger.info("role_assignment_exists", role=role, client_id=client_id)
            return False
        try:
            self.azure.create_role_assignment(client_id, role, scope)
        except CommandError as e:
            raise ProvisionError(f"Failed to assign role {role!r}", {"stderr": e.stderr})
        logger.info("role_assignment_created", role=role, client_id=client_id)
        return True

    def create_or_reuse_service_identity(self, manifest: Manifest, session: CloudSession) -> ServiceIdentity:
        """
        Obtain usable service principal credentials named after the project.

        A new principal is created with Contributor on the subscription. An
        existing one gets a fresh client secret and its Contributor grant
        re-checked. Either way a User Access Administrator grant is ensured.

        Raises:
            ProvisionError: If no usable client id can be obtained
        """
        name = manifest.project_name
        result = self._resolve_identity(name, session)

        if isinstance(result, AlreadyExists):
            try:
                credentials = result.lookup()
            except CommandError as e:
                raise ProvisionError(f"Failed to reset credentials for {name}", {"stderr": e.stderr})
            credentials.setdefault("appId", result.app_id)
        else:
            credentials = result.credentials

        client_id = credentials.get("appId")
        client_secret = credentials.get("password")
        if not client_id or not client_secret:
            raise ProvisionError(f"No usable client id for service principal {name}")

        self.azure.runner.redact(client_secret)
        identity = ServiceIdentity(
            client_id=client_id,
            client_secret=client_secret,
            tenant_id=credentials.get("tenant") or session.tenant_id,
            subscription_id=session.subscription_id,
        )
        logger.info("service_identity_ready", outcome=result.outcome.value, client_id=client_id)

        if isinstance(result, AlreadyExists):
            self.ensure_role(client_id, CONTRIBUTOR_ROLE, session.scope)
        self.ensure_role(client_id, USER_ACCESS_ADMIN_ROLE, session.scope)
        return identity
