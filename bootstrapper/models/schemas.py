"""Pydantic models for the values passed between bootstrap stages."""

import json
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

AZURE_RESOURCE_MANAGER_URL = "https://management.azure.com/"


# =============================================================================
# Sessions
# =============================================================================


class CloudSession(BaseModel):
    """Authenticated Azure CLI context for one subscription."""

    model_config = ConfigDict(frozen=True)

    subscription_id: str
    subscription_name: str = ""
    tenant_id: str

    @property
    def scope(self) -> str:
        return f"/subscriptions/{self.subscription_id}"


class RepoHostSession(BaseModel):
    """Authenticated GitHub CLI context plus the control repository coordinates."""

    model_config = ConfigDict(frozen=True)

    owner: str
    control_repo: str
    token: SecretStr

    def qualify(self, repo: str) -> str:
        """Return owner/repo for a bare repository name."""
        return f"{self.owner}/{repo}"

    @property
    def control_slug(self) -> str:
        return self.qualify(self.control_repo)


# =============================================================================
# Azure
# =============================================================================


class StateStorage(BaseModel):
    """Names of the resources holding remote Terraform state."""

    model_config = ConfigDict(frozen=True)

    resource_group: str
    storage_account: str
    container: str
    location: str


class ServiceIdentity(BaseModel):
    """Service principal credentials used by CI for non-interactive logins."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: SecretStr
    tenant_id: str
    subscription_id: str

    def sdk_auth_json(self) -> str:
        """Render the AZURE_CREDENTIALS document expected by azure/login."""
        return json.dumps(
            {
                "clientId": self.client_id,
                "clientSecret": self.client_secret.get_secret_value(),
                "subscriptionId": self.subscription_id,
                "tenantId": self.tenant_id,
                "resourceManagerEndpointUrl": AZURE_RESOURCE_MANAGER_URL,
            },
            separators=(",", ":"),
        )


class IdentityOutcome(str, Enum):
    """How the service identity was obtained."""
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


# =============================================================================
# GitHub
# =============================================================================


class RepositoryRecord(BaseModel):
    """Existence state of one managed repository."""

    name: str
    exists: bool
    created: bool = False


class KeyPair(BaseModel):
    """On-disk OpenSSH key pair dedicated to one repository."""

    model_config = ConfigDict(frozen=True)

    repo_name: str
    private_key_path: Path
    public_key_path: Path
    generated: bool = False

    def read_private(self) -> str:
        return self.private_key_path.read_text(encoding="utf-8")

    def read_public(self) -> str:
        return self.public_key_path.read_text(encoding="utf-8").strip()


class DeployKey(BaseModel):
    """A deploy key as listed by the repository host."""

    id: int
    title: str
    key: str
    read_only: bool = Field(default=True, alias="readOnly")

    model_config = ConfigDict(populate_by_name=True)


class SecretBundle(BaseModel):
    """Named secret values destined for one repository's secret store."""

    target: str
    secrets: dict[str, SecretStr] = Field(default_factory=dict)

    def put(self, name: str, value: str) -> None:
        self.secrets[name] = SecretStr(value)

    def names(self) -> list[str]:
        return list(self.secrets)

    def items(self) -> list[tuple[str, str]]:
        """Plain (name, value) pairs in insertion order."""
        return [(name, value.get_secret_value()) for name, value in self.secrets.items()]


class PullRequestRef(BaseModel):
    """Pull request opened for a workflow update."""

    number: Optional[int] = None
    url: str = ""
    merged: bool = False
