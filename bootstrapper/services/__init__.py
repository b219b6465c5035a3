"""
Bootstrap stage services.

- identity: Azure and GitHub sessions
- provisioner: Terraform state storage and the CI service principal
- repositories: Repository creation, key pairs and deploy keys
- secrets: Secret propagation with retries
- dispatch: Dispatch workflow installation in content repos
- workflow: docs-builder rendering, publishing and triggering
- preflight: Control repository checks
"""

from bootstrapper.services.identity import SessionManager
from bootstrapper.services.provisioner import AlreadyExists, Created, ResourceProvisioner
from bootstrapper.services.repositories import RepositoryManager
from bootstrapper.services.secrets import SecretPropagator
from bootstrapper.services.dispatch import DispatchInstaller
from bootstrapper.services.workflow import WorkflowGenerator
from bootstrapper.services.preflight import SyncState, check_control_repo

__all__ = [
    "SessionManager",
    "ResourceProvisioner",
    "Created",
    "AlreadyExists",
    "RepositoryManager",
    "SecretPropagator",
    "DispatchInstaller",
    "WorkflowGenerator",
    "SyncState",
    "check_control_repo",
]
