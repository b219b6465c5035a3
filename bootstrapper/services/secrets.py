"""
Secret Propagator.

Pushes named secrets into repository secret stores through `gh secret set`,
retrying transient failures under an injected RetryPolicy. Setting a secret
overwrites any previous value, so propagation is safe to repeat.

Two scopes are written:
- control repo: Azure state/identity values, project settings, the PAT,
  HTPASSWD and one <REPO>_SSH_PRIVATE_KEY per managed repo (the rendered
  docs-builder workflow runs there and clones each repo with its key)
- each managed repo: PAT and CONTROL_REPO, used by its dispatch workflow
"""

import re
from typing import Sequence

import structlog

from bootstrapper.clients.github import GitHubCli
from bootstrapper.config.manifest import Manifest
from bootstrapper.core import naming
from bootstrapper.core.exceptions import CommandError, SecretPropagationError
from bootstrapper.core.prompts import Prompter
from bootstrapper.core.retry import RetryPolicy
from bootstrapper.models.schemas import (
    KeyPair,
    RepoHostSession,
    SecretBundle,
    ServiceIdentity,
    StateStorage,
)

logger = structlog.get_logger(__name__)

HTPASSWD_SECRET = "HTPASSWD"

_SERVER_ERROR = re.compile(r"HTTP 5\d\d")


def _is_server_error(exc: BaseException) -> bool:
    return isinstance(exc, CommandError) and bool(_SERVER_ERROR.search(exc.stderr))


class SecretPropagator:
    """Writes secret bundles with bounded, fixed-delay retries."""

    def __init__(self, github: GitHubCli, policy: RetryPolicy, prompter: Prompter):
        self.github = github
        self.policy = policy
        self.prompter = prompter

    def set_secret(self, repo_scope: str, key: str, value: str) -> None:
        """
        Set one secret in `repo_scope` (owner/repo).

        Every failure consumes an attempt; 5xx responses are only logged
        differently.

        Raises:
            SecretPropagationError: When all attempts failed, with the last error output
        """
        attempts = 0

        def attempt() -> None:
            nonlocal attempts
            attempts += 1
            try:
                self.github.set_secret(repo_scope, key, value)
            except CommandError as e:
                event = "secret_set_server_error" if _is_server_error(e) else "secret_set_failed"
                logger.warning(event, repo=repo_scope, key=key, attempt=attempts, stderr=e.stderr)
                raise

        try:
            self.policy.call(attempt)
        except CommandError as e:
            raise SecretPropagationError(key, attempts, e.stderr)
        logger.info("secret_set", repo=repo_scope, key=key)

    # -------------------------------------------------------------------------
    # Bundles
    # -------------------------------------------------------------------------

    @staticmethod
    def build_shared_bundle(
        manifest: Manifest,
        session: RepoHostSession,
        storage: StateStorage,
        identity: ServiceIdentity,
    ) -> SecretBundle:
        """Control-repo secrets consumed by the Terraform and docs workflows."""
        bundle = SecretBundle(target=session.control_slug)
        bundle.put("AZURE_STORAGE_ACCOUNT_NAME", storage.storage_account)
        bundle.put("TFSTATE_CONTAINER_NAME", storage.container)
        bundle.put("AZURE_RESOURCE_GROUP_NAME", storage.resource_group)
        bundle.put("ARM_SUBSCRIPTION_ID", identity.subscription_id)
        bundle.put("ARM_TENANT_ID", identity.tenant_id)
        bundle.put("ARM_CLIENT_ID", identity.client_id)
        bundle.put("ARM_CLIENT_SECRET", identity.client_secret.get_secret_value())
        bundle.put("AZURE_CREDENTIALS", identity.sdk_auth_json())
        bundle.put("ACR_REGISTRY", naming.registry_login_server(manifest.project_name))
        bundle.put("PROJECTNAME", manifest.project_name)
        bundle.put("LOCATION", manifest.location)
        bundle.put("PAT", session.token.get_secret_value())
        bundle.put("DEPLOYED", "true" if manifest.deployed else "false")
        return bundle

    def propagate_shared_secrets(self, bundle: SecretBundle, target_repo: str) -> None:
        """Write the shared bundle into the control repository."""
        logger.info("shared_secrets_propagating", repo=target_repo, keys=bundle.names())
        for key, value in bundle.items():
            self.set_secret(target_repo, key, value)

    def propagate_per_repo_secrets(self, session: RepoHostSession, keypairs: Sequence[KeyPair]) -> None:
        """
        For each managed repo: PAT and CONTROL_REPO in the repo itself, and
        its private key under <NORMALIZED>_SSH_PRIVATE_KEY in the control repo.
        """
        token = session.token.get_secret_value()
        for keypair in keypairs:
            slug = session.qualify(keypair.repo_name)
            self.set_secret(slug, "PAT", token)
            self.set_secret(slug, "CONTROL_REPO", session.control_slug)

            private_key = keypair.read_private()
            self.github.runner.redact(private_key)
            self.set_secret(session.control_slug, naming.secret_key_name(keypair.repo_name), private_key)

    # -------------------------------------------------------------------------
    # Prompted secrets
    # -------------------------------------------------------------------------

    def ensure_htpasswd(self, session: RepoHostSession, preset: str = "") -> bool:
        """
        Make sure the control repo has an HTPASSWD secret.

        An existing value is only replaced when the operator asks for it
        (default: keep). Returns True when the secret was written.
        """
        target = session.control_slug
        if preset:
            self.set_secret(target, HTPASSWD_SECRET, preset)
            return True

        if HTPASSWD_SECRET in self.github.list_secret_names(target):
            logger.info("secret_exists", repo=target, key=HTPASSWD_SECRET)
            if not self.prompter.confirm(
                f"The GitHub secret '{HTPASSWD_SECRET}' already exists. Do you wish to change it?",
                default=False,
            ):
                return False

        value = self.prompter.ask_secret(f"Enter value for {HTPASSWD_SECRET}:")
        if not value:
            raise SecretPropagationError(HTPASSWD_SECRET, 0, "no value provided")
        self.github.runner.redact(value)
        self.set_secret(target, HTPASSWD_SECRET, value)
        return True
