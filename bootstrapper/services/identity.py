"""
Identity / Session Manager.

Guarantees authenticated sessions to Azure and GitHub before any dependent
call, and turns the ambient CLI state into explicit session objects that
every later stage receives as a parameter.
"""

from typing import Optional

import structlog
from pydantic import SecretStr

from bootstrapper.clients.azure import AzureCli
from bootstrapper.clients.git import GitRepository, parse_remote_url
from bootstrapper.clients.github import GitHubCli
from bootstrapper.config.settings import Settings
from bootstrapper.core.exceptions import AuthError, CommandError, ConfigError
from bootstrapper.core.prompts import Prompter
from bootstrapper.models.schemas import CloudSession, RepoHostSession

logger = structlog.get_logger(__name__)


def _session_from_account(account: dict) -> CloudSession:
    return CloudSession(
        subscription_id=account["id"],
        subscription_name=account.get("name", ""),
        tenant_id=account.get("tenantId", ""),
    )


class SessionManager:
    """Establishes the cloud and repository-host sessions."""

    def __init__(
        self,
        azure: AzureCli,
        github: GitHubCli,
        control_repo: GitRepository,
        prompter: Prompter,
        settings: Settings,
    ):
        self.azure = azure
        self.github = github
        self.control_repo = control_repo
        self.prompter = prompter
        self.settings = settings

    # -------------------------------------------------------------------------
    # Azure
    # -------------------------------------------------------------------------

    def ensure_cloud_session(self) -> CloudSession:
        """
        Probe `az account show`; fall back to a device-code login.

        Raises:
            AuthError: If no session exists after the login attempt.
        """
        account = self.azure.account_show()
        if account is None:
            logger.info("azure_login_required")
            self.azure.login_device_code()
            account = self.azure.account_show()

        if not account or not account.get("id"):
            raise AuthError("Azure login did not complete")

        session = _session_from_account(account)
        logger.info(
            "azure_session_ready",
            subscription=session.subscription_name,
            subscription_id=session.subscription_id,
        )
        return session

    def select_subscription(self, current: CloudSession) -> CloudSession:
        """
        Confirm the active subscription or switch to another one by exact name.

        Raises:
            AuthError: If the entered name does not match exactly one subscription
                or the switch itself fails.
        """
        if self.prompter.confirm(
            f"Use the current default subscription: {current.subscription_name} "
            f"(ID: {current.subscription_id})?",
            default=True,
        ):
            return current

        subscriptions = self.azure.list_subscriptions()
        for sub in subscriptions:
            self.prompter.echo(f"  {sub.get('name', '')}\t{sub.get('id', '')}")

        wanted = self.prompter.ask("Enter the name of the subscription you want to set as default:")
        matches = [sub for sub in subscriptions if sub.get("name") == wanted]
        if len(matches) != 1:
            raise AuthError(
                f"Subscription name {wanted!r} matched {len(matches)} subscriptions",
                {"name": wanted, "matches": len(matches)},
            )

        try:
            self.azure.set_subscription(matches[0]["id"])
        except CommandError as e:
            raise AuthError(f"Failed to switch to subscription {wanted!r}", {"stderr": e.stderr})
        session = _session_from_account(matches[0])
        logger.info("azure_subscription_selected", subscription=session.subscription_name)
        return session

    # -------------------------------------------------------------------------
    # GitHub
    # -------------------------------------------------------------------------

    def _detect_control_repo(self) -> tuple[str, str]:
        url = self.control_repo.remote_url()
        parsed = parse_remote_url(url) if url else None
        owner = self.settings.github_owner or (parsed[0] if parsed else None)
        if not owner:
            raise ConfigError("Could not detect GitHub organization from remote 'origin'")
        if not parsed:
            raise ConfigError("Could not detect the control repository from remote 'origin'")
        return owner, parsed[1]

    def _resolve_token(self) -> str:
        token: Optional[SecretStr] = self.settings.github_pat
        value = token.get_secret_value() if token else self.prompter.ask_secret("Enter GitHub PAT:")
        if not value:
            raise AuthError("A GitHub personal access token is required")
        return value

    def ensure_repo_host_session(self) -> RepoHostSession:
        """
        Check `gh auth status`, log in when needed, and collect the PAT.

        Raises:
            AuthError: If the GitHub login fails or no PAT is provided.
            ConfigError: If the owner/control repo cannot be detected.
        """
        if not self.github.is_authenticated():
            logger.info("github_login_required")
            if not self.github.login() or not self.github.is_authenticated():
                raise AuthError("GitHub login failed")

        owner, control = self._detect_control_repo()
        token = self._resolve_token()
        self.github.runner.redact(token)

        session = RepoHostSession(
            owner=owner,
            control_repo=control,
            token=SecretStr(token),
        )
        logger.info("github_session_ready", owner=owner, control_repo=control)
        return session
