"""
Bootstrap workflow orchestration.

Drives the stages in strict order and records where a run got to:

    START -> CONFIG_LOADED -> PREFLIGHT_PASSED -> SESSIONS_ESTABLISHED
          -> RESOURCES_PROVISIONED -> REPOSITORIES_READY
          -> SECRETS_PROPAGATED -> WORKFLOW_RENDERED -> TRIGGERED -> DONE

Any error moves the run to FAILED and is re-raised. Nothing is rolled back;
every stage checks existing state first, so re-running the bootstrap picks
up where the failed run stopped.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from bootstrapper.clients.azure import AzureCli
from bootstrapper.clients.git import GitRepository
from bootstrapper.clients.github import GitHubCli
from bootstrapper.config.manifest import Manifest, load_manifest
from bootstrapper.config.settings import Settings
from bootstrapper.core.prompts import Prompter
from bootstrapper.core.retry import RetryPolicy
from bootstrapper.core.runner import CommandRunner
from bootstrapper.models.schemas import PullRequestRef, StateStorage
from bootstrapper.services.dispatch import DispatchInstaller
from bootstrapper.services.identity import SessionManager
from bootstrapper.services.preflight import check_control_repo
from bootstrapper.services.provisioner import ResourceProvisioner
from bootstrapper.services.repositories import RepositoryManager
from bootstrapper.services.secrets import SecretPropagator
from bootstrapper.services.workflow import WorkflowGenerator

logger = structlog.get_logger(__name__)


class BootstrapStage(str, Enum):
    """Stages of a bootstrap run."""
    START = "start"
    CONFIG_LOADED = "config_loaded"
    PREFLIGHT_PASSED = "preflight_passed"
    SESSIONS_ESTABLISHED = "sessions_established"
    RESOURCES_PROVISIONED = "resources_provisioned"
    REPOSITORIES_READY = "repositories_ready"
    SECRETS_PROPAGATED = "secrets_propagated"
    WORKFLOW_RENDERED = "workflow_rendered"
    TRIGGERED = "triggered"
    DONE = "done"
    FAILED = "failed"


class BootstrapResult(BaseModel):
    """Summary of one run."""

    stage: BootstrapStage = BootstrapStage.START
    history: list[BootstrapStage] = Field(default_factory=lambda: [BootstrapStage.START])
    failed_at: Optional[BootstrapStage] = None
    error: Optional[str] = None

    project_name: Optional[str] = None
    storage: Optional[StateStorage] = None
    client_id: Optional[str] = None
    repos_created: list[str] = Field(default_factory=list)
    keys_generated: list[str] = Field(default_factory=list)
    dispatch_updated: list[str] = Field(default_factory=list)
    pull_request: Optional[PullRequestRef] = None
    triggered: bool = False

    @property
    def succeeded(self) -> bool:
        return self.stage == BootstrapStage.DONE


class BootstrapWorkflow:
    """Runs every bootstrap stage against injected collaborators."""

    def __init__(
        self,
        settings: Settings,
        control_repo: GitRepository,
        sessions: SessionManager,
        provisioner: ResourceProvisioner,
        repositories: RepositoryManager,
        secrets: SecretPropagator,
        generator: WorkflowGenerator,
        dispatch: Optional[DispatchInstaller] = None,
    ):
        self.settings = settings
        self.control_repo = control_repo
        self.sessions = sessions
        self.provisioner = provisioner
        self.repositories = repositories
        self.secrets = secrets
        self.generator = generator
        self.dispatch = dispatch
        self.result = BootstrapResult()
        self.logger = logger.bind(component="bootstrap")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        runner: Optional[CommandRunner] = None,
        prompter: Optional[Prompter] = None,
        workdir: Optional[Path] = None,
    ) -> "BootstrapWorkflow":
        """
        Wire the real CLI-backed collaborators.

        Args:
            settings: Loaded settings (CLI overrides already applied)
            runner: Shared command runner; one is created when omitted
            prompter: Operator prompts; stdin-backed when omitted
            workdir: Control repository checkout (defaults to the cwd)
        """
        runner = runner or CommandRunner()
        prompter = prompter or Prompter()
        control_repo = GitRepository(workdir or Path.cwd(), runner)
        azure = AzureCli(runner)
        github = GitHubCli(runner)

        policy = RetryPolicy(
            max_attempts=settings.secret_max_attempts,
            delay_seconds=settings.secret_retry_delay_seconds,
        )
        dispatch = None
        if settings.install_dispatch_workflow:
            dispatch = DispatchInstaller(runner, settings.dispatch_workflow)

        return cls(
            settings=settings,
            control_repo=control_repo,
            sessions=SessionManager(azure, github, control_repo, prompter, settings),
            provisioner=ResourceProvisioner(azure, storage_sku=settings.storage_sku),
            repositories=RepositoryManager(
                github,
                prompter,
                settings.ssh_dir,
                deploy_key_title=settings.deploy_key_title,
                auto_create=settings.auto_create_repos,
                confirm_overwrite=settings.confirm_key_overwrite,
            ),
            secrets=SecretPropagator(github, policy, prompter),
            generator=WorkflowGenerator(
                github,
                settings.workflow_output_path,
                branch=settings.workflow_branch,
                workflow_name=settings.workflow_name,
            ),
            dispatch=dispatch,
        )

    def _advance(self, stage: BootstrapStage) -> None:
        self.result.stage = stage
        self.result.history.append(stage)
        self.logger.info("bootstrap_stage", stage=stage.value)

    def run(self) -> BootstrapResult:
        """
        Execute the full bootstrap.

        Returns:
            The run summary, with stage DONE

        Raises:
            BootstrapError: Any stage failure, after the result is marked FAILED
        """
        self.result = BootstrapResult()
        try:
            self._run_stages()
        except Exception as e:
            self.result.failed_at = self.result.stage
            self.result.error = str(e)
            self.result.stage = BootstrapStage.FAILED
            self.result.history.append(BootstrapStage.FAILED)
            self.logger.error(
                "bootstrap_failed",
                failed_after=self.result.failed_at.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        return self.result

    def _run_stages(self) -> None:
        settings = self.settings
        result = self.result

        manifest: Manifest = load_manifest(settings.manifest_path)
        result.project_name = manifest.project_name
        repos = manifest.managed_repos
        self._advance(BootstrapStage.CONFIG_LOADED)

        check_control_repo(self.control_repo)
        self._advance(BootstrapStage.PREFLIGHT_PASSED)

        cloud = self.sessions.ensure_cloud_session()
        cloud = self.sessions.select_subscription(cloud)
        host = self.sessions.ensure_repo_host_session()
        self._advance(BootstrapStage.SESSIONS_ESTABLISHED)

        storage = self.provisioner.create_state_storage(manifest, cloud)
        identity = self.provisioner.create_or_reuse_service_identity(manifest, cloud)
        result.storage = storage
        result.client_id = identity.client_id
        self._advance(BootstrapStage.RESOURCES_PROVISIONED)

        records = self.repositories.ensure_repositories_exist(host, repos)
        keypairs = self.repositories.ensure_keypairs(repos)
        result.repos_created = [r.name for r in records if r.created]
        result.keys_generated = [k.repo_name for k in keypairs if k.generated]
        self._advance(BootstrapStage.REPOSITORIES_READY)

        preset = settings.htpasswd.get_secret_value() if settings.htpasswd else ""
        if preset:
            self.secrets.github.runner.redact(preset)
        self.secrets.ensure_htpasswd(host, preset=preset)

        bundle = SecretPropagator.build_shared_bundle(manifest, host, storage, identity)
        self.secrets.propagate_shared_secrets(bundle, host.control_slug)
        self.secrets.propagate_per_repo_secrets(host, keypairs)
        if self.dispatch is not None:
            result.dispatch_updated = self.dispatch.install(host, repos)
        self.repositories.sync_deploy_keys(host, keypairs)
        self._advance(BootstrapStage.SECRETS_PROPAGATED)

        rendered = self.generator.render_template(settings.workflow_template, repos)
        result.pull_request = self.generator.publish(host, self.control_repo, rendered)
        self._advance(BootstrapStage.WORKFLOW_RENDERED)

        if settings.trigger_workflow:
            self.generator.trigger(host)
            result.triggered = True
            self._advance(BootstrapStage.TRIGGERED)
        else:
            self.logger.info("workflow_trigger_skipped", workflow=settings.workflow_name)

        self._advance(BootstrapStage.DONE)
        self.logger.info(
            "bootstrap_complete",
            project=manifest.project_name,
            repos=len(repos),
            repos_created=len(result.repos_created),
        )
