"""
Dispatch Installer.

Copies the dispatch workflow into every managed repository so that a push
there fires a repository_dispatch event at the control repo. Each repo is
cloned into a throwaway directory over https with the PAT; the token is
redacted from every log line.

A repo that cannot be cloned or pushed is skipped with a warning; the
installer is re-run on the next bootstrap anyway.
"""

import shutil
import tempfile
from pathlib import Path
from typing import Sequence

import structlog

from bootstrapper.clients.git import GitRepository
from bootstrapper.core.exceptions import CommandError, ConfigError
from bootstrapper.core.runner import CommandRunner
from bootstrapper.models.schemas import RepoHostSession

logger = structlog.get_logger(__name__)

DISPATCH_TARGET = Path(".github/workflows/dispatch.yml")
COMMIT_MESSAGE = "Add or update dispatch.yml workflow"


class DispatchInstaller:
    """Pushes the dispatch workflow into content repositories."""

    def __init__(self, runner: CommandRunner, workflow_file: Path, host: str = "github.com"):
        self.runner = runner
        self.workflow_file = Path(workflow_file)
        self.host = host

    def clone_url(self, session: RepoHostSession, repo: str) -> str:
        token = session.token.get_secret_value()
        return f"https://{token}@{self.host}/{session.qualify(repo)}"

    def install_into(self, session: RepoHostSession, repo: str, workdir: Path) -> bool:
        """Install into one repo. Returns True when a commit was pushed."""
        slug = session.qualify(repo)
        token = session.token.get_secret_value()
        try:
            clone = GitRepository.clone(
                self.clone_url(session, repo), workdir / repo, self.runner, sensitive=[token]
            )
        except CommandError as e:
            logger.warning("dispatch_clone_failed", repo=slug, stderr=e.stderr)
            return False

        target = clone.path / DISPATCH_TARGET
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.workflow_file, target)

        relative = str(DISPATCH_TARGET)
        if not clone.has_changes(relative):
            logger.info("dispatch_unchanged", repo=slug)
            return False

        try:
            clone.add(relative)
            clone.commit(COMMIT_MESSAGE)
        except CommandError as e:
            logger.warning("dispatch_commit_failed", repo=slug, stderr=e.stderr)
            return False
        pushed = clone.push("HEAD")
        if not pushed.ok:
            logger.warning("dispatch_push_failed", repo=slug, stderr=pushed.stderr.strip())
            return False

        logger.info("dispatch_installed", repo=slug)
        return True

    def install(self, session: RepoHostSession, repo_names: Sequence[str]) -> list[str]:
        """
        Install the dispatch workflow into each repository.

        Returns:
            Names of the repositories that received a new commit

        Raises:
            ConfigError: If the dispatch workflow file is missing
        """
        if not self.workflow_file.is_file():
            raise ConfigError(f"Dispatch workflow not found: {self.workflow_file}")

        updated = []
        with tempfile.TemporaryDirectory(prefix="bootstrap-dispatch-") as tmp:
            for repo in repo_names:
                if self.install_into(session, repo, Path(tmp)):
                    updated.append(repo)
        return updated
