"""
Workflow Template Generator.

Renders the docs-builder workflow for the control repository. The template
is an ordinary workflow file with one line containing %%INSERTCLONEREPO%%;
that line is replaced by a generated "Clone Content" step holding one
clone block per managed repository. Rendering is deterministic: the same
template and repository list always produce byte-identical output.

Publishing is idempotent too. Nothing is committed unless the rendered
file differs from what the control repo already has.
"""

from pathlib import Path
from typing import Optional, Sequence

import structlog
from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from bootstrapper.clients.git import GitRepository
from bootstrapper.clients.github import GitHubCli
from bootstrapper.config.settings import PACKAGE_TEMPLATES_DIR
from bootstrapper.core.exceptions import ConfigError, ProvisionError
from bootstrapper.core.naming import secret_key_name
from bootstrapper.models.schemas import PullRequestRef, RepoHostSession

logger = structlog.get_logger(__name__)

PLACEHOLDER = "%%INSERTCLONEREPO%%"
CLONE_BLOCK_TEMPLATE = "clone_content.yml.j2"
COMMIT_MESSAGE = "updating docs-builder"
PR_TITLE = "Initializing repo"
PR_BODY = "Update docs builder"


def collapse_blank_lines(text: str) -> str:
    """Squeeze every run of empty lines down to a single empty line."""
    lines = text[:-1].split("\n") if text.endswith("\n") else text.split("\n")
    kept = []
    blank = 0
    for line in lines:
        if line == "":
            blank += 1
            if blank <= 1:
                kept.append(line)
        else:
            blank = 0
            kept.append(line)
    return "\n".join(kept) + "\n"


class WorkflowGenerator:
    """Renders, publishes and triggers the docs-builder workflow."""

    def __init__(
        self,
        github: GitHubCli,
        output_path: Path,
        branch: str = "docs-builder",
        workflow_name: str = "docs-builder",
    ):
        self.github = github
        self.output_path = Path(output_path)
        self.branch = branch
        self.workflow_name = workflow_name
        # [[ ]] keeps GitHub's own ${{ }} expressions literal
        self._env = Environment(
            loader=FileSystemLoader(str(PACKAGE_TEMPLATES_DIR)),
            autoescape=select_autoescape(enabled_extensions=["html"]),
            variable_start_string="[[",
            variable_end_string="]]",
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self._clone_tpl = self._env.get_template(CLONE_BLOCK_TEMPLATE)

    def render_clone_block(self, repo_names: Sequence[str]) -> str:
        repos = [{"name": name, "secret_name": secret_key_name(name)} for name in repo_names]
        return self._clone_tpl.render(repos=repos)

    def render_template(self, template_path: Path, repo_names: Sequence[str]) -> str:
        """
        Splice the clone block into the template in place of the placeholder line.

        Args:
            template_path: Workflow template with exactly one placeholder line
            repo_names: Repositories to clone, in order

        Returns:
            Rendered workflow text, ending with a newline

        Raises:
            ConfigError: If the template is missing or does not hold exactly
                one placeholder line
        """
        template_path = Path(template_path)
        if not template_path.is_file():
            raise ConfigError(f"Workflow template not found: {template_path}")

        text = template_path.read_text(encoding="utf-8")
        lines = text[:-1].split("\n") if text.endswith("\n") else text.split("\n")
        positions = [i for i, line in enumerate(lines) if PLACEHOLDER in line]
        if len(positions) != 1:
            raise ConfigError(
                f"Template {template_path} must contain exactly one {PLACEHOLDER} line, "
                f"found {len(positions)}"
            )

        index = positions[0]
        block = self.render_clone_block(repo_names).rstrip("\n").split("\n")
        spliced = lines[:index] + block + [""] + lines[index + 1:]
        return collapse_blank_lines("\n".join(spliced) + "\n")

    def write(self, repo: GitRepository, rendered: str) -> Path:
        target = repo.path / self.output_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(rendered, encoding="utf-8")
        return target

    def publish(
        self, session: RepoHostSession, repo: GitRepository, rendered: str
    ) -> Optional[PullRequestRef]:
        """
        Write the workflow and, when it changed, land it through a pull request.

        Returns:
            The pull request used, or None when the file was already up to date

        Raises:
            ProvisionError: If the branch cannot be pushed
        """
        self.write(repo, rendered)
        relative = str(self.output_path)
        if not repo.has_changes(relative):
            logger.info("workflow_unchanged", path=relative)
            return None

        start_branch = repo.current_branch()
        repo.switch(self.branch, create=True)
        try:
            repo.add(relative)
            repo.commit(COMMIT_MESSAGE)
            pushed = repo.push(self.branch, set_upstream=True, force=True)
            if not pushed.ok:
                raise ProvisionError(
                    f"Failed to push branch {self.branch}", {"stderr": pushed.stderr.strip()}
                )

            slug = session.control_slug
            pr = self.github.open_pr_for_branch(slug, self.branch)
            if pr is None:
                pr = self.github.create_pr(slug, self.branch, PR_TITLE, PR_BODY)
                logger.info("workflow_pr_created", repo=slug, url=pr.url)
            else:
                logger.info("workflow_pr_reused", repo=slug, number=pr.number)

            pr.merged = self.github.merge_pr(slug, self.branch)
            if pr.merged:
                logger.info("workflow_pr_merged", repo=slug, branch=self.branch)
            else:
                logger.warning("workflow_pr_merge_failed", repo=slug, branch=self.branch)
            return pr
        finally:
            repo.switch(start_branch)

    def trigger(self, session: RepoHostSession) -> None:
        self.github.run_workflow(session.control_slug, self.workflow_name)
        logger.info("workflow_triggered", repo=session.control_slug, workflow=self.workflow_name)
