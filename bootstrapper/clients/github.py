"""
GitHub CLI client.

Wraps `gh` for authentication, repositories, deploy keys, secrets, pull
requests and workflow dispatch. Secret values are passed on stdin and
registered for redaction, so they never show up in argv or logs.
"""

from pathlib import Path
from typing import Optional

from bootstrapper.core.runner import CommandResult, CommandRunner
from bootstrapper.models.schemas import DeployKey, PullRequestRef


class GitHubCli:
    """Typed facade over the `gh` executable."""

    def __init__(self, runner: CommandRunner, executable: str = "gh"):
        self.runner = runner
        self.gh = executable

    def _cmd(self, *args: str) -> list[str]:
        return [self.gh, *args]

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    def is_authenticated(self) -> bool:
        return self.runner.run(self._cmd("auth", "status"), check=False).ok

    def login(self) -> bool:
        return self.runner.run(self._cmd("auth", "login"), check=False, interactive=True).ok

    # -------------------------------------------------------------------------
    # Repositories
    # -------------------------------------------------------------------------

    def repo_exists(self, slug: str) -> bool:
        return self.runner.run(self._cmd("repo", "view", slug, "--json", "name"), check=False).ok

    def create_repo(self, slug: str, private: bool = True) -> None:
        visibility = "--private" if private else "--public"
        self.runner.run(self._cmd("repo", "create", slug, visibility))

    # -------------------------------------------------------------------------
    # Deploy keys
    # -------------------------------------------------------------------------

    def list_deploy_keys(self, slug: str) -> list[DeployKey]:
        keys = self.runner.run_json(
            self._cmd("repo", "deploy-key", "list", "--repo", slug, "--json", "id,title,key,readOnly")
        )
        return [DeployKey.model_validate(k) for k in keys or []]

    def delete_deploy_key(self, slug: str, key_id: int) -> None:
        self.runner.run(self._cmd("repo", "deploy-key", "delete", str(key_id), "--repo", slug))

    def add_deploy_key(self, slug: str, public_key_path: Path, title: str, allow_write: bool = True) -> None:
        args = self._cmd(
            "repo", "deploy-key", "add", str(public_key_path),
            "--title", title,
            "--repo", slug,
        )
        if allow_write:
            args.append("--allow-write")
        self.runner.run(args)

    # -------------------------------------------------------------------------
    # Secrets
    # -------------------------------------------------------------------------

    def set_secret(self, slug: str, name: str, value: str) -> CommandResult:
        return self.runner.run(
            self._cmd("secret", "set", name, "--repo", slug),
            input_text=value,
            sensitive=[value],
        )

    def list_secret_names(self, slug: str) -> list[str]:
        secrets = self.runner.run_json(self._cmd("secret", "list", "--repo", slug, "--json", "name"))
        return [s["name"] for s in secrets or []]

    # -------------------------------------------------------------------------
    # Pull requests and workflows
    # -------------------------------------------------------------------------

    def open_pr_for_branch(self, slug: str, branch: str) -> Optional[PullRequestRef]:
        prs = self.runner.run_json(
            self._cmd(
                "pr", "list",
                "--repo", slug,
                "--head", branch,
                "--state", "open",
                "--json", "number,url",
            )
        )
        if not prs:
            return None
        return PullRequestRef(number=prs[0]["number"], url=prs[0]["url"])

    def create_pr(self, slug: str, branch: str, title: str, body: str) -> PullRequestRef:
        result = self.runner.run(
            self._cmd("pr", "create", "--repo", slug, "--head", branch, "--title", title, "--body", body)
        )
        return PullRequestRef(url=result.stdout.strip())

    def merge_pr(self, slug: str, branch: str) -> bool:
        """Merge the branch's PR and delete the branch; False when GitHub refuses."""
        return self.runner.run(
            self._cmd("pr", "merge", branch, "--repo", slug, "--merge", "--delete-branch"),
            check=False,
        ).ok

    def run_workflow(self, slug: str, workflow: str) -> None:
        self.runner.run(self._cmd("workflow", "run", workflow, "--repo", slug))
