"""Git working-tree client used for the control repo and content repo clones."""

import re
from pathlib import Path
from typing import Iterable, Optional

from bootstrapper.core.runner import CommandResult, CommandRunner

# https://[token@]github.com/owner/repo(.git), ssh://git@github.com/owner/repo(.git),
# git@github.com:owner/repo(.git)
_REMOTE_PATTERNS = (
    re.compile(r"^(?:https?|ssh|git)://(?:[^@/]+@)?[^/]+/(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"),
    re.compile(r"^[^@/]+@[^:/]+:(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"),
)


def parse_remote_url(url: str) -> Optional[tuple[str, str]]:
    """Split a GitHub remote URL into (owner, repo); None if unrecognised."""
    url = url.strip()
    for pattern in _REMOTE_PATTERNS:
        match = pattern.match(url)
        if match:
            return match.group("owner"), match.group("repo")
    return None


class GitRepository:
    """Runs git commands inside one working tree."""

    def __init__(self, path: Path, runner: CommandRunner, executable: str = "git"):
        self.path = Path(path)
        self.runner = runner
        self.git = executable

    def _run(self, *args: str, check: bool = True) -> CommandResult:
        return self.runner.run([self.git, *args], cwd=self.path, check=check)

    def _value(self, *args: str) -> Optional[str]:
        result = self._run(*args, check=False)
        if not result.ok:
            return None
        return result.stdout.strip() or None

    @classmethod
    def clone(
        cls,
        url: str,
        dest: Path,
        runner: CommandRunner,
        sensitive: Iterable[str] = (),
        executable: str = "git",
    ) -> "GitRepository":
        runner.run([executable, "clone", url, str(dest)], sensitive=sensitive)
        return cls(dest, runner, executable)

    # -------------------------------------------------------------------------
    # Queries (failures are answers, not errors)
    # -------------------------------------------------------------------------

    def is_work_tree(self) -> bool:
        result = self._run("rev-parse", "--is-inside-work-tree", check=False)
        return result.ok and result.stdout.strip() == "true"

    def remote_url(self, remote: str = "origin") -> Optional[str]:
        return self._value("config", "--get", f"remote.{remote}.url")

    def rev_parse(self, ref: str) -> Optional[str]:
        return self._value("rev-parse", ref)

    def merge_base(self, a: str, b: str) -> Optional[str]:
        return self._value("merge-base", a, b)

    def current_branch(self) -> str:
        return self._run("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def status_porcelain(self, *paths: str) -> str:
        args = ["status", "--porcelain"]
        if paths:
            args += ["--", *paths]
        return self._run(*args).stdout

    def has_changes(self, *paths: str) -> bool:
        return bool(self.status_porcelain(*paths).strip())

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def fetch(self) -> None:
        self._run("fetch")

    def add(self, *paths: str) -> None:
        self._run("add", "--", *(paths or (".",)))

    def commit(self, message: str) -> None:
        self._run("commit", "-m", message)

    def switch(self, branch: str, create: bool = False) -> None:
        """Switch branches; with create, (re)start the branch at HEAD."""
        if create:
            self._run("switch", "-C", branch)
        else:
            self._run("switch", branch)

    def push(
        self,
        branch: Optional[str] = None,
        remote: str = "origin",
        set_upstream: bool = False,
        force: bool = False,
    ) -> CommandResult:
        """Push without raising; callers decide whether a rejected push is fatal."""
        args = ["push"]
        if set_upstream:
            args.append("--set-upstream")
        if force:
            args.append("--force")
        args.append(remote)
        if branch:
            args.append(branch)
        return self._run(*args, check=False)
