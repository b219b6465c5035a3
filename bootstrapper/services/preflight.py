"""Control repository checks run before anything external is touched."""

from enum import Enum

import structlog

from bootstrapper.clients.git import GitRepository
from bootstrapper.core.exceptions import PreflightError

logger = structlog.get_logger(__name__)


class SyncState(str, Enum):
    """Position of the local branch relative to its upstream."""
    UP_TO_DATE = "up_to_date"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"
    NO_UPSTREAM = "no_upstream"


def sync_state(repo: GitRepository) -> SyncState:
    local = repo.rev_parse("@")
    remote = repo.rev_parse("@{u}")
    if not local or not remote:
        return SyncState.NO_UPSTREAM
    if local == remote:
        return SyncState.UP_TO_DATE

    base = repo.merge_base("@", "@{u}")
    if local == base:
        return SyncState.BEHIND
    if remote == base:
        return SyncState.AHEAD
    return SyncState.DIVERGED


def check_control_repo(repo: GitRepository) -> SyncState:
    """
    Refuse to run from a checkout that is not a repo, is behind, or has diverged.

    The rendered workflow is committed from this checkout, so it must not
    miss upstream commits.

    Raises:
        PreflightError: If the checkout is unusable
    """
    if not repo.is_work_tree():
        raise PreflightError(f"{repo.path} is not inside a git work tree")

    repo.fetch()
    state = sync_state(repo)

    if state is SyncState.BEHIND:
        raise PreflightError("Local repository is behind the remote. Please pull the latest changes.")
    if state is SyncState.DIVERGED:
        raise PreflightError("Local and remote repositories have diverged.")

    if state is SyncState.NO_UPSTREAM:
        logger.warning("control_repo_no_upstream", path=str(repo.path))
    else:
        logger.info("control_repo_checked", state=state.value)
    return state
