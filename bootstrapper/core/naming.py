"""Deterministic name derivation for Azure resources and GitHub secrets."""

import re
from collections.abc import Iterable

STORAGE_ACCOUNT_MAX_LENGTH = 24
STORAGE_ACCOUNT_MIN_LENGTH = 3
CONTAINER_MAX_LENGTH = 63
REGISTRY_MAX_LENGTH = 50

SSH_KEY_SECRET_SUFFIX = "_SSH_PRIVATE_KEY"

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_SECRET_SEPARATORS = re.compile(r"[^A-Za-z0-9]")
# GitHub repository names: letters, digits, '.', '-', '_'
_REPO_NAME = re.compile(r"^[A-Za-z0-9._-]{1,100}$")


def _alnum_lower(value: str, max_length: int) -> str:
    return _NON_ALNUM.sub("", value.lower())[:max_length]


def resource_group_name(project: str) -> str:
    return f"{project}-tfstate-RG"


def storage_account_name(project: str, max_length: int = STORAGE_ACCOUNT_MAX_LENGTH) -> str:
    """
    Derive the state storage account name for a project.

    Lower-cased, stripped of everything but [a-z0-9] and truncated, so
    "Xperts-Labs2" becomes "xpertslabs2account".

    Raises:
        ValueError: If fewer than three characters survive normalization.
    """
    name = _alnum_lower(f"{project}account", max_length)
    if len(name) < STORAGE_ACCOUNT_MIN_LENGTH:
        raise ValueError(f"Cannot derive a storage account name from {project!r}")
    return name


def container_name(project: str) -> str:
    return _alnum_lower(f"{project}tfstate", CONTAINER_MAX_LENGTH)


def registry_login_server(project: str) -> str:
    return f"{_alnum_lower(project, REGISTRY_MAX_LENGTH)}.azurecr.io"


def normalize_secret_prefix(repo: str) -> str:
    """Upper-case a repository name and turn every separator into '_'."""
    return _SECRET_SEPARATORS.sub("_", repo).upper()


def secret_key_name(repo: str) -> str:
    """
    Name of the secret holding a repository's SSH private key.

    >>> secret_key_name("hands-on-labs")
    'HANDS_ON_LABS_SSH_PRIVATE_KEY'
    """
    return f"{normalize_secret_prefix(repo)}{SSH_KEY_SECRET_SUFFIX}"


def is_valid_secret_name(name: str) -> bool:
    # GitHub rejects names starting with a digit or the reserved GITHUB_ prefix
    return (
        bool(re.match(r"^[A-Z_][A-Z0-9_]*$", name))
        and not name.startswith("GITHUB_")
    )


def is_valid_repo_name(repo: str) -> bool:
    return bool(_REPO_NAME.match(repo)) and repo not in (".", "..")


def find_secret_collisions(repos: Iterable[str]) -> dict[str, list[str]]:
    """
    Group repository names that map to the same secret key.

    Returns only the keys claimed by more than one entry, so an empty dict
    means the mapping is collision-free. Listing the same name twice counts
    as a collision.
    """
    claimed: dict[str, list[str]] = {}
    for repo in repos:
        claimed.setdefault(secret_key_name(repo), []).append(repo)
    return {key: names for key, names in claimed.items() if len(names) > 1}
