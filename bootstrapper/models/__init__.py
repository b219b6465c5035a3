"""Data models shared between the bootstrap stages."""

from bootstrapper.models.schemas import (
    CloudSession,
    RepoHostSession,
    StateStorage,
    ServiceIdentity,
    IdentityOutcome,
    RepositoryRecord,
    KeyPair,
    DeployKey,
    SecretBundle,
    PullRequestRef,
)

__all__ = [
    "CloudSession",
    "RepoHostSession",
    "StateStorage",
    "ServiceIdentity",
    "IdentityOutcome",
    "RepositoryRecord",
    "KeyPair",
    "DeployKey",
    "SecretBundle",
    "PullRequestRef",
]
