"""
Repository Manager.

Makes sure every managed repository exists, owns a dedicated Ed25519 key
pair on disk, and carries exactly one deploy key under the sentinel title.
"""

import os
from pathlib import Path
from typing import Sequence

import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from bootstrapper.clients.github import GitHubCli
from bootstrapper.core.exceptions import CommandError, ProvisionError, RepoCreationDeclined
from bootstrapper.core.prompts import Prompter
from bootstrapper.models.schemas import KeyPair, RepoHostSession, RepositoryRecord

logger = structlog.get_logger(__name__)

KEY_FILE_PREFIX = "id_ed25519-"


def key_paths(ssh_dir: Path, repo: str) -> tuple[Path, Path]:
    """Deterministic (private, public) key paths for a repository."""
    private = Path(ssh_dir) / f"{KEY_FILE_PREFIX}{repo}"
    return private, private.with_name(private.name + ".pub")


def generate_keypair(private_path: Path, public_path: Path, comment: str) -> None:
    """Write an unencrypted OpenSSH Ed25519 key pair (private file mode 0600)."""
    key = Ed25519PrivateKey.generate()
    private_bytes = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.OpenSSH,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_bytes = key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )

    private_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd = os.open(private_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as handle:
        handle.write(private_bytes)
    os.chmod(private_path, 0o600)
    _write_public(public_path, public_bytes, comment)


def restore_public_key(private_path: Path, public_path: Path, comment: str) -> None:
    """Rebuild a missing .pub file from the private key already on disk."""
    key = serialization.load_ssh_private_key(private_path.read_bytes(), password=None)
    public_bytes = key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )
    _write_public(public_path, public_bytes, comment)


def _write_public(public_path: Path, public_bytes: bytes, comment: str) -> None:
    public_path.write_text(f"{public_bytes.decode('ascii')} {comment}\n", encoding="utf-8")


class RepositoryManager:
    """Repository existence, per-repo key pairs and deploy-key rotation."""

    def __init__(
        self,
        github: GitHubCli,
        prompter: Prompter,
        ssh_dir: Path,
        deploy_key_title: str = "DEPLOY-KEY",
        auto_create: bool = False,
        confirm_overwrite: bool = False,
    ):
        self.github = github
        self.prompter = prompter
        self.ssh_dir = Path(ssh_dir)
        self.deploy_key_title = deploy_key_title
        self.auto_create = auto_create
        self.confirm_overwrite = confirm_overwrite

    # -------------------------------------------------------------------------
    # Repositories
    # -------------------------------------------------------------------------

    def ensure_repositories_exist(
        self, session: RepoHostSession, repo_names: Sequence[str]
    ) -> list[RepositoryRecord]:
        """
        Create missing repositories as private repos after confirmation.

        Raises:
            RepoCreationDeclined: If the operator answers anything but yes
            ProvisionError: If `gh repo create` fails
        """
        records = []
        for repo in repo_names:
            slug = session.qualify(repo)
            if self.github.repo_exists(slug):
                records.append(RepositoryRecord(name=repo, exists=True))
                continue

            if not self.auto_create and not self.prompter.confirm(
                f"Create repository '{repo}' in organization '{session.owner}'?", default=False
            ):
                logger.warning("repository_creation_declined", repo=slug)
                raise RepoCreationDeclined(repo)

            try:
                self.github.create_repo(slug, private=True)
            except CommandError as e:
                raise ProvisionError(f"Failed to create repository {slug}", {"stderr": e.stderr})
            logger.info("repository_created", repo=slug)
            records.append(RepositoryRecord(name=repo, exists=True, created=True))
        return records

    # -------------------------------------------------------------------------
    # Key pairs
    # -------------------------------------------------------------------------

    def ensure_keypairs(self, repo_names: Sequence[str]) -> list[KeyPair]:
        """Generate a key pair per repository unless one is already on disk."""
        keypairs = []
        for repo in repo_names:
            private, public = key_paths(self.ssh_dir, repo)
            present = private.exists()

            regenerate = not present
            if present and self.confirm_overwrite:
                regenerate = self.prompter.confirm(
                    f"SSH key {private} already exists. Overwrite it?", default=False
                )

            if regenerate:
                generate_keypair(private, public, comment=f"deploy-key-{repo}")
                logger.info("ssh_keypair_generated", repo=repo, path=str(private))
            else:
                if not public.exists():
                    restore_public_key(private, public, comment=f"deploy-key-{repo}")
                    logger.warning("ssh_public_key_restored", repo=repo, path=str(public))
                logger.info("ssh_keypair_reused", repo=repo, path=str(private))

            keypairs.append(
                KeyPair(
                    repo_name=repo,
                    private_key_path=private,
                    public_key_path=public,
                    generated=regenerate,
                )
            )
        return keypairs

    # -------------------------------------------------------------------------
    # Deploy keys
    # -------------------------------------------------------------------------

    def sync_deploy_keys(self, session: RepoHostSession, keypairs: Sequence[KeyPair]) -> None:
        """
        Replace the sentinel-titled deploy key of each repository.

        Every key carrying the sentinel title is removed before the fresh
        public key is added, so exactly one managed key remains.

        Raises:
            ProvisionError: If a delete or add call fails
        """
        for keypair in keypairs:
            slug = session.qualify(keypair.repo_name)
            try:
                stale = [k for k in self.github.list_deploy_keys(slug) if k.title == self.deploy_key_title]
                for key in stale:
                    self.github.delete_deploy_key(slug, key.id)
                    logger.info("deploy_key_deleted", repo=slug, key_id=key.id)
                self.github.add_deploy_key(
                    slug, keypair.public_key_path, self.deploy_key_title, allow_write=True
                )
            except CommandError as e:
                raise ProvisionError(f"Failed to rotate deploy key for {slug}", {"stderr": e.stderr})
            logger.info("deploy_key_added", repo=slug, title=self.deploy_key_title)
