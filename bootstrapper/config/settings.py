"""
Application Settings.

Centralized configuration using Pydantic Settings with environment variable loading.
Every field can be set as BOOTSTRAP_<FIELD> in the environment or in a .env
file next to the control repository checkout. CLI flags override a few of
them per run.

Secrets (PAT, HTPASSWD) are optional here; when unset the operator is
prompted for them with hidden input.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class Settings(BaseSettings):
    """Bootstrap settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BOOTSTRAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------
    manifest_path: Path = Field(
        default=Path("config.json"),
        description="Manifest listing project, location, deployment flag and repos",
    )
    template_path: Optional[Path] = Field(
        default=None,
        description="Workflow template containing the %%INSERTCLONEREPO%% line (packaged copy if unset)",
    )
    dispatch_workflow_path: Optional[Path] = Field(
        default=None,
        description="Dispatch workflow copied into content repos (packaged copy if unset)",
    )

    # -------------------------------------------------------------------------
    # Rendered workflow
    # -------------------------------------------------------------------------
    workflow_output_path: Path = Field(
        default=Path(".github/workflows/docs-builder.yml"),
        description="Destination of the rendered workflow, relative to the control repo",
    )
    workflow_name: str = Field(default="docs-builder", description="Workflow triggered at the end")
    workflow_branch: str = Field(
        default="docs-builder",
        description="Branch used for the pull request that updates the workflow",
    )
    trigger_workflow: bool = Field(default=True, description="Run the workflow when done")
    install_dispatch_workflow: bool = Field(
        default=True,
        description="Push the dispatch workflow into every content repo",
    )

    # -------------------------------------------------------------------------
    # GitHub
    # -------------------------------------------------------------------------
    github_owner: Optional[str] = Field(
        default=None,
        description="Organization or user owning the repos (detected from origin if unset)",
    )
    github_pat: Optional[SecretStr] = Field(default=None, description="GitHub personal access token")
    htpasswd: Optional[SecretStr] = Field(default=None, description="Value for the HTPASSWD secret")
    auto_create_repos: bool = Field(
        default=False,
        description="Create missing repositories without asking",
    )
    deploy_key_title: str = Field(
        default="DEPLOY-KEY",
        description="Sentinel title of the single managed deploy key per repo",
    )

    # -------------------------------------------------------------------------
    # Secret propagation
    # -------------------------------------------------------------------------
    secret_max_attempts: int = Field(default=3, ge=1, description="Attempts per secret")
    secret_retry_delay_seconds: float = Field(
        default=10.0,
        ge=0,
        description="Fixed delay between secret attempts",
    )

    # -------------------------------------------------------------------------
    # Azure
    # -------------------------------------------------------------------------
    storage_sku: str = Field(default="Standard_LRS", description="State storage account SKU")

    # -------------------------------------------------------------------------
    # Local keys
    # -------------------------------------------------------------------------
    ssh_dir: Path = Field(
        default=Path("~/.ssh"),
        validate_default=True,
        description="Directory holding per-repo key pairs",
    )
    confirm_key_overwrite: bool = Field(
        default=False,
        description="Ask before reusing an existing key pair instead of keeping it silently",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(default=False, description="Emit JSON log lines instead of console output")

    @field_validator("ssh_dir")
    @classmethod
    def expand_ssh_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def workflow_template(self) -> Path:
        """Workflow template to render, falling back to the packaged copy."""
        return self.template_path or PACKAGE_TEMPLATES_DIR / "docs-builder.tpl"

    @property
    def dispatch_workflow(self) -> Path:
        """Dispatch workflow to install, falling back to the packaged copy."""
        return self.dispatch_workflow_path or PACKAGE_TEMPLATES_DIR / "dispatch.yml"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings if needed.
    """
    return Settings()
