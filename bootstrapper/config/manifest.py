"""
Manifest Loader.

Reads the declarative JSON manifest that drives a bootstrap run and turns
it into a validated, immutable Manifest. The manifest is the only input
that varies between projects:

    {
      "PROJECT_NAME": "xpertslabs",
      "LOCATION": "westeurope",
      "DEPLOYED": "false",
      "REPOS": ["hands-on-labs", "workshops"],
      "THEME_REPO_NAME": "docs-theme"
    }

Any problem (missing file, bad JSON, missing key, invalid repo name, two
repos normalizing to the same secret name) surfaces as ConfigError.
"""

import json
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from bootstrapper.core.exceptions import ConfigError
from bootstrapper.core.naming import (
    find_secret_collisions,
    is_valid_repo_name,
    is_valid_secret_name,
    secret_key_name,
    storage_account_name,
)

logger = structlog.get_logger(__name__)

REQUIRED_KEYS = ("PROJECT_NAME", "LOCATION", "DEPLOYED", "REPOS")

# Optional named repository roles; THEME is also managed like a content repo
AUXILIARY_ROLES = {
    "THEME_REPO_NAME": "theme",
    "LANDING_PAGE_REPO_NAME": "landing_page",
    "DOCS_BUILDER_REPO_NAME": "docs_builder",
    "INFRASTRUCTURE_REPO_NAME": "infrastructure",
    "MANIFESTS_REPO_NAME": "manifests",
    "MKDOCS_REPO_NAME": "mkdocs",
}

_TRUE_WORDS = {"true", "yes", "y", "1", "on"}
_FALSE_WORDS = {"false", "no", "n", "0", "off"}


def parse_bool(value: Any) -> bool:
    """Interpret a boolean or boolean-like string ("true", "No", "1")."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"not a boolean-like value: {value!r}")


class Manifest(BaseModel):
    """Validated bootstrap manifest. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    project_name: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    deployed: bool
    repo_names: tuple[str, ...] = Field(..., min_length=1)
    auxiliary_repo_names: dict[str, str] = Field(default_factory=dict)

    @field_validator("project_name", "location", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("deployed", mode="before")
    @classmethod
    def coerce_deployed(cls, value: Any) -> bool:
        return parse_bool(value)

    @model_validator(mode="after")
    def validate_names(self) -> "Manifest":
        errors = []
        try:
            storage_account_name(self.project_name)
        except ValueError as e:
            errors.append(str(e))

        for repo in self.managed_repos:
            if not is_valid_repo_name(repo):
                errors.append(f"invalid repository name {repo!r}")
            elif not is_valid_secret_name(secret_key_name(repo)):
                errors.append(f"repository {repo!r} cannot be mapped to a secret name")

        for key, names in find_secret_collisions(self.managed_repos).items():
            errors.append(f"repositories {names} all map to secret {key}")

        if errors:
            raise ValueError("; ".join(errors))
        return self

    @property
    def theme_repo(self) -> Optional[str]:
        return self.auxiliary_repo_names.get("theme")

    @property
    def managed_repos(self) -> list[str]:
        """Content repositories plus the theme repository, in manifest order."""
        repos = list(self.repo_names)
        if self.theme_repo:
            repos.append(self.theme_repo)
        return repos


def _manifest_from_json(data: dict[str, Any]) -> Manifest:
    missing = [key for key in REQUIRED_KEYS if data.get(key) in (None, "")]
    if missing:
        raise ConfigError(f"Manifest is missing required keys: {', '.join(missing)}", missing[0])

    repos = data["REPOS"]
    if not isinstance(repos, list) or not all(isinstance(r, str) for r in repos):
        raise ConfigError("REPOS must be an array of strings", "REPOS")

    auxiliary = {}
    for key, role in AUXILIARY_ROLES.items():
        value = data.get(key)
        if value in (None, ""):
            continue
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be a string", key)
        auxiliary[role] = value.strip()

    try:
        return Manifest(
            project_name=data["PROJECT_NAME"],
            location=data["LOCATION"],
            deployed=data["DEPLOYED"],
            repo_names=tuple(r.strip() for r in repos),
            auxiliary_repo_names=auxiliary,
        )
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'manifest'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid manifest: {messages}")


def load_manifest(path: Path) -> Manifest:
    """
    Load and validate a manifest file.

    Args:
        path: Path to the JSON manifest

    Returns:
        Validated Manifest

    Raises:
        ConfigError: If the file is absent, malformed or fails validation
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Manifest file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Manifest {path} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Manifest {path} must contain a JSON object")

    manifest = _manifest_from_json(data)
    logger.info(
        "manifest_loaded",
        path=str(path),
        project=manifest.project_name,
        location=manifest.location,
        deployed=manifest.deployed,
        repos=manifest.managed_repos,
    )
    return manifest
