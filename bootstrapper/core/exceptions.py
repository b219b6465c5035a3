"""
Core exception hierarchy for repo-bootstrap.

Provides standardized exception types with categorization for retry logic.
Every stage raises one of these instead of a generic Exception so the CLI
can map failures to exit codes.
"""

from typing import Any, Optional, Sequence


# =============================================================================
# Base Exceptions
# =============================================================================


class BootstrapError(Exception):
    """Base exception for all bootstrap errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RetryableError(BootstrapError):
    """
    Transient errors that may succeed on another attempt.

    Examples: GitHub API 5xx responses, secondary rate limits.
    """

    pass


class PermanentError(BootstrapError):
    """
    Errors that won't be fixed by retrying.

    Examples: Invalid manifest, declined prompts, failed logins.
    """

    pass


# =============================================================================
# External Command Errors
# =============================================================================


class CommandError(RetryableError):
    """Raised when an external command (az, gh, git) exits non-zero."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = ""):
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        super().__init__(
            f"Command failed ({returncode}): {' '.join(self.command)}",
            {"stderr": self.stderr} if self.stderr else None,
        )


# =============================================================================
# Stage Errors
# =============================================================================


class ConfigError(PermanentError):
    """Raised when the manifest, template or settings are missing or invalid."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details)


class AuthError(PermanentError):
    """Raised when a login or subscription selection does not complete."""

    pass


class PreflightError(PermanentError):
    """Raised when the control repository checkout is not safe to work from."""

    pass


class ProvisionError(PermanentError):
    """Raised when a resource, identity, repository or deploy key cannot be created."""

    pass


class RepoCreationDeclined(ProvisionError):
    """Raised when the operator declines to create a missing repository."""

    def __init__(self, repo: str):
        self.repo = repo
        super().__init__(f"Creation of repository '{repo}' declined", {"repo": repo})


class SecretPropagationError(PermanentError):
    """Raised when a secret could not be set within the allowed attempts."""

    def __init__(self, key: str, attempts: int, last_error: str = ""):
        self.key = key
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to set secret {key} after {attempts} attempt(s)",
            {"key": key, "last_error": last_error} if last_error else {"key": key},
        )
