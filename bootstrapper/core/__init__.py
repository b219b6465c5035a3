"""
Core infrastructure modules for repo-bootstrap.

Provides common utilities used across the stages:
- exceptions: Standardized exception hierarchy
- retry: Fixed-delay retry policy built on tenacity
- runner: Subprocess runner with secret redaction
- prompts: Operator prompts
- naming: Resource and secret naming rules
"""

from bootstrapper.core.exceptions import (
    BootstrapError,
    RetryableError,
    PermanentError,
    CommandError,
    ConfigError,
    AuthError,
    PreflightError,
    ProvisionError,
    RepoCreationDeclined,
    SecretPropagationError,
)

from bootstrapper.core.retry import RetryPolicy
from bootstrapper.core.runner import CommandResult, CommandRunner
from bootstrapper.core.prompts import Prompter

__all__ = [
    # Exceptions
    "BootstrapError",
    "RetryableError",
    "PermanentError",
    "CommandError",
    "ConfigError",
    "AuthError",
    "PreflightError",
    "ProvisionError",
    "RepoCreationDeclined",
    "SecretPropagationError",
    # Execution
    "RetryPolicy",
    "CommandResult",
    "CommandRunner",
    "Prompter",
]
