"""
Synchronous runner for the external CLIs (az, gh, git).

All collaborator calls go through CommandRunner so that logging, redaction
of secret values and error mapping live in one place.
"""

import json
import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import structlog

from bootstrapper.core.exceptions import CommandError

logger = structlog.get_logger(__name__)

REDACTED = "***"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def json(self) -> Any:
        """Parse stdout as JSON; empty output parses to None."""
        text = self.stdout.strip()
        if not text:
            return None
        return json.loads(text)


class CommandRunner:
    """
    Runs commands with captured text output.

    Sensitive strings registered with `redact()` (or passed per call) are
    replaced by '***' in every log line and error message.
    """

    def __init__(self, sensitive: Iterable[str] = ()):
        self._sensitive: set[str] = {s for s in sensitive if s}

    def redact(self, *values: str) -> None:
        """Register values that must never appear in logs."""
        self._sensitive.update(v for v in values if v)

    def _scrub(self, text: str, extra: Iterable[str] = ()) -> str:
        for secret in sorted(self._sensitive.union(extra), key=len, reverse=True):
            if secret:
                text = text.replace(secret, REDACTED)
        return text

    def run(
        self,
        args: Sequence[str],
        *,
        check: bool = True,
        input_text: Optional[str] = None,
        cwd: Optional[Path] = None,
        interactive: bool = False,
        sensitive: Iterable[str] = (),
    ) -> CommandResult:
        """
        Execute a command and return its result.

        Args:
            args: Command and arguments (never passed through a shell)
            check: Raise CommandError on a non-zero exit
            input_text: Text written to the process's stdin
            cwd: Working directory
            interactive: Attach the terminal instead of capturing output
                (device-code and browser logins)
            sensitive: Extra values to redact for this call only

        Raises:
            CommandError: If check is set and the command fails, or the
                executable is not installed (returncode 127).
        """
        extra = [s for s in sensitive if s]
        display = [self._scrub(a, extra) for a in args]
        logger.debug("command_started", command=" ".join(display), cwd=str(cwd) if cwd else None)

        try:
            if interactive:
                completed = subprocess.run(list(args), cwd=cwd, check=False, text=True)
            else:
                completed = subprocess.run(
                    list(args),
                    cwd=cwd,
                    check=False,
                    capture_output=True,
                    text=True,
                    input=input_text,
                )
        except FileNotFoundError:
            raise CommandError(display, 127, f"{args[0]}: command not found")

        result = CommandResult(
            args=tuple(display),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=self._scrub(completed.stderr or "", extra),
        )

        if not result.ok:
            logger.debug(
                "command_failed",
                command=" ".join(display),
                returncode=result.returncode,
                stderr=result.stderr.strip()[-2000:],
            )
            if check:
                raise CommandError(display, result.returncode, result.stderr)
        return result

    def run_json(self, args: Sequence[str], **kwargs: Any) -> Any:
        """Run a command that prints JSON and return the parsed document."""
        return self.run(args, **kwargs).json()
