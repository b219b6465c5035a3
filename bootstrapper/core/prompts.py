"""Interactive operator prompts (confirmation, free text, hidden input)."""

import getpass
from typing import Callable, Optional


class Prompter:
    """
    Thin wrapper around input()/getpass so stages never touch stdin directly.

    Tests pass scripted `reader`/`secret_reader` callables instead of
    patching builtins.
    """

    def __init__(
        self,
        reader: Callable[[str], str] = input,
        secret_reader: Callable[[str], str] = getpass.getpass,
        writer: Callable[[str], None] = print,
    ):
        self._read = reader
        self._read_secret = secret_reader
        self._write = writer

    def confirm(self, question: str, default: bool = False) -> bool:
        """Ask a yes/no question; an empty answer takes the default."""
        suffix = "(Y/n)" if default else "(y/N)"
        answer = self._read(f"{question} {suffix} ").strip().lower()
        if not answer:
            return default
        return answer in ("y", "yes")

    def ask(self, question: str, default: Optional[str] = None) -> str:
        answer = self._read(f"{question} ").strip()
        return answer or (default or "")

    def ask_secret(self, question: str) -> str:
        return self._read_secret(f"{question} ").strip()

    def echo(self, message: str) -> None:
        self._write(message)
