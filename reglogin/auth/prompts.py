"""Where usernames and passwords come from when they aren't passed in.

The login flow asks a :class:`CredentialSource` for anything missing, so the
interactive terminal and canned test values are interchangeable.
"""

from __future__ import annotations

from typing import IO, Protocol

import click

from reglogin.errors import InvalidArgumentError


class CredentialSource(Protocol):
    """Supplies credentials the caller did not provide up front."""

    def prompt_username(self, domain: str) -> str: ...

    def prompt_password(self) -> str: ...


class ConsolePrompt:
    """Prompt on the terminal; the password is read without echo."""

    def prompt_username(self, domain: str) -> str:
        return click.prompt(f"Username for {domain}", type=str, err=True).strip()

    def prompt_password(self) -> str:
        return click.prompt("Password", hide_input=True, type=str, err=True)


class StaticCredentialSource:
    """Return fixed values; used by tests and non-interactive callers."""

    def __init__(self, username: str = "", password: str = "") -> None:
        self.username = username
        self.password = password
        self.prompts: list[str] = []

    def prompt_username(self, domain: str) -> str:
        self.prompts.append("username")
        return self.username

    def prompt_password(self) -> str:
        self.prompts.append("password")
        return self.password


def read_password_stdin(stream: IO[str]) -> str:
    """Read a password from *stream* (normally stdin), trimming whitespace."""
    password = stream.read().strip()
    if not password:
        raise InvalidArgumentError("failed to read password from stdin")
    return password
