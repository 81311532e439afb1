"""reglogin CLI — log in to container registries."""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from reglogin import __version__
from reglogin.auth.flow import LoginFlow, make_client_factory
from reglogin.auth.flow import logout as remove_login
from reglogin.auth.prompts import ConsolePrompt, read_password_stdin
from reglogin.auth.store import CredentialStore, KeyringStore
from reglogin.config import Settings, load_settings
from reglogin.errors import (
    AuthError,
    InvalidArgumentError,
    LoginError,
    StoreError,
    TransientError,
)
from reglogin.registry.resolver import AUTO, SCHEME_CHOICES, resolve_domain

console = Console()
err_console = Console(stderr=True)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_settings(ctx: click.Context) -> Settings:
    """Load settings for the running subcommand, after logging is set up."""
    options = ctx.find_root().params
    _configure_logging(options["debug"])
    try:
        settings = load_settings(path=options["config_path"])
    except InvalidArgumentError as e:
        _fail(e)
    if settings.debug and not options["debug"]:
        _configure_logging(True)
    settings.debug = settings.debug or options["debug"]
    return settings


def _store_for(settings: Settings) -> CredentialStore:
    return KeyringStore(settings.keychain_id)


def _fail(error: LoginError) -> NoReturn:
    if isinstance(error, InvalidArgumentError):
        kind = "Invalid argument"
    elif isinstance(error, AuthError):
        kind = "Login failed"
    elif isinstance(error, TransientError):
        kind = "Registry unavailable"
    elif isinstance(error, StoreError):
        kind = "Credentials verified but not saved"
    else:
        kind = "Error"
    err_console.print(f"[red]{kind}:[/] {escape(str(error))}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to a YAML config file",
)
def main(debug: bool, config_path: str | None):
    """reglogin — verify and store container registry credentials.

    Credentials are checked against the registry before anything is saved,
    then kept in the system keyring where trusted plugins can read them.
    """


# ── Login ────────────────────────────────────────────────────────────


@main.command()
@click.argument("server")
@click.option("--username", "-u", default="", help="Registry user name")
@click.option("--password-stdin", is_flag=True, help="Take the password from stdin")
@click.option(
    "--scheme",
    default=AUTO,
    type=click.Choice(SCHEME_CHOICES),
    help="Registry scheme. 'auto' uses http for local and private hosts, https otherwise",
)
@click.pass_context
def login(ctx: click.Context, server: str, username: str, password_stdin: bool, scheme: str):
    """Log in to a registry.

    SERVER is the registry host, optionally with a port
    (e.g. ghcr.io or localhost:5000).
    """
    settings = _load_settings(ctx)
    flow = LoginFlow(
        _store_for(settings),
        ConsolePrompt(),
        policy=settings.retry_policy(),
        client_factory=make_client_factory(settings.timeout),
        install_root=settings.resolved_install_root(),
    )
    try:
        password = ""
        if password_stdin:
            if not username:
                raise InvalidArgumentError("must provide --username with --password-stdin")
            password = read_password_stdin(click.get_text_stream("stdin"))
        flow.run(server, username=username, password=password, scheme=scheme)
    except LoginError as e:
        _fail(e)

    console.print("Login succeeded")


# ── Logout ───────────────────────────────────────────────────────────


@main.command()
@click.argument("server")
@click.pass_context
def logout(ctx: click.Context, server: str):
    """Remove stored credentials for a registry."""
    settings = _load_settings(ctx)
    try:
        domain = resolve_domain(server)
        removed = remove_login(_store_for(settings), domain)
    except LoginError as e:
        _fail(e)

    if removed:
        console.print(f"Removed login credentials for {escape(domain)}")
    else:
        console.print(f"[yellow]Not logged in to {escape(domain)}[/]")


if __name__ == "__main__":
    main()
