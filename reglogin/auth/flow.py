"""Login orchestration.

A login moves through a fixed sequence of states and never goes back::

    START -> INPUTS_RESOLVED -> ENDPOINT_RESOLVED -> PROBE_SUCCEEDED -> PERSISTED -> DONE

Any :class:`~reglogin.errors.LoginError` moves the flow to ``FAILED``. The
credential store is only written after the probe succeeds, so an
interrupted or rejected login never leaves a credential behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import httpx

from reglogin.auth.prompts import CredentialSource
from reglogin.auth.store import CredentialStore
from reglogin.auth.trust import TRUSTED_PLUGINS, compute_trusted_paths, default_install_root
from reglogin.errors import InvalidArgumentError, LoginError
from reglogin.registry.client import DEFAULT_TIMEOUT, RegistryClient
from reglogin.registry.models import Credential, Endpoint
from reglogin.registry.probe import Pinger, RetryPolicy, probe
from reglogin.registry.resolver import AUTO, endpoint_for, resolve_domain

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Endpoint, Credential], Pinger]


class LoginState(str, Enum):
    START = "start"
    INPUTS_RESOLVED = "inputs_resolved"
    ENDPOINT_RESOLVED = "endpoint_resolved"
    PROBE_SUCCEEDED = "probe_succeeded"
    PERSISTED = "persisted"
    DONE = "done"
    FAILED = "failed"


@dataclass
class LoginResult:
    """What a successful login verified and stored."""

    domain: str
    username: str
    endpoint: Endpoint
    trusted_paths: tuple[str, ...] = ()
    attempts: int = 1


def make_client_factory(
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> ClientFactory:
    """Return a factory building :class:`RegistryClient` instances."""

    def factory(endpoint: Endpoint, credential: Credential) -> RegistryClient:
        return RegistryClient(
            endpoint,
            credential.username,
            credential.password,
            timeout=timeout,
            transport=transport,
        )

    return factory


class LoginFlow:
    """One-shot login: resolve inputs, probe the registry, persist on success.

    Parameters
    ----------
    store:
        Where verified credentials are written.
    source:
        Asked for the username and/or password when they are not given.
    policy:
        Retry policy for the probe.
    client_factory:
        Builds the transport client for the resolved endpoint.
    install_root:
        Root under which trusted plugins are looked up.
    plugins:
        Plugin paths, relative to *install_root*, eligible for the ACL.
    """

    def __init__(
        self,
        store: CredentialStore,
        source: CredentialSource,
        *,
        policy: Optional[RetryPolicy] = None,
        client_factory: Optional[ClientFactory] = None,
        install_root: Optional[str | Path] = None,
        plugins: tuple[str, ...] = TRUSTED_PLUGINS,
    ) -> None:
        self.store = store
        self.source = source
        self.policy = policy or RetryPolicy()
        self.client_factory = client_factory or make_client_factory()
        self.install_root = Path(install_root) if install_root else default_install_root()
        self.plugins = plugins
        self.state = LoginState.START
        self.error: Optional[LoginError] = None

    def _advance(self, state: LoginState) -> None:
        logger.debug("login: %s -> %s", self.state.value, state.value)
        self.state = state

    def run(
        self,
        server: str,
        username: str = "",
        password: str = "",
        scheme: str = AUTO,
    ) -> LoginResult:
        """Verify and store credentials for *server*.

        Raises the originating :class:`LoginError` after moving to ``FAILED``.
        """
        if self.state is not LoginState.START:
            raise RuntimeError(f"login flow already ran (state: {self.state.value})")
        try:
            return self._run(server, username, password, scheme)
        except LoginError as e:
            self._advance(LoginState.FAILED)
            self.error = e
            raise

    def _run(self, server: str, username: str, password: str, scheme: str) -> LoginResult:
        domain = resolve_domain(server)
        if not username:
            username = self.source.prompt_username(domain)
        if not username:
            raise InvalidArgumentError(f"a username is required to log in to {domain}")
        if not password:
            password = self.source.prompt_password()
        if not password:
            raise InvalidArgumentError(f"a password is required to log in to {domain}")
        credential = Credential(domain=domain, username=username, password=password)
        self._advance(LoginState.INPUTS_RESOLVED)

        endpoint = endpoint_for(domain, scheme)
        logger.debug("login: %s resolved to %s", domain, endpoint.base_url)
        self._advance(LoginState.ENDPOINT_RESOLVED)

        client = self.client_factory(endpoint, credential)
        try:
            attempts = probe(client, self.policy)
        finally:
            close = getattr(client, "close", None)
            if close is not None:
                close()
        self._advance(LoginState.PROBE_SUCCEEDED)

        trusted_paths = compute_trusted_paths(self.install_root, self.plugins)
        self.store.save(domain, credential.username, credential.password, trusted_paths)
        del credential, password
        self._advance(LoginState.PERSISTED)

        self._advance(LoginState.DONE)
        return LoginResult(
            domain=domain,
            username=username,
            endpoint=endpoint,
            trusted_paths=trusted_paths,
            attempts=attempts,
        )


def logout(store: CredentialStore, server: str) -> bool:
    """Remove stored credentials for *server*. Returns False if none existed."""
    return store.delete(resolve_domain(server))
