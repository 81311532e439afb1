"""Secure storage for registry credentials.

:class:`KeyringStore` keeps one entry per registry domain in the platform
keyring (macOS Keychain, Secret Service, Windows Credential Locker) via the
``keyring`` library. Each entry is a single JSON payload holding the username,
password and trusted-caller ACL, written with one ``set_password`` call so a
failed write leaves the previous entry untouched.

:class:`MemoryStore` has the same semantics without touching the system and
is what tests and embedding callers substitute.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol

import keyring
from keyring.backend import KeyringBackend
from keyring.errors import InitError, KeyringError, KeyringLocked, NoKeyringError

from reglogin.auth.models import StoredCredential
from reglogin.errors import (
    InvalidArgumentError,
    StoreAccessDeniedError,
    StoreIOError,
)

logger = logging.getLogger(__name__)

DEFAULT_SERVICE = "com.reglogin.registry"


class CredentialStore(Protocol):
    """Interface the login flow persists credentials through."""

    def save(
        self,
        domain: str,
        username: str,
        password: str,
        trusted_paths: tuple[str, ...] = (),
    ) -> None: ...

    def get(self, domain: str, requester: Optional[str] = None) -> Optional[StoredCredential]: ...

    def delete(self, domain: str) -> bool: ...


# ------------------------------------------------------------------
# Shared helpers
# ------------------------------------------------------------------


def _make_entry(
    domain: str, username: str, password: str, trusted_paths: tuple[str, ...]
) -> StoredCredential:
    if not domain:
        raise InvalidArgumentError("cannot store credentials without a registry domain")
    if not username or not password:
        raise InvalidArgumentError(f"cannot store empty username or password for {domain}")
    return StoredCredential(
        domain=domain,
        username=username,
        password=password,
        trusted_paths=tuple(trusted_paths),
    )


def _check_access(entry: StoredCredential, requester: Optional[str]) -> StoredCredential:
    if requester is not None and not entry.is_trusted(requester):
        raise StoreAccessDeniedError(
            f"{requester} is not trusted to read credentials for {entry.domain}"
        )
    return entry


class _DomainLocks:
    """Per-key locks so concurrent saves of one domain never interleave."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, str], threading.Lock] = {}

    def __call__(self, service: str, domain: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault((service, domain), threading.Lock())


_domain_lock = _DomainLocks()


# ------------------------------------------------------------------
# Keyring-backed store
# ------------------------------------------------------------------


class KeyringStore:
    """Credential store backed by the platform keyring.

    Parameters
    ----------
    service:
        Keyring service name entries are filed under (the keychain ID).
    backend:
        Explicit keyring backend. Defaults to whatever
        :func:`keyring.get_keyring` selects for the platform.
    """

    def __init__(self, service: str = DEFAULT_SERVICE, backend: Optional[KeyringBackend] = None) -> None:
        if not service:
            raise InvalidArgumentError("keychain service name must not be empty")
        self.service = service
        self._backend = backend

    @property
    def backend(self) -> KeyringBackend:
        if self._backend is None:
            self._backend = keyring.get_keyring()
        return self._backend

    @contextmanager
    def _errors(self, action: str, domain: str) -> Iterator[None]:
        try:
            yield
        except (KeyringLocked, NoKeyringError, InitError) as e:
            raise StoreAccessDeniedError(
                f"keyring unavailable while trying to {action} credentials for {domain}: {e}"
            ) from e
        except (KeyringError, OSError) as e:
            raise StoreIOError(f"failed to {action} credentials for {domain}: {e}") from e

    # ------------------------------------------------------------------
    # Payload encoding
    # ------------------------------------------------------------------

    @staticmethod
    def _encode(entry: StoredCredential) -> str:
        return json.dumps(
            {
                "username": entry.username,
                "password": entry.password,
                "trusted_paths": list(entry.trusted_paths),
            }
        )

    @staticmethod
    def _decode(domain: str, payload: str) -> StoredCredential:
        try:
            data = json.loads(payload)
            return StoredCredential(
                domain=domain,
                username=data["username"],
                password=data["password"],
                trusted_paths=tuple(data.get("trusted_paths", [])),
            )
        except (ValueError, TypeError, KeyError) as e:
            raise StoreIOError(f"stored credentials for {domain} are corrupt") from e

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def save(
        self,
        domain: str,
        username: str,
        password: str,
        trusted_paths: tuple[str, ...] = (),
    ) -> None:
        """Write the entry for *domain*, replacing any previous one."""
        entry = _make_entry(domain, username, password, trusted_paths)
        payload = self._encode(entry)
        with _domain_lock(self.service, domain), self._errors("save", domain):
            self.backend.set_password(self.service, domain, payload)
        logger.debug(
            "stored credentials for %s in %s (%d trusted paths)",
            domain,
            self.service,
            len(entry.trusted_paths),
        )

    def get(self, domain: str, requester: Optional[str] = None) -> Optional[StoredCredential]:
        """Return the entry for *domain*, or None if there is none.

        When *requester* is given it must appear in the entry's ACL.
        """
        with self._errors("read", domain):
            payload = self.backend.get_password(self.service, domain)
        if payload is None:
            return None
        return _check_access(self._decode(domain, payload), requester)

    def delete(self, domain: str) -> bool:
        """Remove the entry for *domain*. Returns False if there was none."""
        with _domain_lock(self.service, domain), self._errors("delete", domain):
            if self.backend.get_password(self.service, domain) is None:
                return False
            self.backend.delete_password(self.service, domain)
        logger.debug("removed credentials for %s from %s", domain, self.service)
        return True


# ------------------------------------------------------------------
# In-memory store
# ------------------------------------------------------------------


class MemoryStore:
    """In-process credential store with the same semantics as :class:`KeyringStore`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, StoredCredential] = {}

    def save(
        self,
        domain: str,
        username: str,
        password: str,
        trusted_paths: tuple[str, ...] = (),
    ) -> None:
        entry = _make_entry(domain, username, password, trusted_paths)
        with self._lock:
            self._entries[domain] = entry

    def get(self, domain: str, requester: Optional[str] = None) -> Optional[StoredCredential]:
        with self._lock:
            entry = self._entries.get(domain)
        if entry is None:
            return None
        return _check_access(entry, requester)

    def delete(self, domain: str) -> bool:
        with self._lock:
            return self._entries.pop(domain, None) is not None

    def domains(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)
