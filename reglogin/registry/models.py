"""Registry data models — transport schemes, endpoints, and credentials."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Scheme(str, Enum):
    """Transport mode used to reach a registry."""

    HTTPS = "https"
    HTTP = "http"

    @property
    def secure(self) -> bool:
        return self is Scheme.HTTPS


@dataclass(frozen=True)
class Endpoint:
    """Where a registry lives: scheme, host and optional port."""

    scheme: Scheme
    host: str
    port: int | None = None

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is None:
            return host
        return f"{host}:{self.port}"

    @property
    def base_url(self) -> str:
        return f"{self.scheme.value}://{self.netloc}"


@dataclass
class Credential:
    """A login attempt's credential triple.

    Lives only for the duration of a single login; the password is kept out
    of ``repr`` so it never shows up in logs or tracebacks.
    """

    domain: str
    username: str
    password: str = field(repr=False)
