"""Registry transport client.

Provides the one operation the login flow needs from a registry: an
authenticated ``GET /v2/`` ("ping"). Registries that delegate auth to a token
service answer the first request with a ``401`` and a Bearer challenge; the
client follows that challenge with the same basic credentials before
reporting the final status.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import httpx

from reglogin import __version__
from reglogin.errors import AuthError
from reglogin.registry.models import Endpoint

logger = logging.getLogger(__name__)

PING_PATH = "/v2/"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = f"reglogin/{__version__}"

# Returned when a token service answers 200 without a usable token.
BAD_TOKEN_RESPONSE_STATUS = 502

_CHALLENGE_PARAM_RE = re.compile(r'(\w+)\s*=\s*"([^"]*)"')


# ---------------------------------------------------------------------------
# Auth challenge parsing
# ---------------------------------------------------------------------------


@dataclass
class AuthChallenge:
    """A parsed ``WWW-Authenticate`` header."""

    scheme: str
    params: dict[str, str] = field(default_factory=dict)

    @property
    def realm(self) -> str:
        return self.params.get("realm", "")


def parse_challenge(header: str) -> AuthChallenge | None:
    """Parse ``Bearer realm="...",service="..."`` into an :class:`AuthChallenge`."""
    header = header.strip()
    if not header:
        return None
    scheme, _, rest = header.partition(" ")
    return AuthChallenge(
        scheme=scheme.lower(),
        params={k.lower(): v for k, v in _CHALLENGE_PARAM_RE.findall(rest)},
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class RegistryClient:
    """Authenticated HTTP client for a single registry endpoint.

    Parameters
    ----------
    endpoint : Endpoint
        Scheme, host and port of the registry.
    username, password : str
        Basic credentials; also used to obtain Bearer tokens.
    timeout : float
        Per-request timeout in seconds.
    transport : httpx.BaseTransport | None
        Optional transport override (tests use :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        endpoint: Endpoint,
        username: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.username = username
        self._auth = httpx.BasicAuth(username, password)
        self._http = httpx.Client(
            base_url=endpoint.base_url,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    # -- lifecycle -----------------------------------------------------------

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> RegistryClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- operations ----------------------------------------------------------

    def ping(self) -> int:
        """Issue an authenticated ``GET /v2/`` and return the final status code.

        Redirects are followed; httpx drops the Authorization header when a
        redirect leaves the registry's origin. Request failures (connection
        refused, timeouts, undecodable bodies) propagate as
        :class:`httpx.RequestError`. A malformed token realm raises
        :class:`AuthError`.
        """
        response = self._http.get(PING_PATH, auth=self._auth)
        logger.debug("GET %s%s -> %d", self.endpoint.base_url, PING_PATH, response.status_code)
        if response.status_code != 401:
            return response.status_code

        challenge = parse_challenge(response.headers.get("www-authenticate", ""))
        if challenge is None or challenge.scheme != "bearer" or not challenge.realm:
            return response.status_code

        status, token = self._fetch_token(challenge)
        if token is None:
            return status

        response = self._http.get(PING_PATH, headers={"Authorization": f"Bearer {token}"})
        logger.debug(
            "GET %s%s (bearer) -> %d", self.endpoint.base_url, PING_PATH, response.status_code
        )
        return response.status_code

    def _fetch_token(self, challenge: AuthChallenge) -> tuple[int, str | None]:
        params = {"account": self.username}
        for key in ("service", "scope"):
            if challenge.params.get(key):
                params[key] = challenge.params[key]

        try:
            response = self._http.get(challenge.realm, params=params, auth=self._auth)
        except httpx.InvalidURL as e:
            raise AuthError(
                f"registry sent an invalid token realm '{challenge.realm}'", status_code=401
            ) from e
        logger.debug("token request to %s -> %d", challenge.realm, response.status_code)
        if response.status_code != 200:
            return response.status_code, None

        try:
            data = response.json()
        except ValueError:
            return BAD_TOKEN_RESPONSE_STATUS, None
        if not isinstance(data, dict):
            return BAD_TOKEN_RESPONSE_STATUS, None
        token = data.get("token") or data.get("access_token")
        if not token:
            return BAD_TOKEN_RESPONSE_STATUS, None
        return response.status_code, token
