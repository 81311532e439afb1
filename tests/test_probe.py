"""Tests for the retrying connectivity probe."""

import httpx
import pytest

from reglogin.errors import AuthError, RetriesExhaustedError, TransientError
from reglogin.registry.probe import RetryPolicy, probe, retry_on_server_error


class ScriptedClient:
    """Fake transport client returning a fixed sequence of ping results."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = 0

    def ping(self) -> int:
        self.calls += 1
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


def _policy(sleeps=None, **kwargs):
    sleeps = [] if sleeps is None else sleeps
    return RetryPolicy(interval=kwargs.pop("interval", 0.3), sleep=sleeps.append, **kwargs)


# --- Policy ---


def test_default_policy():
    policy = RetryPolicy()
    assert policy.max_attempts == 10
    assert policy.interval == 0.3
    assert policy.should_retry(500)
    assert policy.should_retry(503)
    assert not policy.should_retry(401)
    assert not policy.should_retry(404)


def test_retry_predicate():
    assert retry_on_server_error(500)
    assert not retry_on_server_error(499)


def test_policy_rejects_bad_values():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(interval=-1)


# --- Probe ---


def test_probe_succeeds_first_try():
    client = ScriptedClient([200])
    sleeps = []
    assert probe(client, _policy(sleeps)) == 1
    assert client.calls == 1
    assert sleeps == []


def test_probe_retries_then_succeeds():
    client = ScriptedClient([500, 200])
    sleeps = []
    assert probe(client, _policy(sleeps)) == 2
    assert client.calls == 2
    assert sleeps == [0.3]


def test_probe_stops_on_client_error():
    client = ScriptedClient([500, 500, 401, 200])
    with pytest.raises(AuthError) as exc_info:
        probe(client, _policy())
    assert client.calls == 3
    assert exc_info.value.status_code == 401


def test_probe_never_retries_unauthorized():
    client = ScriptedClient([401] * 10)
    sleeps = []
    with pytest.raises(AuthError):
        probe(client, _policy(sleeps))
    assert client.calls == 1
    assert sleeps == []


def test_probe_forbidden_is_terminal():
    client = ScriptedClient([403])
    with pytest.raises(AuthError) as exc_info:
        probe(client, _policy())
    assert "forbidden" in str(exc_info.value)


def test_probe_exhausts_retries():
    client = ScriptedClient([500] * 10)
    sleeps = []
    with pytest.raises(RetriesExhaustedError) as exc_info:
        probe(client, _policy(sleeps))
    assert client.calls == 10
    assert len(sleeps) == 9
    assert exc_info.value.status_code == 500
    assert exc_info.value.attempts == 10
    assert isinstance(exc_info.value, TransientError)


def test_probe_respects_custom_max_attempts():
    client = ScriptedClient([502, 503, 504])
    with pytest.raises(RetriesExhaustedError) as exc_info:
        probe(client, _policy(max_attempts=3))
    assert client.calls == 3
    assert exc_info.value.status_code == 504


def test_probe_retries_transport_errors():
    client = ScriptedClient([httpx.ConnectError("refused"), 200])
    assert probe(client, _policy()) == 2


def test_probe_transport_errors_exhaust():
    client = ScriptedClient([httpx.ConnectError("refused")] * 2)
    with pytest.raises(RetriesExhaustedError) as exc_info:
        probe(client, _policy(max_attempts=2))
    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


def test_probe_custom_predicate():
    client = ScriptedClient([429, 200])
    policy = _policy(should_retry=lambda status: status == 429 or status >= 500)
    assert probe(client, policy) == 2


def test_retries_undecodable_responses():
    client = ScriptedClient([httpx.DecodingError("bad gzip"), 200])
    assert probe(client, _policy()) == 2


def test_undecodable_responses_exhaust_retries():
    client = ScriptedClient([httpx.DecodingError("bad gzip")] * 3)
    with pytest.raises(RetriesExhaustedError) as exc_info:
        probe(client, _policy(max_attempts=3))
    assert client.calls == 3
    assert isinstance(exc_info.value.__cause__, httpx.DecodingError)
