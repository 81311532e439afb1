"""Tests for the reglogin command line."""

import tempfile
from pathlib import Path

import httpx
from click.testing import CliRunner

from reglogin import cli
from reglogin.auth.flow import make_client_factory
from reglogin.auth.store import MemoryStore
from reglogin.auth.trust import TRUSTED_PLUGINS


def _invoke(
    monkeypatch,
    args,
    status=200,
    input=None,
    store=None,
    install_plugin=True,
    config_text="{}\n",
    handler=None,
):
    """Run the CLI against a mock registry and an in-memory store."""
    store = store if store is not None else MemoryStore()
    calls = []

    def answer(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return handler(request) if handler else httpx.Response(status)

    transport = httpx.MockTransport(answer)
    monkeypatch.setattr(cli, "_store_for", lambda settings: store)
    monkeypatch.setattr(
        cli,
        "make_client_factory",
        lambda timeout: make_client_factory(timeout, transport=transport),
    )

    with tempfile.TemporaryDirectory() as tmpdir:
        config = Path(tmpdir) / "config.yaml"
        config.write_text(config_text)
        plugin = Path(tmpdir) / TRUSTED_PLUGINS[0]
        if install_plugin:
            plugin.parent.mkdir(parents=True)
            plugin.write_text("")
        env = {
            "REGLOGIN_CONFIG": str(config),
            "REGLOGIN_INSTALL_ROOT": tmpdir,
            "REGLOGIN_RETRY_INTERVAL": "0",
        }
        result = CliRunner().invoke(cli.main, args, input=input, env=env)
    return result, store, calls, str(plugin)


def test_login_password_stdin(monkeypatch):
    result, store, calls, plugin = _invoke(
        monkeypatch,
        ["login", "registry.example.com", "--username", "alice", "--password-stdin"],
        input="secret\n",
    )
    assert result.exit_code == 0, result.output
    assert "Login succeeded" in result.output
    assert len(calls) == 1

    entry = store.get("registry.example.com")
    assert entry.username == "alice"
    assert entry.password == "secret"
    assert entry.trusted_paths == (plugin,)


def test_login_interactive_prompts(monkeypatch):
    result, store, _, _ = _invoke(
        monkeypatch, ["login", "registry.example.com"], input="bob\nhunter2\n"
    )
    assert result.exit_code == 0, result.output
    assert "Username for registry.example.com" in result.output
    assert store.get("registry.example.com").password == "hunter2"


def test_login_rejected(monkeypatch):
    result, store, calls, _ = _invoke(
        monkeypatch,
        ["login", "registry.example.com", "-u", "alice", "--password-stdin"],
        status=401,
        input="wrong\n",
    )
    assert result.exit_code == 1
    assert "Login failed" in result.output
    assert "Login succeeded" not in result.output
    assert len(calls) == 1
    assert store.get("registry.example.com") is None


def test_login_registry_down(monkeypatch):
    result, store, calls, _ = _invoke(
        monkeypatch,
        ["login", "registry.example.com", "-u", "alice", "--password-stdin"],
        status=503,
        input="secret\n",
    )
    assert result.exit_code == 1
    assert "Registry unavailable" in result.output
    assert len(calls) == 10
    assert store.get("registry.example.com") is None


def test_password_stdin_requires_username(monkeypatch):
    result, _, calls, _ = _invoke(
        monkeypatch, ["login", "registry.example.com", "--password-stdin"], input="secret\n"
    )
    assert result.exit_code == 1
    assert "--username" in result.output
    assert calls == []


def test_login_invalid_server(monkeypatch):
    result, _, calls, _ = _invoke(
        monkeypatch, ["login", "https://", "-u", "alice", "--password-stdin"], input="secret\n"
    )
    assert result.exit_code == 1
    assert "Invalid argument" in result.output
    assert calls == []


def test_login_scheme_option(monkeypatch):
    result, _, calls, _ = _invoke(
        monkeypatch,
        ["login", "localhost:5000", "-u", "alice", "--password-stdin", "--scheme", "https"],
        input="secret\n",
    )
    assert result.exit_code == 0, result.output
    assert str(calls[0].url) == "https://localhost:5000/v2/"


def test_login_store_failure(monkeypatch):
    class BrokenStore(MemoryStore):
        def save(self, domain, username, password, trusted_paths=()):
            from reglogin.errors import StoreAccessDeniedError

            raise StoreAccessDeniedError("keyring is locked")

    result, _, calls, _ = _invoke(
        monkeypatch,
        ["login", "registry.example.com", "-u", "alice", "--password-stdin"],
        input="secret\n",
        store=BrokenStore(),
    )
    assert result.exit_code == 1
    assert "Credentials verified but not saved" in result.output
    assert len(calls) == 1


def test_logout(monkeypatch):
    store = MemoryStore()
    store.save("registry.example.com", "alice", "secret")

    result, _, _, _ = _invoke(monkeypatch, ["logout", "https://registry.example.com/"], store=store)
    assert result.exit_code == 0, result.output
    assert "Removed login credentials for registry.example.com" in result.output
    assert store.get("registry.example.com") is None

    result, _, _, _ = _invoke(monkeypatch, ["logout", "registry.example.com"], store=store)
    assert result.exit_code == 0
    assert "Not logged in" in result.output


def test_version():
    result = CliRunner().invoke(cli.main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_login_undecodable_response_reports_error(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip")

    result, store, calls, _ = _invoke(
        monkeypatch,
        ["login", "registry.example.com", "-u", "alice", "--password-stdin"],
        input="secret\n",
        handler=handler,
    )
    assert result.exit_code == 1
    assert "Registry unavailable" in result.output
    assert isinstance(result.exception, SystemExit)
    assert len(calls) == 10
    assert store.get("registry.example.com") is None


def test_unknown_setting_warning_is_logged(monkeypatch):
    result, _, _, _ = _invoke(
        monkeypatch,
        ["login", "registry.example.com", "-u", "alice", "--password-stdin"],
        input="secret\n",
        config_text="colour: blue\n",
    )
    assert result.exit_code == 0, result.output
    assert "ignoring unknown setting" in result.output


def test_help_works_with_broken_config(monkeypatch):
    result, _, calls, _ = _invoke(monkeypatch, ["login", "--help"], config_text="[unclosed\n")
    assert result.exit_code == 0, result.output
    assert "Log in to a registry" in result.output
    assert calls == []


def test_broken_config_fails_login(monkeypatch):
    result, store, calls, _ = _invoke(
        monkeypatch,
        ["login", "registry.example.com", "-u", "alice", "--password-stdin"],
        input="secret\n",
        config_text="[unclosed\n",
    )
    assert result.exit_code == 1
    assert "Invalid argument" in result.output
    assert calls == []
