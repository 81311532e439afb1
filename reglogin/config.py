"""Runtime configuration.

Settings come from, in increasing precedence: built-in defaults, an optional
YAML file (``~/.reglogin/config.yaml`` or ``$REGLOGIN_CONFIG``), and
``REGLOGIN_*`` environment variables. Example file::

    keychain_id: com.example.registry
    max_attempts: 5
    retry_interval: 0.5
    timeout: 10
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from reglogin.auth.store import DEFAULT_SERVICE
from reglogin.auth.trust import INSTALL_ROOT_ENV, default_install_root
from reglogin.errors import InvalidArgumentError
from reglogin.registry.client import DEFAULT_TIMEOUT
from reglogin.registry.probe import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_INTERVAL, RetryPolicy

logger = logging.getLogger(__name__)

CONFIG_ENV = "REGLOGIN_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".reglogin" / "config.yaml"

ENV_VARS: dict[str, str] = {
    "keychain_id": "REGLOGIN_KEYCHAIN_ID",
    "install_root": INSTALL_ROOT_ENV,
    "max_attempts": "REGLOGIN_MAX_ATTEMPTS",
    "retry_interval": "REGLOGIN_RETRY_INTERVAL",
    "timeout": "REGLOGIN_TIMEOUT",
    "debug": "REGLOGIN_DEBUG",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass
class Settings:
    """Resolved configuration for a reglogin invocation."""

    keychain_id: str = DEFAULT_SERVICE
    install_root: str = ""  # empty: $REGLOGIN_INSTALL_ROOT or sys.prefix
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_interval: float = DEFAULT_RETRY_INTERVAL
    timeout: float = DEFAULT_TIMEOUT
    debug: bool = False

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=self.max_attempts, interval=self.retry_interval)

    def resolved_install_root(self) -> Path:
        return Path(self.install_root).expanduser() if self.install_root else default_install_root()


def _coerce(name: str, value: Any, kind: type) -> Any:
    try:
        if kind is bool:
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise ValueError(text)
        if kind is int:
            if isinstance(value, bool):
                raise ValueError(value)
            return int(value)
        if kind is float:
            return float(value)
        return str(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"invalid value for {name}: {value!r}") from e


def _field_types() -> dict[str, type]:
    kinds = {"str": str, "int": int, "float": float, "bool": bool}
    return {f.name: kinds[f.type] for f in fields(Settings)}


def _read_file(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidArgumentError(f"invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise InvalidArgumentError(f"cannot read config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgumentError(f"config file {path} must contain a mapping")
    return data


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    path: Optional[str | Path] = None,
) -> Settings:
    """Build :class:`Settings` from the config file and environment.

    *env* defaults to ``os.environ``. *path* overrides ``$REGLOGIN_CONFIG``;
    an explicitly named file must exist, the default one is optional.
    """
    env = os.environ if env is None else env
    types = _field_types()
    values: dict[str, Any] = {}

    explicit = path or env.get(CONFIG_ENV)
    config_path = Path(explicit).expanduser() if explicit else DEFAULT_CONFIG_PATH
    if explicit or config_path.exists():
        for key, value in _read_file(config_path).items():
            if key not in types:
                logger.warning("ignoring unknown setting %r in %s", key, config_path)
                continue
            values[key] = _coerce(key, value, types[key])

    for key, var in ENV_VARS.items():
        if var in env:
            values[key] = _coerce(var, env[var], types[key])

    settings = Settings(**values)
    if settings.max_attempts < 1:
        raise InvalidArgumentError(f"max_attempts must be at least 1, got {settings.max_attempts}")
    if settings.retry_interval < 0 or settings.timeout <= 0:
        raise InvalidArgumentError("retry_interval must be >= 0 and timeout must be > 0")
    if not settings.keychain_id:
        raise InvalidArgumentError("keychain_id must not be empty")
    return settings
