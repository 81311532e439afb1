"""Trusted-caller ACL for stored registry credentials.

Other components installed alongside reglogin (plugins that pull and push
images on the user's behalf) need to read registry credentials. Each known
plugin lives at a fixed path under the install root; a plugin is trusted only
if its binary exists when the login runs. The ACL is recomputed on every
login, so an uninstalled plugin loses access on the next successful login.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

INSTALL_ROOT_ENV = "REGLOGIN_INSTALL_ROOT"

# Relative to the install root.
TRUSTED_PLUGINS: tuple[str, ...] = (
    "libexec/reglogin/plugins/reglogin-core-images/bin/reglogin-core-images",
)


def default_install_root() -> Path:
    """Return ``$REGLOGIN_INSTALL_ROOT`` if set, otherwise ``sys.prefix``."""
    return Path(os.environ.get(INSTALL_ROOT_ENV) or sys.prefix)


def compute_trusted_paths(
    install_root: str | Path,
    plugins: tuple[str, ...] = TRUSTED_PLUGINS,
) -> tuple[str, ...]:
    """Return absolute paths of the *plugins* present under *install_root*.

    Order follows *plugins*; duplicates are dropped. A missing plugin is not
    an error, it simply isn't trusted.
    """
    root = Path(install_root).expanduser().absolute()
    paths: list[str] = []
    for relative in plugins:
        candidate = str(root / relative)
        if candidate not in paths and os.path.isfile(candidate):
            paths.append(candidate)
    return tuple(paths)
