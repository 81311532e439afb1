"""Auth — verified provisioning of registry credentials.

Provides the login flow, the trusted-caller ACL, credential sources for
interactive and scripted use, and keyring-backed secure storage.
"""

from reglogin.auth.flow import LoginFlow, LoginResult, LoginState, logout
from reglogin.auth.models import StoredCredential
from reglogin.auth.prompts import ConsolePrompt, CredentialSource, StaticCredentialSource
from reglogin.auth.store import CredentialStore, KeyringStore, MemoryStore
from reglogin.auth.trust import TRUSTED_PLUGINS, compute_trusted_paths

__all__ = [
    "ConsolePrompt",
    "CredentialSource",
    "CredentialStore",
    "KeyringStore",
    "LoginFlow",
    "LoginResult",
    "LoginState",
    "MemoryStore",
    "StaticCredentialSource",
    "StoredCredential",
    "TRUSTED_PLUGINS",
    "compute_trusted_paths",
    "logout",
]
