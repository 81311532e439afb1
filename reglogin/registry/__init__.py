"""Registry access — endpoint resolution, transport client, and the login probe.

The registry layer provides:
- Resolution: normalize server names and pick a transport scheme
- Transport: an authenticated client able to ping a registry
- Verification: a retrying probe proving credentials work
"""

from reglogin.registry.client import RegistryClient
from reglogin.registry.models import Credential, Endpoint, Scheme
from reglogin.registry.probe import RetryPolicy, probe
from reglogin.registry.resolver import endpoint_for, resolve_domain, scheme_for

__all__ = [
    "Credential",
    "Endpoint",
    "RegistryClient",
    "RetryPolicy",
    "Scheme",
    "endpoint_for",
    "probe",
    "resolve_domain",
    "scheme_for",
]
