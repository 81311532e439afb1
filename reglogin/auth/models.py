"""Auth domain models for stored registry credentials."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class StoredCredential:
    """A registry login as held by the secure store.

    ``trusted_paths`` is the ACL of co-installed programs allowed to read the
    entry, in the order it was computed at login time.
    """

    domain: str
    username: str
    password: str = field(repr=False)
    trusted_paths: tuple[str, ...] = ()

    def is_trusted(self, path: str) -> bool:
        """Return True if *path* appears in the entry's ACL."""
        return path in self.trusted_paths
