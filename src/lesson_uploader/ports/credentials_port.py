from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CredentialStore(Protocol):
    def get(self, library_id: str) -> str | None:
        """Return the access key of a library, if known."""

    def set(self, library_id: str, api_key: str) -> None:
        """Remember the access key of a library."""
