from __future__ import annotations

import logging

import keyring
from keyring.errors import KeyringError

from lesson_uploader.adapters.memory_credentials import InMemoryCredentialStore
from lesson_uploader.ports.credentials_port import CredentialStore

logger = logging.getLogger(__name__)

_KEYRING_SERVICE = "lesson-uploader"


class KeyringCredentialStore(CredentialStore):
    """Library access keys kept in the OS keyring, fronted by a process-local copy.

    Keyring failures are logged and never fatal: the in-memory copy still serves
    the current process.
    """

    def __init__(self, service_name: str = _KEYRING_SERVICE) -> None:
        self._service_name = service_name
        self._memory = InMemoryCredentialStore()

    def get(self, library_id: str) -> str | None:
        cached = self._memory.get(library_id)
        if cached:
            return cached
        try:
            value = keyring.get_password(self._service_name, _key_name(library_id))
        except KeyringError as exc:
            logger.warning("Could not read key for library %s from keyring: %s", library_id, exc)
            return None
        if value:
            self._memory.set(library_id, value)
        return value

    def set(self, library_id: str, api_key: str) -> None:
        self._memory.set(library_id, api_key)
        try:
            keyring.set_password(self._service_name, _key_name(library_id), api_key)
        except KeyringError as exc:
            logger.warning("Could not store key for library %s in keyring: %s", library_id, exc)


def _key_name(library_id: str) -> str:
    return f"library:{library_id}"
