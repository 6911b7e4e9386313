from __future__ import annotations

import threading

from lesson_uploader.ports.credentials_port import CredentialStore


class InMemoryCredentialStore(CredentialStore):
    def __init__(self) -> None:
        self._keys: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, library_id: str) -> str | None:
        with self._lock:
            return self._keys.get(library_id)

    def set(self, library_id: str, api_key: str) -> None:
        with self._lock:
            self._keys[library_id] = api_key
