from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone

from lesson_uploader.domain.catalog import Collection, Library, normalize_library_name
from lesson_uploader.domain.embeds import clean_video_name
from lesson_uploader.domain.errors import RemoteLookupError, RemoteServiceError
from lesson_uploader.ports.credentials_port import CredentialStore
from lesson_uploader.ports.storage_port import StoragePort
from lesson_uploader.ports.video_host_port import VideoHostPort

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LibraryCatalogService:
    """Session cache of the remote library/collection catalog."""

    def __init__(
        self,
        video_host: VideoHostPort,
        credentials: CredentialStore,
        storage: StoragePort | None = None,
        now_iso: Callable[[], str] = _utc_now_iso,
    ) -> None:
        self._video_host = video_host
        self._credentials = credentials
        self._storage = storage
        self._now_iso = now_iso
        self._libraries: list[Library] | None = None
        self._collections: dict[str, list[Collection]] = {}
        self._lock = threading.RLock()

    def list_libraries(self, refresh: bool = False) -> list[Library]:
        with self._lock:
            if self._libraries is not None and not refresh:
                return list(self._libraries)
            try:
                libraries = self._video_host.list_libraries()
            except RemoteServiceError as exc:
                cached = self._storage.list_libraries() if self._storage is not None else []
                if not cached:
                    raise RemoteLookupError(f"Failed to list libraries: {exc}") from exc
                logger.warning(
                    "Library listing failed (%s); using %s cached libraries", exc, len(cached)
                )
                self._libraries = cached
                return list(cached)

            for library in libraries:
                if library.api_key:
                    self._credentials.set(library.library_id, library.api_key)
            if self._storage is not None:
                self._storage.save_libraries(libraries, self._now_iso())
            self._libraries = libraries
            self._collections.clear()
            logger.info("Loaded %s libraries", len(libraries))
            return list(libraries)

    def find_library(self, name: str) -> Library | None:
        wanted = normalize_library_name(name)
        if not wanted:
            return None
        for library in self.list_libraries():
            if normalize_library_name(library.name) == wanted:
                return library
        return None

    def list_collections(self, library_id: str, refresh: bool = False) -> list[Collection]:
        with self._lock:
            if refresh or library_id not in self._collections:
                self._collections[library_id] = self._video_host.list_collections(library_id)
            return list(self._collections[library_id])

    def ensure_collection(self, library_id: str, name: str) -> Collection:
        """Return the named collection of a library, creating it when absent.

        Serialized so that two workers targeting the same new collection create it once.
        """
        wanted = name.strip().lower()
        with self._lock:
            for collection in self.list_collections(library_id):
                if collection.name.strip().lower() == wanted:
                    return collection
            created = self._video_host.create_collection(library_id, name)
            self._collections.setdefault(library_id, []).append(created)
            logger.info("Created collection %s in library %s", name, library_id)
            return created

    def video_exists(self, library_id: str, collection_id: str | None, filename: str) -> bool:
        title = clean_video_name(filename)
        try:
            videos = self._video_host.list_videos(library_id, collection_id)
        except RemoteServiceError as exc:
            logger.warning("Could not check existing videos in %s: %s", library_id, exc)
            return False
        return any(clean_video_name(video.title) == title for video in videos)
