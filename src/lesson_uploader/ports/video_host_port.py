from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

from lesson_uploader.domain.cancellation import CancellationToken, TransferOutcome
from lesson_uploader.domain.catalog import Collection, Library, Video

ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class VideoHostPort(Protocol):
    def list_libraries(self) -> list[Library]:
        """Return every library with its library-scoped access key."""

    def list_collections(self, library_id: str) -> list[Collection]:
        """Return collections of a library."""

    def create_collection(self, library_id: str, name: str) -> Collection:
        """Create a collection and return it."""

    def list_videos(self, library_id: str, collection_id: str | None = None) -> list[Video]:
        """Return videos of a library, optionally limited to one collection."""

    def create_video(self, library_id: str, title: str, collection_id: str | None) -> str:
        """Create an empty video entry and return its id."""

    def upload_bytes(
        self,
        library_id: str,
        video_id: str,
        source: Path,
        progress_callback: ProgressCallback,
        token: CancellationToken,
    ) -> TransferOutcome:
        """Send the file bytes, reporting (bytes_sent, total) and honoring the token."""

    def get_embed_code(self, library_id: str, video_id: str) -> str:
        """Return player markup for a video; stable for a given pair of ids."""
