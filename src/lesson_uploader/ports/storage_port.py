from __future__ import annotations

from typing import Protocol

from lesson_uploader.domain.catalog import Library
from lesson_uploader.domain.models import UploadedVideo


class StoragePort(Protocol):
    def save_libraries(self, libraries: list[Library], refreshed_at_iso: str) -> None:
        """Replace the cached library catalog."""

    def list_libraries(self) -> list[Library]:
        """Return the cached library catalog, without access keys."""

    def record_uploaded_video(self, video: UploadedVideo) -> None:
        """Persist an uploaded video and its embed code."""

    def list_unsynced_videos(self) -> list[UploadedVideo]:
        """Return uploaded videos whose embed code is not yet in the sheet."""

    def mark_videos_synced(self, video_ids: list[str], synced_at_iso: str) -> None:
        """Mark uploaded videos as written to the sheet."""
