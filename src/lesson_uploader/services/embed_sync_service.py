from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone

from lesson_uploader.domain.models import EmbedRecord, SheetUpdateResult, UploadedVideo
from lesson_uploader.ports.storage_port import StoragePort
from lesson_uploader.ports.video_host_port import VideoHostPort
from lesson_uploader.services.sheet_embed_service import SheetEmbedService

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class EmbedSyncService:
    """Post-upload hook that records embed codes and pushes them to the sheet.

    Work runs on a single background thread so the upload loop never waits on the
    spreadsheet and never sees its failures.
    """

    def __init__(
        self,
        video_host: VideoHostPort,
        storage: StoragePort | None = None,
        sheet_service: SheetEmbedService | None = None,
        now_iso: Callable[[], str] = _utc_now_iso,
    ) -> None:
        self._video_host = video_host
        self._storage = storage
        self._sheet_service = sheet_service
        self._now_iso = now_iso
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="embed-sync")

    def handle_video_uploaded(
        self, title: str, video_id: str, library_id: str
    ) -> Future[SheetUpdateResult | None]:
        return self._executor.submit(self._record_and_push, title, video_id, library_id)

    def sync_pending(self) -> SheetUpdateResult:
        if self._storage is None or self._sheet_service is None:
            return SheetUpdateResult()
        pending = self._storage.list_unsynced_videos()
        if not pending:
            logger.info("No embed codes waiting for the sheet")
            return SheetUpdateResult()
        result = self._sheet_service.update_embeds(
            [EmbedRecord(name=video.title, embed_code=video.embed_code) for video in pending]
        )
        self._mark_synced(pending, result)
        return result

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _record_and_push(
        self, title: str, video_id: str, library_id: str
    ) -> SheetUpdateResult | None:
        try:
            embed_code = self._video_host.get_embed_code(library_id, video_id)
            video = UploadedVideo(
                video_id=video_id,
                library_id=library_id,
                title=title,
                embed_code=embed_code,
                uploaded_at=self._now_iso(),
            )
            if self._storage is not None:
                self._storage.record_uploaded_video(video)
            if self._sheet_service is None:
                return None
            result = self._sheet_service.update_embeds(
                [EmbedRecord(name=title, embed_code=embed_code)]
            )
            if result.not_found_names:
                logger.warning("%s not found in the sheet, embed kept for a later sync", title)
            self._mark_synced([video], result)
            return result
        except Exception:
            logger.exception("Failed to push embed code for %s", title)
            return None

    def _mark_synced(self, videos: list[UploadedVideo], result: SheetUpdateResult) -> None:
        if self._storage is None:
            return
        done = set(result.updated_names) | set(result.skipped_names)
        video_ids = [video.video_id for video in videos if video.title in done]
        self._storage.mark_videos_synced(video_ids, self._now_iso())
