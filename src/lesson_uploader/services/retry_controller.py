from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from lesson_uploader.domain.models import RetrySummary, UploadEvent, UploadStatus

if TYPE_CHECKING:
    from lesson_uploader.services.upload_scheduler import UploadScheduler

logger = logging.getLogger(__name__)


class RetryController:
    """Re-attempts failed items after a pass, one at a time, with a fixed delay."""

    def __init__(
        self,
        max_attempts: int = 3,
        delay_s: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._max_attempts = max(1, max_attempts)
        self._delay_s = delay_s
        self._sleep = sleep

    def retry_failed(self, scheduler: UploadScheduler) -> RetrySummary:
        failed_ids = scheduler.failed_item_ids()
        if not failed_ids:
            return RetrySummary(attempted=0, succeeded=0, failed=0)

        logger.info("Retrying %s failed uploads in %.0fs", len(failed_ids), self._delay_s)
        scheduler.publish_event(
            UploadEvent(
                kind="retry_started",
                message=f"Attempting to retry {len(failed_ids)} failed uploads",
                level="warning",
            )
        )
        self._sleep(self._delay_s)

        succeeded = 0
        failed = 0
        for item_id in failed_ids:
            if scheduler.is_globally_paused():
                logger.info("Global pause active, stopping retries")
                break
            status = self._retry_item(scheduler, item_id)
            if status == UploadStatus.COMPLETED:
                succeeded += 1
            elif status == UploadStatus.ERROR:
                failed += 1

        summary = RetrySummary(attempted=len(failed_ids), succeeded=succeeded, failed=failed)
        scheduler.publish_event(
            UploadEvent(
                kind="retries_finished",
                message=(
                    f"Retries finished: {summary.succeeded} succeeded, {summary.failed} failed"
                ),
                level="error" if summary.failed else "info",
            )
        )
        return summary

    def _retry_item(self, scheduler: UploadScheduler, item_id: str) -> UploadStatus | None:
        status: UploadStatus | None = UploadStatus.ERROR
        last_error: str | None = scheduler.last_error(item_id)
        for attempt in range(1, self._max_attempts + 1):
            status = scheduler.retry_item(
                item_id, note=f"Retry attempt {attempt}/{self._max_attempts}"
            )
            if status != UploadStatus.ERROR:
                break
            last_error = scheduler.last_error(item_id)
            if attempt < self._max_attempts and not scheduler.is_globally_paused():
                self._sleep(self._delay_s)

        if status == UploadStatus.COMPLETED:
            view = scheduler.get_item(item_id)
            scheduler.publish_event(
                UploadEvent(
                    kind="retry_succeeded",
                    message=f"Successfully uploaded {view.filename} on retry",
                    item_id=item_id,
                    filename=view.filename,
                )
            )
        elif status == UploadStatus.ERROR:
            scheduler.mark_retry_exhausted(item_id, self._max_attempts, last_error)
        return status
