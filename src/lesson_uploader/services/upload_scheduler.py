from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from uuid import uuid4

from lesson_uploader.domain.cancellation import AbortReason, CancellationToken, TransferOutcome
from lesson_uploader.domain.errors import QueueBusyError, RemoteLookupError, RemoteServiceError
from lesson_uploader.domain.filenames import strip_extension, upload_sort_key
from lesson_uploader.domain.models import (
    TERMINAL_STATUSES,
    CancelResult,
    PassSummary,
    QueueItem,
    QueueItemView,
    QueueSnapshot,
    RetrySummary,
    UploadEvent,
    UploadGroup,
    UploadStatus,
)
from lesson_uploader.domain.projection import project_groups
from lesson_uploader.ports.video_host_port import VideoHostPort
from lesson_uploader.services.catalog_service import LibraryCatalogService
from lesson_uploader.services.classification_service import ClassificationService
from lesson_uploader.services.retry_controller import RetryController

logger = logging.getLogger(__name__)

QueueListener = Callable[[QueueSnapshot], None]
UploadHook = Callable[[str, str, str], object]

_REPLANNABLE_STATUSES = frozenset(
    {UploadStatus.PENDING, UploadStatus.PAUSED, UploadStatus.ERROR}
)


class UploadScheduler:
    """Owns the upload queue and runs passes over it.

    Every mutation of the queue, the manual-selection holding area and the slot
    counter happens under ``self._lock``; worker threads only perform remote calls
    outside it and re-check that their cancellation token is still the item's
    current token before writing results back. Listeners receive a snapshot after
    each mutation, in mutation order.
    """

    def __init__(
        self,
        video_host: VideoHostPort,
        catalog: LibraryCatalogService,
        classifier: ClassificationService,
        max_concurrent: int = 3,
        idle_timeout_s: float = 120.0,
        retry_controller: RetryController | None = None,
        on_video_uploaded: UploadHook | None = None,
        tick_s: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._video_host = video_host
        self._catalog = catalog
        self._classifier = classifier
        self._max_concurrent = max_concurrent
        self._idle_timeout_s = idle_timeout_s
        self._retry_controller = retry_controller or RetryController()
        self._on_video_uploaded = on_video_uploaded
        self._tick_s = tick_s
        self._clock = clock

        self._queue: list[QueueItem] = []
        self._manual: list[QueueItem] = []
        self._listeners: list[QueueListener] = []
        self._lock = threading.RLock()
        self._cond = threading.Condition(self._lock)
        self._active = 0
        self._global_paused = False
        self._running = False
        self._touched: set[str] = set()
        self._exhausted: set[str] = set()
        self._creating: dict[str, threading.Event] = {}

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    # Observation

    def subscribe(self, listener: QueueListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def publish_event(self, event: UploadEvent) -> None:
        with self._lock:
            self._publish(event)

    def groups(self) -> list[UploadGroup]:
        with self._lock:
            return project_groups(self._queue, self._manual)

    def get_item(self, item_id: str) -> QueueItemView:
        with self._lock:
            return self._find(item_id)[0].view()

    def stats(self) -> dict[str, int]:
        with self._lock:
            counts = {status.value: 0 for status in UploadStatus}
            for item in self._queue:
                counts[item.status.value] += 1
            counts["manual"] = len(self._manual)
            counts["total"] = len(self._queue) + len(self._manual)
            counts["bytes_sent"] = sum(item.bytes_sent for item in self._queue)
            return counts

    def has_active_uploads(self) -> bool:
        with self._lock:
            return self._running or any(
                item.status == UploadStatus.PROCESSING for item in self._queue
            )

    def is_globally_paused(self) -> bool:
        with self._lock:
            return self._global_paused

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: not self._running, timeout)

    # Enqueueing

    def enqueue_preview(self, files: Iterable[Path | str], year: str) -> list[QueueItemView]:
        """Parse and classify files without starting any transfer.

        Items that cannot be classified automatically land in the manual-selection
        holding area. A failed library listing sends every item there instead of
        aborting the batch.
        """
        try:
            libraries = self._catalog.list_libraries()
            lookup_error = None
        except RemoteLookupError as exc:
            logger.warning("Library lookup failed during preview: %s", exc)
            libraries = []
            lookup_error = str(exc)

        views: list[QueueItemView] = []
        for file in files:
            source = Path(file)
            classification = self._classifier.classify(source.name, libraries, year)
            item = QueueItem(
                item_id=uuid4().hex,
                source=source,
                filename=source.name,
                year=year,
                parsed=classification.parsed,
                parse_failure=classification.parse_failure,
                match=classification.match,
                collection=classification.collection,
                reason=classification.reason,
            )
            if lookup_error is not None and classification.parsed is not None:
                item.reason = f"Library lookup failed: {lookup_error}"
            with self._lock:
                if classification.needs_manual_selection:
                    item.needs_manual_selection = True
                    self._manual.append(item)
                    logger.info("%s needs manual selection: %s", item.filename, item.reason)
                    self._publish(
                        UploadEvent(
                            kind="manual_selection_needed",
                            message=f"{item.filename}: {item.reason}",
                            level="warning",
                            item_id=item.item_id,
                            filename=item.filename,
                        )
                    )
                else:
                    item.target_library = classification.library_name
                    item.target_collection = classification.collection_name
                    item.collection_auto = True
                    self._queue.append(item)
                    self._publish(
                        UploadEvent(
                            kind="library_matched",
                            message=f"{item.filename}: {item.reason}",
                            item_id=item.item_id,
                            filename=item.filename,
                        )
                    )
                views.append(item.view())
        return views

    def enqueue_manual(
        self, files: Iterable[Path | str], library_name: str, collection_name: str
    ) -> list[QueueItemView]:
        views: list[QueueItemView] = []
        with self._lock:
            for file in files:
                source = Path(file)
                item = QueueItem(
                    item_id=uuid4().hex,
                    source=source,
                    filename=source.name,
                    year="",
                    target_library=library_name,
                    target_collection=collection_name,
                    reason="Selected manually",
                )
                self._queue.append(item)
                views.append(item.view())
            self._publish()
        return views

    def assign_target(self, item_id: str, library_name: str, collection_name: str) -> None:
        with self._lock:
            item, container = self._find(item_id)
            if item.status == UploadStatus.PROCESSING:
                raise QueueBusyError(f"Cannot reassign {item.filename} while it is uploading.")
            if container is self._manual:
                self._manual.remove(item)
                self._queue.append(item)
            item.needs_manual_selection = False
            item.target_library = library_name
            item.target_collection = collection_name
            item.collection_auto = False
            item.reason = "Selected manually"
            self._exhausted.discard(item.item_id)
            if item.status == UploadStatus.ERROR:
                self._reset_for_upload(item)
            self._publish()

    # Passes

    def start_upload(
        self, selected_year: str | None = None, auto_retry: bool = True
    ) -> PassSummary:
        """Run one pass over the queue in the calling thread.

        Items are attempted in ``upload_sort_key`` order. When the pass leaves every
        item terminal with some failures, the retry controller runs before returning.
        """
        with self._lock:
            if self._running:
                raise QueueBusyError("An upload pass is already running.")
            self._running = True
        try:
            if selected_year:
                self._apply_year(selected_year)
            return self._execute(auto_retry)
        finally:
            self._release_running()

    def retry_failed(self) -> RetrySummary:
        with self._lock:
            if self._running:
                raise QueueBusyError("Cannot retry while an upload pass is running.")
            self._running = True
        try:
            return self._retry_controller.retry_failed(self)
        finally:
            self._release_running()

    def failed_item_ids(self) -> list[str]:
        with self._lock:
            return [
                item.item_id
                for item in self._queue
                if item.status == UploadStatus.ERROR and item.item_id not in self._exhausted
            ]

    def retry_item(self, item_id: str, note: str) -> UploadStatus | None:
        """Re-run one failed item; returns its status afterwards, ``None`` if it was removed.

        Only valid while the caller holds the running pass (the retry controller).
        """
        with self._lock:
            item = self._find_queued(item_id)
            if item is None:
                return None
            if item.status != UploadStatus.ERROR:
                return item.status
            self._reset_for_upload(item)
            item.error_message = note
            self._publish()
        self._run_pass(only={item_id})
        with self._lock:
            item = self._find_queued(item_id)
            return item.status if item is not None else None

    def last_error(self, item_id: str) -> str | None:
        with self._lock:
            item = self._find_queued(item_id)
            return item.error_message if item is not None else None

    def mark_retry_exhausted(self, item_id: str, attempts: int, last_error: str | None) -> None:
        with self._lock:
            item = self._find_queued(item_id)
            if item is None or item.status != UploadStatus.ERROR:
                return
            self._exhausted.add(item_id)
            item.error_message = (
                f"Failed after {attempts} retry attempts: {last_error or 'unknown error'}"
            )
            logger.error("%s: %s", item.filename, item.error_message)
            self._publish(
                UploadEvent(
                    kind="retry_exhausted",
                    message=f"{item.filename}: {item.error_message}",
                    level="error",
                    item_id=item.item_id,
                    filename=item.filename,
                )
            )

    # Pause, resume, cancel

    def pause_item(self, item_id: str) -> bool:
        with self._lock:
            item = self._find_queued(item_id)
            if item is None or item.status not in (UploadStatus.PROCESSING, UploadStatus.PENDING):
                return False
            self._pause_locked(item)
            self._publish(
                UploadEvent(
                    kind="upload_paused",
                    message=f"Paused {item.filename}",
                    item_id=item.item_id,
                    filename=item.filename,
                )
            )
            return True

    def resume_item(self, item_id: str) -> bool:
        with self._lock:
            item = self._find_queued(item_id)
            if item is None or item.status != UploadStatus.PAUSED:
                return False
            self._reset_for_upload(item)
            self._publish(
                UploadEvent(
                    kind="upload_resumed",
                    message=f"Resumed {item.filename}",
                    item_id=item.item_id,
                    filename=item.filename,
                )
            )
            self._ensure_pass_running()
            return True

    def cancel_item(self, item_id: str) -> CancelResult:
        with self._lock:
            try:
                item, container = self._find(item_id)
            except KeyError:
                return CancelResult(removed=False)
            self._exhausted.discard(item_id)
            if item.cancellation_token is not None:
                item.cancellation_token.cancel(AbortReason.CANCEL)
                item.cancellation_token = None
            container.remove(item)
            needs_cleanup = (
                item.remote_video_id is not None and item.status != UploadStatus.COMPLETED
            )
            if needs_cleanup:
                message = (
                    f"Cancelled {item.filename}. The partially created video "
                    f"{item.remote_video_id} must be deleted manually on the video host."
                )
            else:
                message = f"Cancelled {item.filename}"
            logger.info(message)
            self._publish(
                UploadEvent(
                    kind="upload_cancelled",
                    message=message,
                    level="warning" if needs_cleanup else "info",
                    item_id=item.item_id,
                    filename=item.filename,
                )
            )
            self._cond.notify_all()
            return CancelResult(
                removed=True,
                needs_manual_cleanup=needs_cleanup,
                remote_video_id=item.remote_video_id,
            )

    def pause_all(self) -> int:
        with self._lock:
            self._global_paused = True
            paused = 0
            for item in self._queue:
                if item.status == UploadStatus.PROCESSING:
                    self._pause_locked(item)
                    paused += 1
            logger.info("Global pause: %s transfers paused", paused)
            self._publish(
                UploadEvent(kind="global_paused", message=f"Paused {paused} active uploads")
            )
            self._cond.notify_all()
            return paused

    def resume_all(self) -> int:
        with self._lock:
            self._global_paused = False
            resumed = 0
            for item in self._queue:
                if item.status == UploadStatus.PAUSED:
                    self._reset_for_upload(item)
                    resumed += 1
            logger.info("Global resume: %s uploads resumed", resumed)
            self._publish(
                UploadEvent(kind="global_resumed", message=f"Resumed {resumed} uploads")
            )
            self._ensure_pass_running()
            return resumed

    def toggle_global_pause(self) -> bool:
        with self._lock:
            if self._global_paused:
                self.resume_all()
            else:
                self.pause_all()
            return self._global_paused

    def clear_queue(self) -> None:
        with self._lock:
            busy = any(
                item.status in (UploadStatus.PROCESSING, UploadStatus.PENDING)
                for item in self._queue
            )
            if busy or self._running:
                raise QueueBusyError("Cannot clear the queue while uploads are pending or running.")
            self._queue.clear()
            self._manual.clear()
            self._exhausted.clear()
            self._publish()

    # Internals

    def _execute(self, auto_retry: bool) -> PassSummary:
        with self._lock:
            self._queue.sort(key=lambda item: upload_sort_key(item.filename))
        summary = self._run_pass()
        if auto_retry and summary.failed and self._all_terminal() and self.failed_item_ids():
            summary = replace(summary, retry=self._retry_controller.retry_failed(self))
        return summary

    def _run_pass(self, only: set[str] | None = None) -> PassSummary:
        started = self._clock()
        with self._lock:
            self._touched = set()
        executor = ThreadPoolExecutor(
            max_workers=self._max_concurrent, thread_name_prefix="upload"
        )
        try:
            while True:
                with self._cond:
                    item = self._claim_next_item(only)
                    if item is None:
                        if self._pass_finished(only):
                            break
                        self._cond.wait(timeout=self._tick_s)
                        self._check_idle_transfers()
                        continue
                    token = item.cancellation_token
                executor.submit(self._run_item, item, token)
        finally:
            executor.shutdown(wait=True)

        with self._lock:
            summary = self._summarize(self._clock() - started)
            if only is None:
                self._announce_pass(summary)
        return summary

    def _claim_next_item(self, only: set[str] | None) -> QueueItem | None:
        if self._global_paused or self._active >= self._max_concurrent:
            return None
        item = next(
            (
                candidate
                for candidate in self._queue
                if candidate.status == UploadStatus.PENDING
                and (only is None or candidate.item_id in only)
            ),
            None,
        )
        if item is None:
            return None
        now = self._clock()
        item.status = UploadStatus.PROCESSING
        item.cancellation_token = CancellationToken()
        item.started_at = now
        item.last_activity_at = now
        self._active += 1
        self._touched.add(item.item_id)
        logger.info("Starting upload of %s", item.filename)
        self._publish(
            UploadEvent(
                kind="upload_started",
                message=f"Uploading {item.filename}",
                item_id=item.item_id,
                filename=item.filename,
            )
        )
        return item

    def _pass_finished(self, only: set[str] | None) -> bool:
        if self._active > 0:
            return False
        if self._global_paused:
            return True
        return not any(
            item.status == UploadStatus.PENDING and (only is None or item.item_id in only)
            for item in self._queue
        )

    def _check_idle_transfers(self) -> None:
        now = self._clock()
        for item in self._queue:
            token = item.cancellation_token
            if item.status != UploadStatus.PROCESSING or token is None or token.cancelled:
                continue
            if item.last_activity_at is None:
                continue
            idle_s = now - item.last_activity_at
            if idle_s > self._idle_timeout_s:
                logger.warning(
                    "No progress on %s for %.0fs, aborting transfer", item.filename, idle_s
                )
                token.cancel(AbortReason.TIMEOUT)

    def _run_item(self, item: QueueItem, token: CancellationToken) -> None:
        try:
            library = self._catalog.find_library(item.target_library)
            if library is None:
                raise RemoteLookupError(f"Library not found: {item.target_library}")
            if token.cancelled:
                self._finish_aborted(item, token)
                return
            collection = self._catalog.ensure_collection(library.library_id, item.target_collection)
            if token.cancelled:
                self._finish_aborted(item, token)
                return

            title = strip_extension(item.filename)
            self._wait_for_pending_creation(item, token)
            if token.cancelled:
                self._finish_aborted(item, token)
                return
            with self._lock:
                video_id = item.remote_video_id
            if video_id is None:
                if self._catalog.video_exists(
                    library.library_id, collection.collection_id, item.filename
                ):
                    self._finish_completed(item, token, skipped=True)
                    return
                video_id = self._create_video(
                    item, token, library.library_id, collection.collection_id, title
                )
                if video_id is None:
                    self._finish_aborted(item, token)
                    return

            outcome = self._video_host.upload_bytes(
                library.library_id,
                video_id,
                item.source,
                self._progress_callback(item, token),
                token,
            )
            if outcome == TransferOutcome.COMPLETED:
                if self._finish_completed(item, token, skipped=False):
                    self._notify_uploaded(title, video_id, library.library_id)
            else:
                self._finish_aborted(item, token)
        except (RemoteServiceError, OSError) as exc:
            self._finish_failed(item, token, str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure while uploading %s", item.filename)
            self._finish_failed(item, token, f"Unexpected error: {exc}")
        finally:
            with self._cond:
                self._active -= 1
                self._cond.notify_all()

    def _wait_for_pending_creation(self, item: QueueItem, token: CancellationToken) -> None:
        # A paused claim may still be creating this item's video.
        with self._lock:
            pending = self._creating.get(item.item_id)
        if pending is None:
            return
        while not token.cancelled:
            if pending.wait(self._tick_s):
                return

    def _create_video(
        self,
        item: QueueItem,
        token: CancellationToken,
        library_id: str,
        collection_id: str,
        title: str,
    ) -> str | None:
        """Create the remote video; ``None`` when the claim went stale meanwhile."""
        created = threading.Event()
        with self._lock:
            self._creating[item.item_id] = created
        try:
            video_id = self._video_host.create_video(library_id, title, collection_id)
            with self._lock:
                return self._record_created_video(item, token, video_id)
        finally:
            with self._lock:
                if self._creating.get(item.item_id) is created:
                    del self._creating[item.item_id]
            created.set()

    def _record_created_video(
        self, item: QueueItem, token: CancellationToken, video_id: str
    ) -> str | None:
        if item.cancellation_token is token:
            item.remote_video_id = video_id
            return video_id
        if self._find_queued(item.item_id) is item and item.remote_video_id is None:
            # Paused mid-creation; the next claim uploads into this video.
            item.remote_video_id = video_id
            logger.info("Kept video %s for paused %s", video_id, item.filename)
            return None
        message = (
            f"Cancelled {item.filename}. The partially created video "
            f"{video_id} must be deleted manually on the video host."
        )
        logger.warning(message)
        self._publish(
            UploadEvent(
                kind="upload_cancelled",
                message=message,
                level="warning",
                item_id=item.item_id,
                filename=item.filename,
            )
        )
        return None

    def _progress_callback(
        self, item: QueueItem, token: CancellationToken
    ) -> Callable[[int, int], None]:
        def on_progress(bytes_sent: int, total_bytes: int) -> None:
            now = self._clock()
            with self._lock:
                if item.cancellation_token is not token:
                    return
                last_at = item.last_activity_at if item.last_activity_at is not None else now
                elapsed = now - last_at
                delta = bytes_sent - item.bytes_sent
                if elapsed > 0 and delta >= 0:
                    item.upload_speed_bps = delta / elapsed
                item.bytes_sent = max(item.bytes_sent, bytes_sent)
                item.progress_percent = _percent(item.bytes_sent, total_bytes)
                item.last_activity_at = now
                self._publish()

        return on_progress

    def _finish_completed(self, item: QueueItem, token: CancellationToken, skipped: bool) -> bool:
        with self._lock:
            if item.cancellation_token is not token:
                return False
            item.status = UploadStatus.COMPLETED
            item.progress_percent = 100
            item.cancellation_token = None
            item.upload_speed_bps = None
            item.error_message = None
            item.skipped_existing = skipped
            if skipped:
                logger.info("Skipped %s, already present on the video host", item.filename)
                event = UploadEvent(
                    kind="upload_skipped",
                    message=f"{item.filename} already exists, skipped",
                    item_id=item.item_id,
                    filename=item.filename,
                )
            else:
                logger.info("Uploaded %s", item.filename)
                event = UploadEvent(
                    kind="upload_completed",
                    message=f"Uploaded {item.filename}",
                    item_id=item.item_id,
                    filename=item.filename,
                )
            self._publish(event)
            return True

    def _finish_aborted(self, item: QueueItem, token: CancellationToken) -> None:
        if token.reason == AbortReason.TIMEOUT:
            self._finish_failed(
                item,
                token,
                f"Transfer stalled: no progress for more than {self._idle_timeout_s:g}s",
            )
        elif not token.is_deliberate:
            self._finish_failed(item, token, "Transfer aborted by the video host adapter")
        else:
            logger.info("Transfer of %s stopped (%s)", item.filename, token.reason.value)

    def _finish_failed(self, item: QueueItem, token: CancellationToken, message: str) -> None:
        with self._lock:
            if item.cancellation_token is not token:
                return
            item.status = UploadStatus.ERROR
            item.error_message = message
            item.cancellation_token = None
            item.upload_speed_bps = None
            logger.warning("Upload of %s failed: %s", item.filename, message)
            self._publish(
                UploadEvent(
                    kind="upload_failed",
                    message=f"{item.filename}: {message}",
                    level="error",
                    item_id=item.item_id,
                    filename=item.filename,
                )
            )

    def _notify_uploaded(self, title: str, video_id: str, library_id: str) -> None:
        if self._on_video_uploaded is None:
            return
        try:
            self._on_video_uploaded(title, video_id, library_id)
        except Exception:
            logger.exception("Post-upload hook failed for %s", title)

    def _pause_locked(self, item: QueueItem) -> None:
        if item.cancellation_token is not None:
            item.cancellation_token.cancel(AbortReason.PAUSE)
            item.cancellation_token = None
        item.status = UploadStatus.PAUSED
        item.upload_speed_bps = None

    def _reset_for_upload(self, item: QueueItem) -> None:
        item.status = UploadStatus.PENDING
        item.progress_percent = 0
        item.bytes_sent = 0
        item.upload_speed_bps = None
        item.error_message = None
        item.skipped_existing = False

    def _ensure_pass_running(self) -> None:
        if self._running:
            self._cond.notify_all()
            return
        if self._global_paused or not any(
            item.status == UploadStatus.PENDING for item in self._queue
        ):
            return
        self._running = True
        thread = threading.Thread(
            target=self._run_background_pass, name="upload-pass", daemon=True
        )
        thread.start()

    def _run_background_pass(self) -> None:
        try:
            self._execute(auto_retry=True)
        except Exception:
            logger.exception("Background upload pass failed")
        finally:
            self._release_running()

    def _release_running(self) -> None:
        with self._cond:
            self._running = False
            self._cond.notify_all()
            self._ensure_pass_running()

    def _apply_year(self, year: str) -> None:
        with self._lock:
            for item in self._queue + self._manual:
                if item.year == year or item.status not in _REPLANNABLE_STATUSES:
                    continue
                item.year = year
                if item.collection_auto and item.parsed is not None:
                    item.collection = self._classifier.collection_for(item.parsed, year)
                    item.target_collection = item.collection.name
            self._publish()

    def _all_terminal(self) -> bool:
        with self._lock:
            return all(item.status in TERMINAL_STATUSES for item in self._queue)

    def _summarize(self, elapsed_s: float) -> PassSummary:
        completed = skipped = failed = paused = 0
        for item in self._queue:
            if item.status in (UploadStatus.PAUSED, UploadStatus.PENDING):
                paused += 1
            elif item.item_id not in self._touched:
                continue
            elif item.status == UploadStatus.ERROR:
                failed += 1
            elif item.skipped_existing:
                skipped += 1
            elif item.status == UploadStatus.COMPLETED:
                completed += 1
        return PassSummary(
            completed=completed,
            skipped=skipped,
            failed=failed,
            paused=paused,
            elapsed_s=elapsed_s,
        )

    def _announce_pass(self, summary: PassSummary) -> None:
        message = (
            f"Upload pass finished in {summary.elapsed_s:.1f}s: {summary.completed} uploaded, "
            f"{summary.skipped} skipped, {summary.failed} failed, {summary.paused} paused"
        )
        logger.info(message)
        self._publish(
            UploadEvent(
                kind="pass_completed",
                message=message,
                level="warning" if summary.failed else "info",
            )
        )

    def _find(self, item_id: str) -> tuple[QueueItem, list[QueueItem]]:
        for container in (self._queue, self._manual):
            for item in container:
                if item.item_id == item_id:
                    return item, container
        raise KeyError(f"Unknown queue item: {item_id}")

    def _find_queued(self, item_id: str) -> QueueItem | None:
        return next((item for item in self._queue if item.item_id == item_id), None)

    def _publish(self, event: UploadEvent | None = None) -> None:
        snapshot = QueueSnapshot(groups=project_groups(self._queue, self._manual), event=event)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Queue listener failed")


def _percent(bytes_sent: int, total_bytes: int) -> int:
    if total_bytes <= 0:
        return 0
    return max(0, min(100, int(bytes_sent * 100 / total_bytes)))
