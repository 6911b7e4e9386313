import threading
import time
from pathlib import Path
from unittest.mock import Mock

import pytest

from lesson_uploader.adapters.memory_credentials import InMemoryCredentialStore
from lesson_uploader.domain.cancellation import TransferOutcome
from lesson_uploader.domain.catalog import Collection, Library, Video
from lesson_uploader.domain.errors import QueueBusyError, RemoteLookupError, TransferError
from lesson_uploader.domain.models import QueueSnapshot, RetrySummary, UploadStatus
from lesson_uploader.services.catalog_service import LibraryCatalogService
from lesson_uploader.services.classification_service import ClassificationService
from lesson_uploader.services.retry_controller import RetryController
from lesson_uploader.services.upload_scheduler import UploadScheduler

LIBRARY_NAME = "M2-SCI-AR-P0078-Ahmed Hassan"


def _filename(part: int, suffix: str = "") -> str:
    return f"M2-T1-U1-L{part}-SCI-AR-P0078-Ahmed--{{Part{part}}}{suffix}.mp4"


class FakeVideoHost:
    def __init__(self, blocked: bool = False) -> None:
        self.libraries = [Library("lib-1", LIBRARY_NAME)]
        self.collections: dict[str, list[Collection]] = {}
        self.existing: set[str] = set()
        self.created: list[str] = []
        self.uploads: list[str] = []
        self.fail_counts: dict[str, int] = {}
        self.titles: dict[str, str] = {}
        self.release = threading.Event()
        if not blocked:
            self.release.set()
        self.create_gate = threading.Event()
        self.create_gate.set()
        self.creating = 0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def list_libraries(self) -> list[Library]:
        return list(self.libraries)

    def list_collections(self, library_id: str) -> list[Collection]:
        return list(self.collections.get(library_id, []))

    def create_collection(self, library_id: str, name: str) -> Collection:
        collection = Collection(f"col-{name}", name)
        self.collections.setdefault(library_id, []).append(collection)
        return collection

    def list_videos(self, library_id: str, collection_id: str | None = None) -> list[Video]:
        return [Video(f"existing-{title}", title) for title in sorted(self.existing)]

    def create_video(self, library_id: str, title: str, collection_id: str | None) -> str:
        with self._lock:
            self.creating += 1
        self.create_gate.wait(timeout=5)
        with self._lock:
            self.creating -= 1
            self.created.append(title)
            video_id = f"video-{len(self.created)}"
            self.titles[video_id] = title
            return video_id

    def upload_bytes(self, library_id, video_id, source, progress_callback, token):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.uploads.append(video_id)
        try:
            title = self.titles[video_id]
            if self.fail_counts.get(title, 0) > 0:
                self.fail_counts[title] -= 1
                raise TransferError("Upload failed with status 500")
            while not self.release.is_set():
                if token.wait(0.01):
                    return TransferOutcome.ABORTED
            if token.cancelled:
                return TransferOutcome.ABORTED
            progress_callback(5, 10)
            progress_callback(10, 10)
            return TransferOutcome.COMPLETED
        finally:
            with self._lock:
                self.active -= 1

    def get_embed_code(self, library_id: str, video_id: str) -> str:
        return f"<iframe {video_id}>"


def _scheduler(video_host: FakeVideoHost, **kwargs) -> UploadScheduler:
    catalog = LibraryCatalogService(video_host, InMemoryCredentialStore())
    kwargs.setdefault("retry_controller", RetryController(delay_s=0, sleep=Mock()))
    kwargs.setdefault("tick_s", 0.02)
    return UploadScheduler(video_host, catalog, ClassificationService(), **kwargs)


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _start_in_background(scheduler: UploadScheduler, **kwargs):
    result = {}

    def run() -> None:
        result["summary"] = scheduler.start_upload(**kwargs)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, result


def test_preview_groups_items_without_uploading() -> None:
    video_host = FakeVideoHost()
    scheduler = _scheduler(video_host)

    views = scheduler.enqueue_preview([_filename(1), "holiday.mp4"], "2025")

    groups = scheduler.groups()
    assert groups[0].needs_manual_selection
    assert [view.filename for view in groups[0].items] == ["holiday.mp4"]
    assert (groups[1].library, groups[1].collection) == (LIBRARY_NAME, "T1-2025")
    assert all(view.status == UploadStatus.PENDING for view in views)
    assert video_host.created == []


def test_library_lookup_failure_sends_items_to_manual_selection() -> None:
    video_host = FakeVideoHost()
    video_host.list_libraries = Mock(side_effect=RemoteLookupError("Auth failed", 401))
    scheduler = _scheduler(video_host)

    [view] = scheduler.enqueue_preview([_filename(1)], "2025")

    assert view.needs_manual_selection
    assert view.reason.startswith("Library lookup failed")


def test_concurrency_ceiling_and_token_invariant() -> None:
    video_host = FakeVideoHost(blocked=True)
    scheduler = _scheduler(video_host, max_concurrent=2)
    violations: list[str] = []

    def check(snapshot: QueueSnapshot) -> None:
        for group in snapshot.groups:
            for view in group.items:
                if view.has_cancellation_token != (view.status == UploadStatus.PROCESSING):
                    violations.append(view.item_id)

    scheduler.subscribe(check)
    scheduler.enqueue_preview([_filename(part) for part in range(1, 6)], "2025")
    thread, result = _start_in_background(scheduler)

    assert _wait_for(lambda: video_host.active == 2)
    time.sleep(0.1)
    assert scheduler.stats()["processing"] == 2
    video_host.release.set()
    thread.join(timeout=5)

    assert result["summary"].completed == 5
    assert video_host.max_active == 2
    assert violations == []
    assert scheduler.stats()["bytes_sent"] == 50


def test_serial_pass_follows_upload_order() -> None:
    video_host = FakeVideoHost()
    scheduler = _scheduler(video_host, max_concurrent=1)
    scheduler.enqueue_preview([_filename(1, "-Q1"), _filename(1)], "2025")

    scheduler.start_upload()

    assert video_host.created == [
        "M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}",
        "M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}-Q1",
    ]


def test_pause_all_then_resume_reuses_created_videos() -> None:
    video_host = FakeVideoHost(blocked=True)
    scheduler = _scheduler(video_host, max_concurrent=3)
    scheduler.enqueue_preview([_filename(part) for part in range(1, 4)], "2025")
    thread, result = _start_in_background(scheduler)
    assert _wait_for(lambda: video_host.active == 3)

    assert scheduler.pause_all() == 3
    thread.join(timeout=5)

    assert result["summary"].paused == 3
    assert scheduler.stats()["paused"] == 3
    assert not scheduler.has_active_uploads()

    video_host.release.set()
    assert scheduler.resume_all() == 3
    assert scheduler.wait_until_idle(timeout=5)

    assert scheduler.stats()["completed"] == 3
    assert len(video_host.created) == 3
    assert len(video_host.uploads) == 6


def test_pause_and_resume_single_item() -> None:
    video_host = FakeVideoHost(blocked=True)
    scheduler = _scheduler(video_host)
    [view] = scheduler.enqueue_preview([_filename(1)], "2025")
    thread, result = _start_in_background(scheduler)
    assert _wait_for(lambda: video_host.active == 1)

    assert scheduler.pause_item(view.item_id)
    thread.join(timeout=5)
    assert scheduler.get_item(view.item_id).status == UploadStatus.PAUSED
    assert result["summary"].paused == 1
    assert not scheduler.resume_item("unknown")

    video_host.release.set()
    assert scheduler.resume_item(view.item_id)
    assert scheduler.wait_until_idle(timeout=5)

    assert scheduler.get_item(view.item_id).status == UploadStatus.COMPLETED
    assert video_host.created == ["M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}"]


def test_cancel_in_flight_item_reports_manual_cleanup() -> None:
    video_host = FakeVideoHost(blocked=True)
    scheduler = _scheduler(video_host)
    [view] = scheduler.enqueue_preview([_filename(1)], "2025")
    thread, _ = _start_in_background(scheduler)
    assert _wait_for(lambda: video_host.active == 1)

    outcome = scheduler.cancel_item(view.item_id)
    thread.join(timeout=5)

    assert outcome.removed
    assert outcome.needs_manual_cleanup
    assert outcome.remote_video_id == "video-1"
    with pytest.raises(KeyError):
        scheduler.get_item(view.item_id)


def test_cancel_pending_item_needs_no_cleanup() -> None:
    scheduler = _scheduler(FakeVideoHost())
    [view] = scheduler.enqueue_preview([_filename(1)], "2025")

    outcome = scheduler.cancel_item(view.item_id)

    assert outcome.removed
    assert not outcome.needs_manual_cleanup
    assert scheduler.stats()["total"] == 0
    assert not scheduler.cancel_item(view.item_id).removed


def test_cancel_during_video_creation_reports_the_created_video() -> None:
    video_host = FakeVideoHost()
    video_host.create_gate.clear()
    scheduler = _scheduler(video_host)
    events = []
    scheduler.subscribe(lambda snapshot: snapshot.event and events.append(snapshot.event))
    [view] = scheduler.enqueue_preview([_filename(1)], "2025")
    thread, _ = _start_in_background(scheduler)
    assert _wait_for(lambda: video_host.creating == 1)

    outcome = scheduler.cancel_item(view.item_id)
    video_host.create_gate.set()
    thread.join(timeout=5)

    assert outcome.removed
    assert not outcome.needs_manual_cleanup
    cleanup = [
        event
        for event in events
        if event.kind == "upload_cancelled" and event.level == "warning"
    ]
    assert len(cleanup) == 1
    assert "video-1" in cleanup[0].message
    assert video_host.uploads == []


def test_pause_and_resume_during_video_creation_creates_one_video() -> None:
    video_host = FakeVideoHost()
    video_host.create_gate.clear()
    scheduler = _scheduler(video_host)
    [view] = scheduler.enqueue_preview([_filename(1)], "2025")
    thread, _ = _start_in_background(scheduler)
    assert _wait_for(lambda: video_host.creating == 1)

    assert scheduler.pause_item(view.item_id)
    assert scheduler.resume_item(view.item_id)
    assert _wait_for(
        lambda: scheduler.get_item(view.item_id).status == UploadStatus.PROCESSING
    )
    video_host.create_gate.set()
    thread.join(timeout=5)
    assert scheduler.wait_until_idle(timeout=5)

    assert scheduler.get_item(view.item_id).status == UploadStatus.COMPLETED
    assert video_host.created == ["M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}"]
    assert video_host.uploads == ["video-1"]


def test_existing_videos_are_skipped() -> None:
    video_host = FakeVideoHost()
    video_host.existing = {
        "M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}",
        "M2-T1-U1-L2-SCI-AR-P0078-Ahmed--{Part2}",
    }
    scheduler = _scheduler(video_host)
    scheduler.enqueue_preview([_filename(1), _filename(2)], "2025")

    summary = scheduler.start_upload()

    assert (summary.completed, summary.skipped, summary.failed) == (0, 2, 0)
    assert video_host.created == []
    assert video_host.uploads == []
    assert scheduler.stats()["bytes_sent"] == 0


def test_failed_item_succeeds_on_retry_without_recreating_video() -> None:
    video_host = FakeVideoHost()
    video_host.fail_counts["M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}"] = 1
    scheduler = _scheduler(video_host)
    [view] = scheduler.enqueue_preview([_filename(1)], "2025")

    summary = scheduler.start_upload()

    assert summary.failed == 1
    assert summary.retry == RetrySummary(attempted=1, succeeded=1, failed=0)
    assert scheduler.get_item(view.item_id).status == UploadStatus.COMPLETED
    assert len(video_host.created) == 1
    assert video_host.uploads == ["video-1", "video-1"]


def test_retries_exhausted_leave_item_in_error() -> None:
    video_host = FakeVideoHost()
    video_host.fail_counts["M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}"] = 10
    sleep = Mock()
    scheduler = _scheduler(
        video_host, retry_controller=RetryController(max_attempts=2, delay_s=0, sleep=sleep)
    )
    [view] = scheduler.enqueue_preview([_filename(1)], "2025")

    summary = scheduler.start_upload()

    assert summary.retry == RetrySummary(attempted=1, succeeded=0, failed=1)
    item = scheduler.get_item(view.item_id)
    assert item.status == UploadStatus.ERROR
    assert item.error_message.startswith("Failed after 2 retry attempts: ")
    assert sleep.call_count == 2


def test_exhausted_items_are_not_retried_by_later_passes() -> None:
    video_host = FakeVideoHost()
    video_host.fail_counts["M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}"] = 10
    scheduler = _scheduler(
        video_host, retry_controller=RetryController(max_attempts=2, delay_s=0, sleep=Mock())
    )
    [first] = scheduler.enqueue_preview([_filename(1)], "2025")
    scheduler.start_upload()
    uploads_after_first_pass = len(video_host.uploads)

    video_host.fail_counts["M2-T1-U1-L2-SCI-AR-P0078-Ahmed--{Part2}"] = 1
    scheduler.enqueue_preview([_filename(2)], "2025")
    second = scheduler.start_upload()

    assert second.retry == RetrySummary(attempted=1, succeeded=1, failed=0)
    assert len(video_host.uploads) == uploads_after_first_pass + 2
    assert scheduler.get_item(first.item_id).status == UploadStatus.ERROR
    assert scheduler.failed_item_ids() == []
    assert scheduler.retry_failed() == RetrySummary(attempted=0, succeeded=0, failed=0)

    scheduler.assign_target(first.item_id, LIBRARY_NAME, "Extras")
    assert scheduler.get_item(first.item_id).status == UploadStatus.PENDING


def test_auto_retry_can_be_disabled() -> None:
    video_host = FakeVideoHost()
    video_host.fail_counts["M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}"] = 1
    scheduler = _scheduler(video_host)
    scheduler.enqueue_preview([_filename(1)], "2025")

    summary = scheduler.start_upload(auto_retry=False)

    assert summary.failed == 1
    assert summary.retry is None
    assert scheduler.retry_failed() == RetrySummary(attempted=1, succeeded=1, failed=0)


def test_clear_queue_refused_while_pending() -> None:
    scheduler = _scheduler(FakeVideoHost())
    scheduler.enqueue_preview([_filename(1)], "2025")

    with pytest.raises(QueueBusyError):
        scheduler.clear_queue()

    scheduler.start_upload()
    scheduler.clear_queue()

    assert scheduler.groups() == []


def test_start_upload_while_running_is_refused() -> None:
    video_host = FakeVideoHost(blocked=True)
    scheduler = _scheduler(video_host)
    scheduler.enqueue_preview([_filename(1)], "2025")
    thread, _ = _start_in_background(scheduler)
    assert _wait_for(lambda: video_host.active == 1)

    with pytest.raises(QueueBusyError):
        scheduler.start_upload()

    video_host.release.set()
    thread.join(timeout=5)


def test_manual_item_uploads_after_assignment() -> None:
    video_host = FakeVideoHost()
    scheduler = _scheduler(video_host)
    [view] = scheduler.enqueue_preview(["holiday.mp4"], "2025")

    scheduler.assign_target(view.item_id, LIBRARY_NAME, "Extras")
    summary = scheduler.start_upload()

    assert summary.completed == 1
    assert video_host.created == ["holiday"]
    assert [collection.name for collection in video_host.collections["lib-1"]] == ["Extras"]
    assert not any(group.needs_manual_selection for group in scheduler.groups())


def test_year_change_replans_collections() -> None:
    video_host = FakeVideoHost()
    scheduler = _scheduler(video_host)
    scheduler.enqueue_preview([_filename(1)], "2025")

    scheduler.start_upload(selected_year="2026")

    assert [collection.name for collection in video_host.collections["lib-1"]] == ["T1-2026"]


def test_post_upload_hook_receives_title_and_ids() -> None:
    hook = Mock()
    scheduler = _scheduler(FakeVideoHost(), on_video_uploaded=hook)
    scheduler.enqueue_preview([_filename(1)], "2025")

    scheduler.start_upload()

    hook.assert_called_once_with("M2-T1-U1-L1-SCI-AR-P0078-Ahmed--{Part1}", "video-1", "lib-1")


def test_failing_hook_and_listener_do_not_break_the_pass() -> None:
    scheduler = _scheduler(FakeVideoHost(), on_video_uploaded=Mock(side_effect=RuntimeError))
    scheduler.subscribe(Mock(side_effect=RuntimeError("listener")))
    scheduler.enqueue_preview([_filename(1)], "2025")

    summary = scheduler.start_upload()

    assert summary.completed == 1


def test_stalled_transfer_times_out_as_error() -> None:
    video_host = FakeVideoHost(blocked=True)
    scheduler = _scheduler(video_host, idle_timeout_s=0.1)
    [view] = scheduler.enqueue_preview([_filename(1)], "2025")

    summary = scheduler.start_upload(auto_retry=False)

    assert summary.failed == 1
    assert scheduler.get_item(view.item_id).error_message == (
        "Transfer stalled: no progress for more than 0.1s"
    )


def test_unsubscribe_stops_snapshots() -> None:
    scheduler = _scheduler(FakeVideoHost())
    listener = Mock()
    unsubscribe = scheduler.subscribe(listener)

    scheduler.enqueue_preview([_filename(1)], "2025")
    unsubscribe()
    scheduler.enqueue_preview([_filename(2)], "2025")

    assert listener.call_count == 1


def test_invalid_concurrency_is_rejected() -> None:
    with pytest.raises(ValueError):
        _scheduler(FakeVideoHost(), max_concurrent=0)


def test_events_carry_kind_and_level() -> None:
    events = []
    scheduler = _scheduler(FakeVideoHost())
    scheduler.subscribe(lambda snapshot: snapshot.event and events.append(snapshot.event))
    scheduler.enqueue_preview([_filename(1), "holiday.mp4"], "2025")
    scheduler.assign_target(scheduler.groups()[0].items[0].item_id, LIBRARY_NAME, "Extras")

    scheduler.start_upload()

    kinds = [event.kind for event in events]
    assert kinds[:2] == ["library_matched", "manual_selection_needed"]
    assert events[1].level == "warning"
    assert kinds.count("upload_completed") == 2
    assert kinds[-1] == "pass_completed"


def test_sources_are_paths() -> None:
    scheduler = _scheduler(FakeVideoHost())

    [view] = scheduler.enqueue_manual([Path("/videos/a.mp4")], LIBRARY_NAME, "Extras")

    assert view.filename == "a.mp4"
    assert view.target_collection == "Extras"
