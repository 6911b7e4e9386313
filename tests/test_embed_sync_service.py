from unittest.mock import Mock

from lesson_uploader.domain.models import EmbedRecord, SheetUpdateResult, UploadedVideo
from lesson_uploader.services.embed_sync_service import EmbedSyncService

NOW = "2025-01-01T00:00:00+00:00"


def _video_host() -> Mock:
    video_host = Mock()
    video_host.get_embed_code.return_value = "<iframe v1>"
    return video_host


def test_uploaded_video_is_recorded_pushed_and_marked_synced() -> None:
    storage = Mock()
    sheet_service = Mock()
    sheet_service.update_embeds.return_value = SheetUpdateResult(
        updated_count=1, updated_names=["Lesson-One"]
    )
    service = EmbedSyncService(_video_host(), storage, sheet_service, now_iso=lambda: NOW)

    result = service.handle_video_uploaded("Lesson-One", "v1", "lib-1").result(timeout=5)
    service.shutdown()

    assert result.updated_count == 1
    storage.record_uploaded_video.assert_called_once_with(
        UploadedVideo("v1", "lib-1", "Lesson-One", "<iframe v1>", NOW)
    )
    sheet_service.update_embeds.assert_called_once_with([EmbedRecord("Lesson-One", "<iframe v1>")])
    storage.mark_videos_synced.assert_called_once_with(["v1"], NOW)


def test_missing_sheet_row_leaves_video_unsynced() -> None:
    storage = Mock()
    sheet_service = Mock()
    sheet_service.update_embeds.return_value = SheetUpdateResult(not_found_names=["Lesson-One"])
    service = EmbedSyncService(_video_host(), storage, sheet_service, now_iso=lambda: NOW)

    service.handle_video_uploaded("Lesson-One", "v1", "lib-1").result(timeout=5)

    storage.mark_videos_synced.assert_called_once_with([], NOW)


def test_sheet_failure_is_contained() -> None:
    storage = Mock()
    sheet_service = Mock()
    sheet_service.update_embeds.side_effect = RuntimeError("sheet down")
    service = EmbedSyncService(_video_host(), storage, sheet_service)

    assert service.handle_video_uploaded("Lesson-One", "v1", "lib-1").result(timeout=5) is None
    storage.record_uploaded_video.assert_called_once()


def test_without_sheet_only_records() -> None:
    storage = Mock()
    service = EmbedSyncService(_video_host(), storage)

    assert service.handle_video_uploaded("Lesson-One", "v1", "lib-1").result(timeout=5) is None
    storage.record_uploaded_video.assert_called_once()


def test_sync_pending_pushes_stored_embeds() -> None:
    storage = Mock()
    storage.list_unsynced_videos.return_value = [
        UploadedVideo("v1", "lib-1", "A", "E1", NOW),
        UploadedVideo("v2", "lib-1", "B", "E2", NOW),
    ]
    sheet_service = Mock()
    sheet_service.update_embeds.return_value = SheetUpdateResult(
        updated_count=1, updated_names=["A"], skipped_names=["B"]
    )
    service = EmbedSyncService(Mock(), storage, sheet_service, now_iso=lambda: NOW)

    result = service.sync_pending()

    assert result.updated_count == 1
    sheet_service.update_embeds.assert_called_once_with(
        [EmbedRecord("A", "E1"), EmbedRecord("B", "E2")]
    )
    storage.mark_videos_synced.assert_called_once_with(["v1", "v2"], NOW)


def test_sync_pending_without_sheet_is_a_no_op() -> None:
    storage = Mock()

    result = EmbedSyncService(Mock(), storage).sync_pending()

    assert result == SheetUpdateResult()
    storage.list_unsynced_videos.assert_not_called()
