from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .cancellation import CancellationToken
from .collection_rules import CollectionResult
from .filenames import ParseFailure, ParsedFilename
from .library_match import LibraryMatch


class UploadStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    PAUSED = "paused"


TERMINAL_STATUSES = frozenset({UploadStatus.COMPLETED, UploadStatus.ERROR})


@dataclass
class QueueItem:
    """One file's upload journey. Mutated only by the scheduler."""

    item_id: str
    source: Path
    filename: str
    year: str
    status: UploadStatus = UploadStatus.PENDING
    progress_percent: int = 0
    bytes_sent: int = 0
    upload_speed_bps: float | None = None
    error_message: str | None = None
    needs_manual_selection: bool = False
    target_library: str = ""
    target_collection: str = ""
    collection_auto: bool = False
    parsed: ParsedFilename | None = None
    parse_failure: ParseFailure | None = None
    match: LibraryMatch | None = None
    collection: CollectionResult | None = None
    reason: str = ""
    remote_video_id: str | None = None
    cancellation_token: CancellationToken | None = None
    started_at: float | None = None
    last_activity_at: float | None = None
    skipped_existing: bool = False

    def view(self) -> QueueItemView:
        suggestions = ()
        if self.match is not None:
            suggestions = tuple(
                (candidate.library.name, candidate.score) for candidate in self.match.scored
            )
        return QueueItemView(
            item_id=self.item_id,
            filename=self.filename,
            status=self.status,
            progress_percent=self.progress_percent,
            bytes_sent=self.bytes_sent,
            upload_speed_bps=self.upload_speed_bps,
            error_message=self.error_message,
            needs_manual_selection=self.needs_manual_selection,
            target_library=self.target_library,
            target_collection=self.target_collection,
            reason=self.reason,
            has_cancellation_token=self.cancellation_token is not None,
            suggested_libraries=suggestions,
        )


@dataclass(frozen=True)
class QueueItemView:
    item_id: str
    filename: str
    status: UploadStatus
    progress_percent: int
    bytes_sent: int
    upload_speed_bps: float | None
    error_message: str | None
    needs_manual_selection: bool
    target_library: str
    target_collection: str
    reason: str
    has_cancellation_token: bool
    suggested_libraries: tuple[tuple[str, int], ...] = ()


@dataclass(frozen=True)
class UploadGroup:
    library: str
    collection: str
    items: tuple[QueueItemView, ...]
    needs_manual_selection: bool = False


@dataclass(frozen=True)
class UploadEvent:
    kind: str
    message: str
    level: str = "info"
    item_id: str | None = None
    filename: str | None = None


@dataclass(frozen=True)
class QueueSnapshot:
    groups: list[UploadGroup]
    event: UploadEvent | None = None


@dataclass(frozen=True)
class CancelResult:
    removed: bool
    needs_manual_cleanup: bool = False
    remote_video_id: str | None = None


@dataclass(frozen=True)
class PassSummary:
    completed: int
    skipped: int
    failed: int
    paused: int
    elapsed_s: float
    retry: RetrySummary | None = None


@dataclass(frozen=True)
class RetrySummary:
    attempted: int
    succeeded: int
    failed: int


@dataclass(frozen=True)
class EmbedRecord:
    name: str
    embed_code: str


@dataclass(frozen=True)
class UploadedVideo:
    video_id: str
    library_id: str
    title: str
    embed_code: str
    uploaded_at: str
    synced_at: str | None = None


@dataclass
class SheetUpdateResult:
    updated_count: int = 0
    not_found_names: list[str] = field(default_factory=list)
    skipped_names: list[str] = field(default_factory=list)
    updated_names: list[str] = field(default_factory=list)

    def merge(self, other: SheetUpdateResult) -> None:
        self.updated_count += other.updated_count
        self.not_found_names.extend(other.not_found_names)
        self.skipped_names.extend(other.skipped_names)
        self.updated_names.extend(other.updated_names)
