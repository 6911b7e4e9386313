from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from lesson_uploader.domain.embeds import column_index, plan_embed_updates
from lesson_uploader.domain.errors import RemoteServiceError
from lesson_uploader.domain.models import EmbedRecord, SheetUpdateResult
from lesson_uploader.ports.spreadsheet_port import SpreadsheetPort

logger = logging.getLogger(__name__)


class SheetEmbedService:
    def __init__(
        self,
        spreadsheet: SpreadsheetPort,
        sheet_name: str = "Videos",
        name_column: str = "N",
        embed_column: str = "W",
        batch_size: int = 50,
        max_retries: int = 3,
        retry_delay_s: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        offset = column_index(embed_column) - column_index(name_column)
        if offset <= 0:
            raise ValueError("The embed column must come after the name column.")
        self._spreadsheet = spreadsheet
        self._sheet_name = f"'{sheet_name}'" if " " in sheet_name else sheet_name
        self._name_column = name_column.strip().upper()
        self._embed_column = embed_column.strip().upper()
        self._embed_offset = offset
        self._batch_size = max(1, batch_size)
        self._max_retries = max(0, max_retries)
        self._retry_delay_s = retry_delay_s
        self._sleep = sleep

    def update_embeds(self, videos: list[EmbedRecord]) -> SheetUpdateResult:
        """
        Write embed codes next to matching video names, never overwriting a cell.

        Names match case-insensitively with the file extension removed. The sheet is
        re-read for every batch, so a name repeated across batches finds its row
        already filled and is reported as skipped.
        """
        result = SheetUpdateResult()
        if not videos:
            return result
        batches = [
            videos[start : start + self._batch_size]
            for start in range(0, len(videos), self._batch_size)
        ]
        for number, batch in enumerate(batches, start=1):
            batch_result = self._with_retries(
                lambda batch=batch: self._update_batch(batch),
                context=f"batch {number}/{len(batches)}",
            )
            result.merge(batch_result)
        logger.info(summary_message(result, len(videos)))
        return result

    def handle_update_request(self, payload: Any) -> dict[str, Any]:
        """Serve an ``{"videos": [{"name", "embed_code"}]}`` request as a JSON-ready dict."""
        videos = _parse_videos(payload)
        try:
            result = self.update_embeds(videos)
        except RemoteServiceError as exc:
            logger.error("Sheet update failed: %s", exc)
            return {
                "success": False,
                "message": f"Failed to update sheet data: {exc}",
                "updated": [],
                "not_found": [],
                "skipped": [],
                "stats": {"updated": 0, "not_found": 0, "skipped": 0},
            }
        return {
            "success": True,
            "message": summary_message(result, len(videos)),
            "updated": list(result.updated_names),
            "not_found": list(result.not_found_names),
            "skipped": list(result.skipped_names),
            "stats": {
                "updated": result.updated_count,
                "not_found": len(result.not_found_names),
                "skipped": len(result.skipped_names),
            },
        }

    def _update_batch(self, batch: list[EmbedRecord]) -> SheetUpdateResult:
        rows = self._spreadsheet.get_values(
            f"{self._sheet_name}!{self._name_column}:{self._embed_column}"
        )
        plan = plan_embed_updates(rows, batch, self._embed_offset)
        if plan.updates:
            self._spreadsheet.batch_update(
                [
                    (
                        f"{self._sheet_name}!{self._embed_column}{update.row_number}",
                        update.embed_code,
                    )
                    for update in plan.updates
                ]
            )
        return SheetUpdateResult(
            updated_count=len(plan.updates),
            not_found_names=list(plan.not_found),
            skipped_names=list(plan.skipped),
            updated_names=[update.name for update in plan.updates],
        )

    def _with_retries(
        self, operation: Callable[[], SheetUpdateResult], context: str
    ) -> SheetUpdateResult:
        attempt = 0
        while True:
            try:
                return operation()
            except RemoteServiceError as exc:
                if attempt >= self._max_retries:
                    logger.error("Sheet update %s failed: %s", context, exc)
                    raise
                attempt += 1
                logger.warning(
                    "Sheet update %s failed (%s), retrying %s/%s",
                    context,
                    exc,
                    attempt,
                    self._max_retries,
                )
                self._sleep(self._retry_delay_s)


def summary_message(result: SheetUpdateResult, total: int) -> str:
    done = result.updated_count + len(result.not_found_names) + len(result.skipped_names)
    progress = round(done * 100 / total) if total else 100
    parts = []
    if result.updated_count:
        parts.append(f"{result.updated_count} updated")
    if result.not_found_names:
        parts.append(f"{len(result.not_found_names)} not found")
    if result.skipped_names:
        parts.append(f"{len(result.skipped_names)} skipped")
    return f"Update complete ({progress}%): {' | '.join(parts) or 'nothing to do'}"


def _parse_videos(payload: Any) -> list[EmbedRecord]:
    if not isinstance(payload, dict):
        raise ValueError("Request body must be an object.")
    videos = payload.get("videos")
    if not isinstance(videos, list) or not videos:
        raise ValueError("No videos provided")
    records: list[EmbedRecord] = []
    for index, entry in enumerate(videos):
        if not isinstance(entry, dict):
            raise ValueError(f"Video #{index + 1} must be an object.")
        name = entry.get("name")
        embed_code = entry.get("embed_code")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Video #{index + 1} is missing a name.")
        if not isinstance(embed_code, str) or not embed_code.strip():
            raise ValueError(f"Video #{index + 1} is missing an embed_code.")
        records.append(EmbedRecord(name=name, embed_code=embed_code))
    return records
