from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SpreadsheetPort(Protocol):
    def get_values(self, cell_range: str) -> list[list[str]]:
        """Return the value grid for an A1 range, rows may be ragged."""

    def batch_update(self, updates: list[tuple[str, str]]) -> None:
        """Write single-cell values given as (A1 cell, value) pairs."""
