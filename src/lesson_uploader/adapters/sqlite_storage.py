from __future__ import annotations

import sqlite3

from lesson_uploader.domain.catalog import Library
from lesson_uploader.domain.models import UploadedVideo
from lesson_uploader.ports.storage_port import StoragePort


class SQLiteStorage(StoragePort):
    def __init__(self, sqlite_path: str) -> None:
        self._sqlite_path = sqlite_path
        self._ensure_schema()

    def save_libraries(self, libraries: list[Library], refreshed_at_iso: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM libraries")
                conn.executemany(
                    """
                    INSERT OR REPLACE INTO libraries(library_id, name, sort_index, refreshed_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    [
                        (library.library_id, library.name, index, refreshed_at_iso)
                        for index, library in enumerate(libraries)
                    ],
                )
        except sqlite3.Error as exc:
            raise RuntimeError("Failed to save libraries") from exc

    def list_libraries(self) -> list[Library]:
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    """
                    SELECT library_id, name
                    FROM libraries
                    ORDER BY sort_index ASC
                    """
                ).fetchall()
            return [Library(library_id=row[0], name=row[1]) for row in rows]
        except sqlite3.Error as exc:
            raise RuntimeError("Failed to fetch libraries") from exc

    def record_uploaded_video(self, video: UploadedVideo) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO uploaded_videos(
                        video_id, library_id, title, embed_code, uploaded_at, synced_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(video_id) DO UPDATE SET
                        library_id = excluded.library_id,
                        title = excluded.title,
                        embed_code = excluded.embed_code,
                        uploaded_at = excluded.uploaded_at
                    """,
                    (
                        video.video_id,
                        video.library_id,
                        video.title,
                        video.embed_code,
                        video.uploaded_at,
                        video.synced_at,
                    ),
                )
        except sqlite3.Error as exc:
            raise RuntimeError("Failed to record uploaded video") from exc

    def list_unsynced_videos(self) -> list[UploadedVideo]:
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    """
                    SELECT video_id, library_id, title, embed_code, uploaded_at, synced_at
                    FROM uploaded_videos
                    WHERE synced_at IS NULL
                    ORDER BY uploaded_at ASC, video_id ASC
                    """
                ).fetchall()
            return [
                UploadedVideo(
                    video_id=row[0],
                    library_id=row[1],
                    title=row[2],
                    embed_code=row[3],
                    uploaded_at=row[4],
                    synced_at=row[5],
                )
                for row in rows
            ]
        except sqlite3.Error as exc:
            raise RuntimeError("Failed to fetch unsynced videos") from exc

    def mark_videos_synced(self, video_ids: list[str], synced_at_iso: str) -> None:
        if not video_ids:
            return
        try:
            with self._connect() as conn:
                conn.executemany(
                    """
                    UPDATE uploaded_videos
                    SET synced_at = ?
                    WHERE video_id = ?
                    """,
                    [(synced_at_iso, video_id) for video_id in video_ids],
                )
        except sqlite3.Error as exc:
            raise RuntimeError("Failed to mark videos synced") from exc

    def _ensure_schema(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS libraries(
                        library_id TEXT PRIMARY KEY,
                        name TEXT,
                        sort_index INTEGER,
                        refreshed_at TEXT
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS uploaded_videos(
                        video_id TEXT PRIMARY KEY,
                        library_id TEXT,
                        title TEXT,
                        embed_code TEXT,
                        uploaded_at TEXT,
                        synced_at TEXT
                    )
                    """
                )
        except sqlite3.Error as exc:
            raise RuntimeError("Failed to initialize database schema") from exc

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._sqlite_path)
