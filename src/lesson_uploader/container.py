from __future__ import annotations

import logging
from typing import Any

from lesson_uploader import settings
from lesson_uploader.adapters.bunny_video_adapter import BunnyVideoAdapter
from lesson_uploader.adapters.google_sheets_adapter import GoogleSheetsAdapter
from lesson_uploader.adapters.keyring_credentials import KeyringCredentialStore
from lesson_uploader.adapters.memory_credentials import InMemoryCredentialStore
from lesson_uploader.adapters.sqlite_storage import SQLiteStorage
from lesson_uploader.domain.errors import ConfigurationError
from lesson_uploader.ports.credentials_port import CredentialStore
from lesson_uploader.services.catalog_service import LibraryCatalogService
from lesson_uploader.services.classification_service import ClassificationService
from lesson_uploader.services.embed_sync_service import EmbedSyncService
from lesson_uploader.services.retry_controller import RetryController
from lesson_uploader.services.sheet_embed_service import SheetEmbedService
from lesson_uploader.services.upload_scheduler import UploadScheduler

logger = logging.getLogger(__name__)


def build_credentials(backend: str) -> CredentialStore:
    if backend == "keyring":
        return KeyringCredentialStore()
    if backend != "memory":
        logger.warning("Unknown credential backend %r, keeping keys in memory", backend)
    return InMemoryCredentialStore()


def build_services(
    api_key: str | None = None,
    sqlite_path: str | None = None,
    max_concurrent: int | None = None,
) -> dict[str, Any]:
    api_key = api_key if api_key is not None else settings.BUNNY_API_KEY
    if not api_key:
        raise ConfigurationError("BUNNY_API_KEY is required to talk to the video host.")

    credentials = build_credentials(settings.CREDENTIAL_BACKEND)
    storage = SQLiteStorage(sqlite_path or settings.SQLITE_PATH)
    video_host = BunnyVideoAdapter(
        api_key=api_key,
        credentials=credentials,
        api_base_url=settings.BUNNY_API_BASE_URL,
        video_base_url=settings.BUNNY_VIDEO_BASE_URL,
        embed_base_url=settings.BUNNY_EMBED_BASE_URL,
        connect_timeout_s=settings.HTTP_CONNECT_TIMEOUT_S,
        idle_timeout_s=settings.UPLOAD_IDLE_TIMEOUT_S,
        progress_interval_bytes=settings.UPLOAD_PROGRESS_INTERVAL_BYTES,
    )

    sheet_service = None
    if settings.GOOGLE_SHEETS_ACCESS_TOKEN and settings.GOOGLE_SHEETS_SPREADSHEET_ID:
        spreadsheet = GoogleSheetsAdapter(
            access_token=settings.GOOGLE_SHEETS_ACCESS_TOKEN,
            spreadsheet_id=settings.GOOGLE_SHEETS_SPREADSHEET_ID,
            timeout_s=settings.HTTP_CONNECT_TIMEOUT_S,
        )
        sheet_service = SheetEmbedService(
            spreadsheet,
            sheet_name=settings.GOOGLE_SHEET_NAME,
            name_column=settings.SHEET_NAME_COLUMN,
            embed_column=settings.SHEET_EMBED_COLUMN,
            batch_size=settings.SHEET_BATCH_SIZE,
            max_retries=settings.SHEET_MAX_RETRIES,
            retry_delay_s=settings.SHEET_RETRY_DELAY_S,
        )
    else:
        logger.info("Google Sheets is not configured; embed codes are only stored locally")

    catalog = LibraryCatalogService(video_host, credentials, storage)
    classifier = ClassificationService(
        min_confidence=settings.AUTO_ASSIGN_MIN_CONFIDENCE,
        default_term=settings.DEFAULT_TERM,
    )
    embed_sync = EmbedSyncService(video_host, storage, sheet_service)
    scheduler = UploadScheduler(
        video_host,
        catalog,
        classifier,
        max_concurrent=max_concurrent or settings.UPLOAD_MAX_CONCURRENT,
        idle_timeout_s=settings.UPLOAD_IDLE_TIMEOUT_S,
        retry_controller=RetryController(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            delay_s=settings.RETRY_DELAY_S,
        ),
        on_video_uploaded=embed_sync.handle_video_uploaded,
    )
    return {
        "catalog_service": catalog,
        "classification_service": classifier,
        "embed_sync_service": embed_sync,
        "sheet_embed_service": sheet_service,
        "upload_scheduler": scheduler,
        "credentials": credentials,
        "storage": storage,
        "video_host": video_host,
    }
