from .catalog_service import LibraryCatalogService
from .classification_service import Classification, ClassificationService
from .embed_sync_service import EmbedSyncService
from .retry_controller import RetryController
from .sheet_embed_service import SheetEmbedService
from .upload_scheduler import UploadScheduler

__all__ = [
    "Classification",
    "ClassificationService",
    "EmbedSyncService",
    "LibraryCatalogService",
    "RetryController",
    "SheetEmbedService",
    "UploadScheduler",
]
