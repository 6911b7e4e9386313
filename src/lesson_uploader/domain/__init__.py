from .catalog import Collection, Library, Video
from .filenames import ContentType, ParsedFilename, ParseFailure, parse_filename, upload_sort_key
from .library_match import LibraryMatch, resolve_library
from .collection_rules import CollectionResult, resolve_collection
from .models import QueueItem, UploadGroup, UploadStatus
from .projection import project_groups

__all__ = [
    "Collection",
    "CollectionResult",
    "ContentType",
    "Library",
    "LibraryMatch",
    "ParseFailure",
    "ParsedFilename",
    "QueueItem",
    "UploadGroup",
    "UploadStatus",
    "Video",
    "parse_filename",
    "project_groups",
    "resolve_collection",
    "resolve_library",
    "upload_sort_key",
]
