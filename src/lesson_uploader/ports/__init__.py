from .credentials_port import CredentialStore
from .spreadsheet_port import SpreadsheetPort
from .storage_port import StoragePort
from .video_host_port import ProgressCallback, VideoHostPort

__all__ = [
    "CredentialStore",
    "ProgressCallback",
    "SpreadsheetPort",
    "StoragePort",
    "VideoHostPort",
]
