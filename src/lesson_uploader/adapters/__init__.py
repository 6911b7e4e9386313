from .bunny_video_adapter import BunnyVideoAdapter
from .google_sheets_adapter import GoogleSheetsAdapter
from .keyring_credentials import KeyringCredentialStore
from .memory_credentials import InMemoryCredentialStore
from .sqlite_storage import SQLiteStorage

__all__ = [
    "BunnyVideoAdapter",
    "GoogleSheetsAdapter",
    "InMemoryCredentialStore",
    "KeyringCredentialStore",
    "SQLiteStorage",
]
