from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised before any work starts when required settings are missing."""


class RemoteServiceError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteLookupError(RemoteServiceError):
    """Listing libraries, collections or videos failed, or a target is unknown."""


class TransferError(RemoteServiceError):
    """Creating a video entry or sending its bytes failed."""


class QueueBusyError(RuntimeError):
    """The queue cannot be changed while uploads are pending or running."""
