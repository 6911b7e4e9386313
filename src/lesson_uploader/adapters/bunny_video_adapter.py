from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

import requests

from lesson_uploader.domain.cancellation import CancellationToken, TransferOutcome
from lesson_uploader.domain.catalog import Collection, Library, Video
from lesson_uploader.domain.embeds import DEFAULT_EMBED_BASE_URL, build_embed_code
from lesson_uploader.domain.errors import RemoteLookupError, RemoteServiceError, TransferError
from lesson_uploader.ports.credentials_port import CredentialStore
from lesson_uploader.ports.video_host_port import ProgressCallback, VideoHostPort

logger = logging.getLogger(__name__)

_PAGE_SIZE = 100


class _TransferAborted(Exception):
    pass


class _ProgressReader:
    """Readable body for requests that reports progress and stops on cancellation."""

    def __init__(
        self,
        handle: BinaryIO,
        total: int,
        token: CancellationToken,
        progress_callback: ProgressCallback,
        interval_bytes: int,
    ) -> None:
        self._handle = handle
        self._total = total
        self._token = token
        self._progress_callback = progress_callback
        self._interval_bytes = max(1, interval_bytes)
        self._sent = 0
        self._reported = 0

    def __len__(self) -> int:
        return self._total

    @property
    def sent(self) -> int:
        return self._sent

    def read(self, size: int = -1) -> bytes:
        if self._token.cancelled:
            raise _TransferAborted()
        chunk = self._handle.read(size)
        if chunk:
            self._sent += len(chunk)
            if self._sent - self._reported >= self._interval_bytes or self._sent >= self._total:
                self._reported = self._sent
                self._progress_callback(self._sent, self._total)
        return chunk


class BunnyVideoAdapter(VideoHostPort):
    def __init__(
        self,
        api_key: str,
        credentials: CredentialStore,
        api_base_url: str = "https://api.bunny.net",
        video_base_url: str = "https://video.bunnycdn.com",
        embed_base_url: str = DEFAULT_EMBED_BASE_URL,
        connect_timeout_s: float = 20.0,
        idle_timeout_s: float = 120.0,
        progress_interval_bytes: int = 1024 * 1024,
    ) -> None:
        self._api_key = api_key
        self._credentials = credentials
        self._api_base_url = api_base_url.rstrip("/")
        self._video_base_url = video_base_url.rstrip("/")
        self._embed_base_url = embed_base_url
        self._connect_timeout_s = connect_timeout_s
        self._idle_timeout_s = idle_timeout_s
        self._progress_interval_bytes = progress_interval_bytes

    def list_libraries(self) -> list[Library]:
        libraries: list[Library] = []
        page = 1
        while True:
            payload = self._request_json(
                "GET",
                f"{self._api_base_url}/videolibrary",
                context="list libraries",
                error_cls=RemoteLookupError,
                access_key=self._api_key,
                params={"page": page, "perPage": _PAGE_SIZE},
            )
            for item in payload.get("Items") or []:
                libraries.append(
                    Library(
                        library_id=str(item.get("Id", "")),
                        name=item.get("Name") or "Unnamed Library",
                        api_key=item.get("ApiKey") or "",
                    )
                )
            if not payload.get("HasMoreItems"):
                break
            page += 1
        return libraries

    def list_collections(self, library_id: str) -> list[Collection]:
        collections: list[Collection] = []
        for item in self._paged_items(
            f"{self._video_base_url}/library/{library_id}/collections",
            library_id,
            context="list collections",
            params={"orderBy": "date"},
        ):
            collections.append(
                Collection(
                    collection_id=str(item.get("guid") or item.get("Guid") or ""),
                    name=item.get("name") or item.get("Name") or "",
                )
            )
        return collections

    def create_collection(self, library_id: str, name: str) -> Collection:
        payload = self._request_json(
            "POST",
            f"{self._video_base_url}/library/{library_id}/collections",
            context="create collection",
            error_cls=RemoteLookupError,
            access_key=self._library_key(library_id),
            json={"name": name},
        )
        collection_id = payload.get("guid") or payload.get("Guid")
        if not collection_id:
            raise RemoteLookupError(f"Collection creation returned no id for {name}.")
        return Collection(collection_id=str(collection_id), name=payload.get("name") or name)

    def list_videos(self, library_id: str, collection_id: str | None = None) -> list[Video]:
        params = {"collection": collection_id} if collection_id else {}
        return [
            Video(video_id=str(item.get("guid", "")), title=item.get("title", ""))
            for item in self._paged_items(
                f"{self._video_base_url}/library/{library_id}/videos",
                library_id,
                context="list videos",
                params=params,
            )
        ]

    def create_video(self, library_id: str, title: str, collection_id: str | None) -> str:
        body = {"title": title}
        if collection_id:
            body["collectionId"] = collection_id
        payload = self._request_json(
            "POST",
            f"{self._video_base_url}/library/{library_id}/videos",
            context="create video",
            error_cls=TransferError,
            access_key=self._library_key(library_id),
            json=body,
        )
        video_id = payload.get("guid")
        if not video_id:
            raise TransferError(f"Failed to create video entry for {title}.")
        return str(video_id)

    def upload_bytes(
        self,
        library_id: str,
        video_id: str,
        source: Path,
        progress_callback: ProgressCallback,
        token: CancellationToken,
    ) -> TransferOutcome:
        if token.cancelled:
            return TransferOutcome.ABORTED
        total = source.stat().st_size
        with source.open("rb") as handle:
            reader = _ProgressReader(
                handle, total, token, progress_callback, self._progress_interval_bytes
            )
            try:
                response = requests.put(
                    f"{self._video_base_url}/library/{library_id}/videos/{video_id}",
                    headers={
                        "AccessKey": self._library_key(library_id),
                        "Accept": "application/json",
                        "Content-Type": "application/octet-stream",
                    },
                    data=reader,
                    timeout=(self._connect_timeout_s, self._idle_timeout_s),
                )
            except _TransferAborted:
                logger.info(
                    "Transfer of video %s aborted after %s bytes (%s)",
                    video_id,
                    reader.sent,
                    token.reason.value if token.reason else "unknown",
                )
                return TransferOutcome.ABORTED
            except requests.Timeout as exc:
                raise TransferError(
                    f"Upload stalled for more than {self._idle_timeout_s:g}s."
                ) from exc
            except requests.RequestException as exc:
                raise TransferError(f"Upload failed: {exc}") from exc
        if token.cancelled:
            return TransferOutcome.ABORTED
        self._raise_for_status(response, context="upload video bytes", error_cls=TransferError)
        return TransferOutcome.COMPLETED

    def get_embed_code(self, library_id: str, video_id: str) -> str:
        return build_embed_code(library_id, video_id, self._embed_base_url)

    def _paged_items(
        self, url: str, library_id: str, context: str, params: dict
    ) -> list[dict]:
        items: list[dict] = []
        page = 1
        while True:
            payload = self._request_json(
                "GET",
                url,
                context=context,
                error_cls=RemoteLookupError,
                access_key=self._library_key(library_id),
                params={**params, "page": page, "itemsPerPage": _PAGE_SIZE},
            )
            if isinstance(payload, list):
                items.extend(payload)
                break
            page_items = payload.get("items") or []
            items.extend(page_items)
            total = int(payload.get("totalItems") or 0)
            if not page_items or len(items) >= total:
                break
            page += 1
        return items

    def _library_key(self, library_id: str) -> str:
        return self._credentials.get(library_id) or self._api_key

    def _request_json(
        self,
        method: str,
        url: str,
        context: str,
        error_cls: type[RemoteServiceError],
        access_key: str,
        **kwargs,
    ):
        try:
            response = requests.request(
                method,
                url,
                headers={
                    "AccessKey": access_key,
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                timeout=(self._connect_timeout_s, self._idle_timeout_s),
                **kwargs,
            )
        except requests.RequestException as exc:
            logger.warning("Request to %s failed: %s", url, exc)
            raise error_cls(f"Network error while attempting to {context}: {exc}") from exc
        self._raise_for_status(response, context=context, error_cls=error_cls)
        try:
            return response.json()
        except ValueError as exc:
            raise error_cls(f"Invalid JSON while attempting to {context}.") from exc

    @staticmethod
    def _raise_for_status(
        response: requests.Response, context: str, error_cls: type[RemoteServiceError]
    ) -> None:
        status = response.status_code
        if status in (401, 403):
            raise error_cls(f"Auth failed while attempting to {context}.", status)
        if status == 404:
            raise error_cls(
                f"Resource not found or no access while attempting to {context}.", status
            )
        if status >= 400:
            logger.warning("Video host returned %s while attempting to %s", status, context)
            raise error_cls(f"Video host error {status} while attempting to {context}.", status)
