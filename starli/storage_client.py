"""
storage_client.py

Responsibility: Isolate all direct object-storage interaction.

This module must be the only place that:
- Constructs Cloud Storage JSON API endpoints
- Sends HTTP requests to the storage host
- Interprets storage responses / error payloads

Access is anonymous and read-only: the specs bundle lives in a public
bucket, so no credentials are ever attached. A client carries one overall
deadline; every request gets whatever time is left of it.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import IO, Any, Iterator
from urllib.parse import quote

import requests
import urllib3

from starli import __version__
from starli.errors import RemoteClientInitFailed, RemoteDownloadFailed, RemoteMetadataFetchFailed


class StorageClient:
    def __init__(
        self,
        bucket: str,
        object_name: str,
        *,
        api_base: str = "https://storage.googleapis.com",
        timeout: float = 50.0,
        session: requests.Session | None = None,
    ) -> None:
        if not bucket.strip() or not object_name.strip():
            raise RemoteClientInitFailed("Bucket and object name are required.")
        if not api_base.startswith(("http://", "https://")):
            raise RemoteClientInitFailed(f"Invalid storage API base URL: {api_base!r}")
        if timeout <= 0:
            raise RemoteClientInitFailed(f"Timeout must be positive, got {timeout!r}")
        self._bucket = bucket
        self._object = object_name
        self._api_base = api_base.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": f"starli/{__version__}"})
        self._deadline = time.monotonic() + timeout

    def __enter__(self) -> StorageClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    @property
    def object_url(self) -> str:
        return f"{self._api_base}/storage/v1/b/{quote(self._bucket, safe='')}/o/{quote(self._object, safe='')}"

    def _remaining(self) -> float | None:
        left = self._deadline - time.monotonic()
        return left if left > 0 else None

    def _get(self, *, params: dict[str, str] | None = None, stream: bool = False) -> requests.Response:
        timeout = self._remaining()
        if timeout is None:
            raise TimeoutError("Storage request deadline exceeded")
        r = self._session.get(self.object_url, params=params, stream=stream, timeout=timeout)
        if r.status_code >= 400:
            try:
                payload: Any = r.json().get("error", {})
            except Exception:
                payload = {"message": r.text}
            message = payload.get("message", payload) if isinstance(payload, dict) else payload
            r.close()
            raise requests.HTTPError(f"Storage API error {r.status_code} GET {self.object_url}: {message}", response=r)
        return r

    def fetch_etag(self) -> str:
        """
        Return the current ETag of the object (its revision token).
        """
        try:
            r = self._get()
            data = r.json()
        except (requests.RequestException, TimeoutError, ValueError) as e:
            raise RemoteMetadataFetchFailed(f"Failed to fetch metadata for gs://{self._bucket}/{self._object}") from e
        etag = data.get("etag") if isinstance(data, dict) else None
        if not isinstance(etag, str) or not etag:
            raise RemoteMetadataFetchFailed(f"Object metadata has no etag: gs://{self._bucket}/{self._object}")
        return etag

    @contextmanager
    def open_download(self) -> Iterator[IO[bytes]]:
        """
        Stream the object body. The yielded file object is only valid inside
        the `with` block.
        """
        try:
            r = self._get(params={"alt": "media"}, stream=True)
        except (requests.RequestException, TimeoutError) as e:
            raise RemoteDownloadFailed(f"Failed to download gs://{self._bucket}/{self._object}") from e
        try:
            r.raw.decode_content = True
            yield _DeadlineReader(r.raw, self)
        finally:
            r.close()


class _DeadlineReader:
    """
    File-like view of a streamed body that stops once the client deadline
    has passed. `requests` timeouts only bound the gap between bytes, so
    reads go through `read1` where the raw stream has it and return whatever
    has arrived instead of waiting for a full buffer.
    """

    def __init__(self, raw: IO[bytes], client: StorageClient) -> None:
        self._raw = raw
        self._client = client

    def read(self, size: int = -1) -> bytes:
        if self._client._remaining() is None:
            raise RemoteDownloadFailed(
                f"Download of gs://{self._client._bucket}/{self._client._object} exceeded its deadline"
            )
        try:
            read = getattr(self._raw, "read1", None) or self._raw.read
            return read(size) if size >= 0 else read()
        except (requests.RequestException, urllib3.exceptions.HTTPError, OSError) as e:
            raise RemoteDownloadFailed(f"Download of gs://{self._client._bucket}/{self._client._object} failed") from e

    def close(self) -> None:
        self._raw.close()
