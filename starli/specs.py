"""
specs.py

Responsibility: keep the local specs cache in step with the remote bundle.

The cache holds exactly one entry: the extracted `templates/` tree plus the
ETag of the remote object it came from. Staleness is decided by ETag
equality alone.

Operations:
- `exists()`: both the marker and the specs directory are on disk
- `install()`: unconditional download + extract + marker write
- `refresh()`: the same, skipped when the remote ETag matches the marker
- `delete()`: remove the specs directory, then the marker
- `start_background_refresh()`: fire-and-forget `refresh()` on a daemon thread

Every step failure raises its own `StarliError` subclass and ends the call;
there is no retry. Archives are extracted into a staging directory and
swapped into place, so a failed download never leaves a half-written
`templates/` tree behind.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

from rich.console import Console

from starli.archive import extract_tar
from starli.config import Config
from starli.console import Spinner, make_console
from starli.errors import (
    ArchiveExtractFailed,
    CacheDeleteFailed,
    CacheDirectoryCreateFailed,
    CacheStatFailed,
    MarkerReadFailed,
    MarkerWriteFailed,
    RemoteClientInitFailed,
    RemoteDownloadFailed,
    RemoteMetadataFetchFailed,
    StarliError,
)
from starli.paths import SPECS_DIR_NAME, CachePaths, resolve_cache_paths
from starli.storage_client import StorageClient

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".staging-"
STALE_STAGING_SECONDS = 3600

_FAILURE_MESSAGES: dict[type[StarliError], str] = {
    CacheDirectoryCreateFailed: "Failed to create starli directory",
    RemoteClientInitFailed: "Failed to initialize a Cloud Storage client",
    RemoteDownloadFailed: "Failed to download Starli specs",
    ArchiveExtractFailed: "Failed to untar Starli specs",
    RemoteMetadataFetchFailed: "Failed to get Starli specs attributes",
    MarkerReadFailed: "Failed to read Starli specs etag",
    MarkerWriteFailed: "Failed to write Starli specs etag",
}

ClientFactory = Callable[[Config], StorageClient]


def default_client_factory(config: Config) -> StorageClient:
    return StorageClient(
        config.bucket,
        config.object_name,
        api_base=config.storage_api,
        timeout=config.timeout,
    )


class SpecsSynchronizer:
    def __init__(
        self,
        config: Config,
        *,
        paths: CachePaths | None = None,
        client_factory: ClientFactory | None = None,
        console: Console | None = None,
    ) -> None:
        self._config = config
        self._paths = paths or resolve_cache_paths(config)
        self._client_factory = client_factory or default_client_factory
        self._console = console or make_console()
        # Serializes install/refresh/delete between the foreground command
        # and the background refresh thread.
        self._lock = threading.Lock()

    @property
    def paths(self) -> CachePaths:
        return self._paths

    def exists(self) -> bool:
        """
        True iff both the ETag marker and the specs directory are present.
        """
        for path in (self._paths.marker_file, self._paths.specs_dir):
            try:
                path.stat()
            except FileNotFoundError:
                return False
            except OSError as e:
                raise CacheStatFailed(f"Failed to inspect specs cache: {path}") from e
        return True

    def install(self) -> None:
        spinner = Spinner(self._console, "Downloading Starli specs...")
        spinner.start()
        with self._lock, _reporting(spinner):
            self._ensure_root()
            with self._client_factory(self._config) as client:
                self._download(client)
                etag = client.fetch_etag()
                self._write_marker(etag)
        logger.debug("Installed specs at etag %s", etag)
        spinner.succeed("Specs downloaded")

    def refresh(self, verbose: bool = False) -> bool:
        """
        Update the cache if the remote ETag differs from the local marker.

        Returns True when a new revision was downloaded. `verbose` only
        controls console output.
        """
        spinner = Spinner(self._console, "Updating Starli specs...", enabled=verbose)
        spinner.start()
        with self._lock, _reporting(spinner):
            self._ensure_root()
            with self._client_factory(self._config) as client:
                etag = client.fetch_etag()
                if self._read_marker() == etag.encode("utf-8"):
                    updated = False
                else:
                    self._download(client)
                    self._write_marker(etag)
                    updated = True
        if updated:
            logger.debug("Updated specs to etag %s", etag)
            spinner.succeed("Specs updated")
        else:
            logger.debug("Specs already at etag %s", etag)
            spinner.succeed("Specs up to date")
        return updated

    def delete(self) -> None:
        """
        Remove the specs directory and then the marker.

        A failure in either step is raised as `CacheDeleteFailed`; whatever
        was already removed stays removed.
        """
        with self._lock:
            try:
                shutil.rmtree(self._paths.specs_dir)
            except FileNotFoundError:
                pass
            except OSError as e:
                self._console.print("[red]Failed to delete Starli specs[/red]")
                raise CacheDeleteFailed(f"Failed to delete specs directory: {self._paths.specs_dir}") from e
            try:
                self._paths.marker_file.unlink(missing_ok=True)
            except OSError as e:
                self._console.print("[red]Failed to delete Starli specs etag[/red]")
                raise CacheDeleteFailed(f"Failed to delete specs etag: {self._paths.marker_file}") from e
        self._console.print("[green]Specs deleted[/green]")

    def start_background_refresh(self) -> threading.Thread:
        """
        Run a quiet `refresh()` on a daemon thread and return immediately.

        Nobody joins the thread or reads its outcome; it may still be running
        when the process exits, which simply abandons the refresh.
        """
        thread = threading.Thread(target=self._refresh_quietly, name="starli-specs-refresh", daemon=True)
        thread.start()
        return thread

    def _refresh_quietly(self) -> None:
        try:
            self.refresh(verbose=False)
        except Exception:  # noqa: BLE001 - background refresh outcome is never surfaced
            logger.debug("Background specs refresh failed", exc_info=True)

    def _ensure_root(self) -> None:
        try:
            self._paths.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheDirectoryCreateFailed(f"Failed to create cache directory: {self._paths.root}") from e

    def _read_marker(self) -> bytes:
        try:
            return self._paths.marker_file.read_bytes()
        except OSError as e:
            raise MarkerReadFailed(f"Failed to read specs etag: {self._paths.marker_file}") from e

    def _write_marker(self, etag: str) -> None:
        marker = self._paths.marker_file
        tmp = marker.with_name(marker.name + ".tmp")
        try:
            tmp.write_bytes(etag.encode("utf-8"))
            os.replace(tmp, marker)
        except OSError as e:
            raise MarkerWriteFailed(f"Failed to write specs etag: {marker}") from e

    def _clear_stale_staging(self) -> None:
        cutoff = time.time() - STALE_STAGING_SECONDS
        for path in self._paths.root.glob(STAGING_PREFIX + "*"):
            try:
                if path.stat().st_mtime < cutoff:
                    shutil.rmtree(path)
            except OSError:
                logger.debug("Could not remove stale staging dir %s", path, exc_info=True)

    def _download(self, client: StorageClient) -> None:
        self._clear_stale_staging()
        try:
            staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=self._paths.root))
        except OSError as e:
            raise ArchiveExtractFailed(f"Failed to create staging directory in {self._paths.root}") from e
        try:
            extracted = staging / "archive"
            with client.open_download() as stream:
                count = extract_tar(stream, extracted)
            staged_specs = extracted / SPECS_DIR_NAME
            if not staged_specs.is_dir():
                raise ArchiveExtractFailed(f"Archive has no top-level `{SPECS_DIR_NAME}/` directory")
            specs_dir = self._paths.specs_dir
            try:
                if specs_dir.exists():
                    os.replace(specs_dir, staging / "previous")
                os.replace(staged_specs, specs_dir)
            except OSError as e:
                raise ArchiveExtractFailed(f"Failed to move extracted specs into {specs_dir}") from e
            logger.debug("Extracted %d files into %s", count, specs_dir)
        finally:
            shutil.rmtree(staging, ignore_errors=True)


@contextmanager
def _reporting(spinner: Spinner) -> Iterator[None]:
    try:
        yield
    except StarliError as e:
        spinner.fail(_FAILURE_MESSAGES.get(type(e), str(e)))
        raise
    finally:
        spinner.stop()
