from __future__ import annotations

import io
import json
import tarfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import pytest
from rich.console import Console

from starli.config import Config
from starli.errors import RemoteDownloadFailed, RemoteMetadataFetchFailed
from starli.paths import resolve_cache_paths
from starli.specs import SpecsSynchronizer


def make_archive(files: dict[str, str | bytes], *, mode: str = "w:gz") -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode=mode) as tf:
        for name, content in files.items():
            data = content.encode("utf-8") if isinstance(content, str) else content
            info = tarfile.TarInfo(name=name)
            info.size = len(data)
            info.mode = 0o644
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def descriptor_json(name: str, *, static_files: list[dict] | None = None, questions: list[dict] | None = None) -> str:
    return json.dumps({"name": name, "staticFiles": static_files or [], "questions": questions or []})


@dataclass
class FakeRemote:
    etag: str
    archive: bytes
    metadata_error: bool = False
    download_error: bool = False
    metadata_calls: int = 0
    download_calls: int = 0
    clients: int = 0


class FakeStorageClient:
    def __init__(self, remote: FakeRemote) -> None:
        self.remote = remote
        remote.clients += 1

    def __enter__(self) -> FakeStorageClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        pass

    def fetch_etag(self) -> str:
        self.remote.metadata_calls += 1
        if self.remote.metadata_error:
            raise RemoteMetadataFetchFailed("metadata unavailable")
        return self.remote.etag

    @contextmanager
    def open_download(self) -> Iterator[io.BytesIO]:
        self.remote.download_calls += 1
        if self.remote.download_error:
            raise RemoteDownloadFailed("download unavailable")
        yield io.BytesIO(self.remote.archive)


DEFAULT_FILES: dict[str, str | bytes] = {
    "templates/web/starli.json": descriptor_json(
        "Web",
        static_files=[{"name": "readme", "path": "README.md", "content": "# {{ project_name }}\n"}],
        questions=[{"name": "author", "message": "Author name", "default": "Ada"}],
    ),
    "templates/web/src/{{ project_name }}.py.tmpl": "AUTHOR = {{ author | tojson }}\n",
    "templates/web/static/logo.bin": b"\x89PNG\x00\xff",
    "templates/cli/starli.json": descriptor_json("CLI"),
}


@pytest.fixture()
def remote() -> FakeRemote:
    return FakeRemote(etag="abc123", archive=make_archive(DEFAULT_FILES))


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    return Config(cache_dir=tmp_path / "cache")


@pytest.fixture()
def console() -> Console:
    return Console(file=io.StringIO(), force_terminal=False, width=120)


@pytest.fixture()
def sync(config: Config, remote: FakeRemote, console: Console) -> SpecsSynchronizer:
    return SpecsSynchronizer(
        config,
        paths=resolve_cache_paths(config),
        client_factory=lambda _cfg: FakeStorageClient(remote),
        console=console,
    )


@pytest.fixture()
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ("STARLI_CACHE_DIR", "STARLI_BUCKET", "STARLI_OBJECT", "STARLI_TIMEOUT", "STARLI_STORAGE_API"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture()
def template_tree(tmp_path: Path) -> Path:
    """A specs dir laid out like an extracted bundle."""
    specs = tmp_path / "specs"
    for name, content in DEFAULT_FILES.items():
        target = specs / Path(name).relative_to("templates")
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
    return specs
