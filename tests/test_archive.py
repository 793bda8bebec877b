from __future__ import annotations

import io
import tarfile
from pathlib import Path

import pytest
from conftest import make_archive

from starli.archive import extract_tar
from starli.errors import ArchiveExtractFailed


def _tar_with(*members: tarfile.TarInfo, data: bytes = b"payload") -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tf:
        for info in members:
            if info.isfile():
                info.size = len(data)
                tf.addfile(info, io.BytesIO(data))
            else:
                tf.addfile(info)
    return buf.getvalue()


def test_extracts_files_and_counts_them(tmp_path: Path) -> None:
    archive = make_archive({"templates/a/starli.json": "{}", "templates/a/x.txt": "x", "templates/b/y.txt": "y"})
    count = extract_tar(io.BytesIO(archive), tmp_path / "out")

    assert count == 3
    assert (tmp_path / "out" / "templates" / "a" / "x.txt").read_text(encoding="utf-8") == "x"
    assert (tmp_path / "out" / "templates" / "b" / "y.txt").read_text(encoding="utf-8") == "y"


def test_extracts_uncompressed_stream(tmp_path: Path) -> None:
    archive = make_archive({"templates/a/file.txt": "plain"}, mode="w")
    assert extract_tar(io.BytesIO(archive), tmp_path) == 1


@pytest.mark.parametrize("name", ["../evil.txt", "templates/../../evil.txt", "/etc/evil.txt"])
def test_rejects_members_outside_destination(tmp_path: Path, name: str) -> None:
    archive = _tar_with(tarfile.TarInfo(name=name))
    dest = tmp_path / "out"

    with pytest.raises(ArchiveExtractFailed):
        extract_tar(io.BytesIO(archive), dest)
    assert not (tmp_path / "evil.txt").exists()


def test_rejects_symlink_pointing_outside(tmp_path: Path) -> None:
    link = tarfile.TarInfo(name="templates/link")
    link.type = tarfile.SYMTYPE
    link.linkname = "../../outside"

    with pytest.raises(ArchiveExtractFailed):
        extract_tar(io.BytesIO(_tar_with(link)), tmp_path / "out")


def test_allows_symlink_inside_destination(tmp_path: Path) -> None:
    target = tarfile.TarInfo(name="templates/real.txt")
    link = tarfile.TarInfo(name="templates/alias.txt")
    link.type = tarfile.SYMTYPE
    link.linkname = "real.txt"

    extract_tar(io.BytesIO(_tar_with(target, link)), tmp_path)

    assert (tmp_path / "templates" / "alias.txt").read_bytes() == b"payload"


def test_corrupt_stream_raises(tmp_path: Path) -> None:
    with pytest.raises(ArchiveExtractFailed):
        extract_tar(io.BytesIO(b"\x00garbage" * 10), tmp_path)


def test_allows_symlink_to_sibling_directory(tmp_path: Path) -> None:
    target = tarfile.TarInfo(name="templates/b/file.txt")
    link = tarfile.TarInfo(name="templates/a/link.txt")
    link.type = tarfile.SYMTYPE
    link.linkname = "../b/file.txt"
    parent = tarfile.TarInfo(name="templates/a")
    parent.type = tarfile.DIRTYPE

    extract_tar(io.BytesIO(_tar_with(target, parent, link)), tmp_path)

    assert (tmp_path / "templates" / "a" / "link.txt").read_bytes() == b"payload"
