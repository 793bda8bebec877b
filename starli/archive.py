"""
archive.py

Responsibility: Extract the specs tar stream into a directory.

The stream is read once, front to back (`r|*`), so it can come straight
from an HTTP response. Members that would land outside the destination
are rejected rather than skipped.
"""

from __future__ import annotations

import os
import posixpath
import shutil
import tarfile
from pathlib import Path, PurePosixPath
from typing import IO

from starli.errors import ArchiveExtractFailed


def _safe_target(destination: Path, member_name: str) -> Path:
    rel = PurePosixPath(member_name)
    if rel.is_absolute() or ".." in rel.parts:
        raise ArchiveExtractFailed(f"Refusing to extract unsafe archive member: {member_name}")
    target = (destination / Path(*rel.parts)).resolve() if rel.parts else destination
    if target != destination and destination not in target.parents:
        raise ArchiveExtractFailed(f"Refusing to extract unsafe archive member: {member_name}")
    return target


def _check_link(destination: Path, member: tarfile.TarInfo) -> None:
    link = PurePosixPath(member.linkname)
    if link.is_absolute():
        raise ArchiveExtractFailed(f"Refusing to extract link with absolute target: {member.name}")
    if member.issym():
        # Relative symlinks resolve against the member's own directory.
        joined = posixpath.normpath(posixpath.join(posixpath.dirname(member.name), member.linkname))
        _safe_target(destination, joined)
    else:
        _safe_target(destination, member.linkname)


def extract_tar(stream: IO[bytes], destination: str | Path) -> int:
    """
    Extract a (possibly compressed) tar stream into `destination`.

    Returns the number of regular files written.
    """
    dest = Path(destination).resolve()
    files = 0
    try:
        dest.mkdir(parents=True, exist_ok=True)
        with tarfile.open(fileobj=stream, mode="r|*") as tf:
            for member in tf:
                target = _safe_target(dest, member.name)
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isfile():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    src = tf.extractfile(member)
                    if src is None:
                        continue
                    with src, open(target, "wb") as out:
                        shutil.copyfileobj(src, out)
                    os.chmod(target, (member.mode & 0o777) | 0o600)
                    files += 1
                elif member.issym() or member.islnk():
                    _check_link(dest, member)
                    target.parent.mkdir(parents=True, exist_ok=True)
                    if target.exists() or target.is_symlink():
                        target.unlink()
                    if member.issym():
                        os.symlink(member.linkname, target)
                    else:
                        os.link(_safe_target(dest, member.linkname), target)
                # Device files and FIFOs are not part of a template bundle.
    except ArchiveExtractFailed:
        raise
    except (tarfile.TarError, OSError) as e:
        raise ArchiveExtractFailed(f"Failed to extract archive into {dest}") from e
    return files
