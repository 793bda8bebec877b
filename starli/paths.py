"""
paths.py

Responsibility: Compute the well-known local locations of the specs cache.

    <root>/              cache root (`~/.starli` unless configured)
    <root>/templates/    extracted specs, one directory per template
    <root>/specs.etag    ETag of the remote revision currently extracted
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from starli.config import Config
from starli.errors import HomeDirectoryUnavailable

CACHE_DIR_NAME = ".starli"
SPECS_DIR_NAME = "templates"
MARKER_FILE_NAME = "specs.etag"


@dataclass(frozen=True)
class CachePaths:
    root: Path
    specs_dir: Path
    marker_file: Path


def default_cache_root() -> Path:
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise HomeDirectoryUnavailable("Could not determine the user's home directory") from e
    return home / CACHE_DIR_NAME


def resolve_cache_paths(config: Config) -> CachePaths:
    root = config.cache_dir.expanduser() if config.cache_dir is not None else default_cache_root()
    return CachePaths(
        root=root,
        specs_dir=root / SPECS_DIR_NAME,
        marker_file=root / MARKER_FILE_NAME,
    )
