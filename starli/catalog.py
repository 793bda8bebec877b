"""
catalog.py

Responsibility: Load `starli.json` template descriptors from the specs cache.

Layout read by this module:

    <specs_dir>/<template-name>/starli.json
    <specs_dir>/<template-name>/...           asset files used by the renderer

Template directories are lowercase; lookups lower-case the requested name,
so `get("Next")` and `get("next")` return the same descriptor. Listing is
all-or-nothing: one malformed descriptor fails the whole listing.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from starli.config import Config
from starli.errors import MalformedDescriptor, TemplateNotFound
from starli.paths import resolve_cache_paths

DESCRIPTOR_FILE_NAME = "starli.json"


@dataclass(frozen=True)
class StaticFile:
    """A file written verbatim (after substitution) into the generated project."""

    name: str
    path: str
    content: str = ""


@dataclass(frozen=True)
class Question:
    """An interactive prompt; the answer is stored in the render context under `name`."""

    name: str
    message: str
    default: str = ""


@dataclass(frozen=True)
class TemplateDescriptor:
    name: str
    directory: Path
    static_files: tuple[StaticFile, ...] = field(default_factory=tuple)
    questions: tuple[Question, ...] = field(default_factory=tuple)


def _require_str(obj: dict[str, Any], key: str, where: str, *, required: bool = True) -> str:
    value = obj.get(key)
    if value is None and not required:
        return ""
    if not isinstance(value, str):
        raise MalformedDescriptor(f"{where}: `{key}` must be a string")
    return value


def _entries(data: dict[str, Any], key: str, where: str) -> list[dict[str, Any]]:
    raw = data.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise MalformedDescriptor(f"{where}: `{key}` must be a list")
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise MalformedDescriptor(f"{where}: `{key}[{i}]` must be an object")
    return raw


def parse_descriptor(path: str | Path) -> TemplateDescriptor:
    """
    Parse one `starli.json` file into a `TemplateDescriptor`.

    Expected keys:
    - name: str (required)
    - staticFiles: list of {name, path, content}
    - questions: list of {name, message, default}
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedDescriptor(f"Failed to read template descriptor: {p}") from e
    except json.JSONDecodeError as e:
        raise MalformedDescriptor(f"Template descriptor is not valid JSON: {p}") from e
    if not isinstance(data, dict):
        raise MalformedDescriptor(f"{p}: descriptor must be an object at the top level")

    name = _require_str(data, "name", str(p)).strip()
    if not name:
        raise MalformedDescriptor(f"{p}: `name` must not be empty")

    static_files = tuple(
        StaticFile(
            name=_require_str(entry, "name", f"{p} staticFiles[{i}]"),
            path=_require_str(entry, "path", f"{p} staticFiles[{i}]"),
            content=_require_str(entry, "content", f"{p} staticFiles[{i}]", required=False),
        )
        for i, entry in enumerate(_entries(data, "staticFiles", str(p)))
    )
    questions = tuple(
        Question(
            name=_require_str(entry, "name", f"{p} questions[{i}]"),
            message=_require_str(entry, "message", f"{p} questions[{i}]"),
            default=_require_str(entry, "default", f"{p} questions[{i}]", required=False),
        )
        for i, entry in enumerate(_entries(data, "questions", str(p)))
    )
    return TemplateDescriptor(name=name, directory=p.parent, static_files=static_files, questions=questions)


class TemplateCatalog:
    def __init__(self, specs_dir: str | Path) -> None:
        self._specs_dir = Path(specs_dir)

    @classmethod
    def from_config(cls, config: Config) -> TemplateCatalog:
        return cls(resolve_cache_paths(config).specs_dir)

    @property
    def specs_dir(self) -> Path:
        return self._specs_dir

    def _descriptor_paths(self) -> list[Path]:
        if not self._specs_dir.is_dir():
            return []
        return sorted(self._specs_dir.glob(f"*/{DESCRIPTOR_FILE_NAME}"))

    def list_templates(self) -> list[TemplateDescriptor]:
        return [parse_descriptor(p) for p in self._descriptor_paths()]

    def list_names(self) -> list[str]:
        return [t.name for t in self.list_templates()]

    def get(self, name: str) -> TemplateDescriptor:
        key = name.strip().lower()
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise TemplateNotFound(f"Template not found: {name!r}")
        path = self._specs_dir / key / DESCRIPTOR_FILE_NAME
        if not path.is_file():
            raise TemplateNotFound(f"Template not found: {name!r}")
        return parse_descriptor(path)
