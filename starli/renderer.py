"""
renderer.py

Responsibility: Materialize a cached template into a project directory.

Rules:
- Walk template files in sorted order to ensure deterministic output.
- Skip the `starli.json` descriptor itself.
- Render every path segment with the context (`{{ project_name }}/src`).
- Files ending in `.tmpl` are rendered with Jinja2 and written without the suffix.
- All other files are copied byte-for-byte.
- Descriptor `staticFiles` are written last and win over asset files.

This module intentionally does NOT know about the cache, the network, or CLI parsing.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError

from starli.catalog import DESCRIPTOR_FILE_NAME, TemplateDescriptor
from starli.errors import RenderError

TEMPLATE_SUFFIX = ".tmpl"


@dataclass(frozen=True)
class RenderResult:
    rendered_files: int
    copied_files: int
    static_files: int


def _iter_template_files(template_dir: Path) -> list[Path]:
    """
    Return all files under template_dir, in deterministic lexicographic order
    (relative path ordering).
    """
    files: list[Path] = []
    for root, _dirs, filenames in os.walk(template_dir):
        root_path = Path(root)
        for name in filenames:
            files.append(root_path / name)
    files.sort(key=lambda p: str(p.relative_to(template_dir)).replace(os.sep, "/"))
    return files


def _make_env() -> Environment:
    return Environment(
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def _render_str(env: Environment, text: str, context: dict[str, Any], *, what: str) -> str:
    if "{{" not in text and "{%" not in text and "{#" not in text:
        return text
    try:
        return env.from_string(text).render(**context)
    except TemplateError as e:
        raise RenderError(f"Failed rendering {what}") from e


def _target_path(dst_dir: Path, rel: str, env: Environment, context: dict[str, Any]) -> Path:
    rendered = _render_str(env, rel, context, what=f"path: {rel}")
    parts = [p for p in PurePosixPath(rendered.replace("\\", "/")).parts if p not in ("", ".")]
    if not parts or PurePosixPath(rendered).is_absolute() or ".." in parts:
        raise RenderError(f"Template path escapes the project directory: {rel}")
    target = dst_dir.joinpath(*parts)
    if dst_dir not in target.resolve().parents:
        raise RenderError(f"Template path escapes the project directory: {rel}")
    return target


def render_template(
    *,
    descriptor: TemplateDescriptor,
    destination_dir: str | Path,
    context: dict[str, Any],
) -> RenderResult:
    """
    Render/copy the template described by `descriptor` into destination_dir.

    - Creates destination directories as needed.
    - Copies file permissions from template files.
    """
    tpl_dir = descriptor.directory.resolve()
    dst_dir = Path(destination_dir).resolve()

    if not tpl_dir.is_dir():
        raise RenderError(f"Template directory not found: {tpl_dir}")

    env = _make_env()
    rendered = 0
    copied = 0
    written = 0

    try:
        dst_dir.mkdir(parents=True, exist_ok=True)

        for src_path in _iter_template_files(tpl_dir):
            rel = src_path.relative_to(tpl_dir).as_posix()
            if rel == DESCRIPTOR_FILE_NAME:
                continue

            is_template = rel.endswith(TEMPLATE_SUFFIX)
            if is_template:
                rel = rel[: -len(TEMPLATE_SUFFIX)]
            dst_path = _target_path(dst_dir, rel, env, context)
            dst_path.parent.mkdir(parents=True, exist_ok=True)

            if not is_template:
                shutil.copy2(src_path, dst_path)
                copied += 1
                continue

            try:
                text = src_path.read_text(encoding="utf-8")
                out = env.from_string(text).render(**context)
            except (TemplateError, UnicodeDecodeError) as e:
                raise RenderError(f"Failed rendering template file: {rel}{TEMPLATE_SUFFIX}") from e
            # For rendered output, normalize newlines for stable cross-platform output.
            dst_path.write_text(out, encoding="utf-8", newline="\n")
            shutil.copystat(src_path, dst_path)
            rendered += 1

        for static in descriptor.static_files:
            dst_path = _target_path(dst_dir, static.path, env, context)
            content = _render_str(env, static.content, context, what=f"static file: {static.name}")
            dst_path.parent.mkdir(parents=True, exist_ok=True)
            dst_path.write_text(content, encoding="utf-8", newline="\n")
            written += 1
    except OSError as e:
        raise RenderError(f"Failed writing project files into {dst_dir}") from e

    return RenderResult(rendered_files=rendered, copied_files=copied, static_files=written)
