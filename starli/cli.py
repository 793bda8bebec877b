"""
cli.py

Responsibility: CLI entrypoint for starli.

High-level flow for every command that reads templates:
1) Load config (`--config` or `~/.starli.yaml`, then `STARLI_*` env vars)
2) Make sure the specs cache exists: install it synchronously when missing,
   otherwise kick off a background refresh and carry on with the local copy
3) Run the command (`list`, `generate`)

`update` and `delete-cache` manage the cache themselves and skip step 2.

This module should orchestrate behavior but keep concerns isolated:
- Cache sync: `specs.py`
- Descriptors: `catalog.py`
- Prompts: `prompts.py`
- Rendering: `renderer.py`
"""

from __future__ import annotations

import argparse
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from starli import __version__
from starli.catalog import TemplateCatalog, TemplateDescriptor
from starli.config import Config, load_config
from starli.console import make_console
from starli.errors import CLIError, StarliError
from starli.prompts import ask_project_name, ask_questions, choose_template
from starli.renderer import render_template
from starli.specs import SpecsSynchronizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppContext:
    config: Config
    sync: SpecsSynchronizer
    catalog: TemplateCatalog
    console: Console


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _ensure_empty_dir(path: Path, *, overwrite: bool) -> None:
    path.mkdir(parents=True, exist_ok=True)
    if not overwrite:
        # If any children exist, refuse.
        if any(path.iterdir()):
            raise CLIError(f"Project directory is not empty: {path} (use --overwrite to allow)")


def _default_project_name(descriptor: TemplateDescriptor) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", descriptor.name.lower()).strip("-") or "project"
    return f"my-{slug}-app"


def prepare_specs(sync: SpecsSynchronizer) -> None:
    """
    Install the specs cache if it is missing; otherwise refresh it in the
    background and return without waiting.
    """
    if not sync.exists():
        sync.install()
        return
    sync.start_background_refresh()


def list_cmd(args: argparse.Namespace, app: AppContext) -> int:
    # Names go to plain stdout, one per line, so the listing stays pipeable;
    # progress and errors use the stderr console.
    for name in app.catalog.list_names():
        print(name)
    return 0


def generate_cmd(args: argparse.Namespace, app: AppContext) -> int:
    if args.template:
        descriptor = app.catalog.get(args.template)
    else:
        chosen = choose_template(app.catalog.list_names(), console=app.console)
        descriptor = app.catalog.get(chosen)

    project_name = args.name
    if not project_name:
        default_name = _default_project_name(descriptor)
        project_name = default_name if args.defaults else ask_project_name(default_name, console=app.console)

    answers = ask_questions(descriptor.questions, console=app.console, assume_defaults=bool(args.defaults))

    workdir = (Path(args.output) / project_name).resolve()
    _ensure_empty_dir(workdir, overwrite=bool(args.overwrite))

    context: dict[str, object] = {
        "project_name": project_name,
        "template": descriptor.name,
        **answers,
    }
    result = render_template(descriptor=descriptor, destination_dir=workdir, context=context)
    logger.debug("Render result: %s", result)

    app.console.print(f"[green]Created {escape(descriptor.name)} project in[/green] {escape(str(workdir))}")
    return 0


def update_cmd(args: argparse.Namespace, app: AppContext) -> int:
    if app.sync.exists():
        app.sync.refresh(verbose=True)
    else:
        app.sync.install()
    return 0


def delete_cache_cmd(args: argparse.Namespace, app: AppContext) -> int:
    app.sync.delete()
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="starli", description="Generate boilerplate code for your project via interactive prompts")
    p.add_argument("--config", default=None, help="Config file (default is $HOME/.starli.yaml)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command", required=True)

    g = sub.add_parser("generate", help="Generate a new project from a template")
    g.add_argument("template", nargs="?", default=None, help="Template name (prompted for when omitted)")
    g.add_argument("--name", default=None, help="Project name (prompted for when omitted)")
    g.add_argument("--output", default=".", help="Directory to create the project in (default: current directory)")
    g.add_argument("--defaults", action="store_true", help="Use default answers instead of prompting")
    g.add_argument("--overwrite", action="store_true", help="Allow a non-empty project directory")
    g.set_defaults(func=generate_cmd, needs_specs=True)

    ls = sub.add_parser("list", help="List available templates")
    ls.set_defaults(func=list_cmd, needs_specs=True)

    u = sub.add_parser("update", help="Update the local specs cache now")
    u.set_defaults(func=update_cmd, needs_specs=False)

    d = sub.add_parser("delete-cache", help="Delete the local specs cache")
    d.set_defaults(func=delete_cache_cmd, needs_specs=False)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(bool(args.verbose))
    console = make_console()

    try:
        config = load_config(args.config)
        sync = SpecsSynchronizer(config, console=console)
        app = AppContext(
            config=config,
            sync=sync,
            catalog=TemplateCatalog(sync.paths.specs_dir),
            console=console,
        )
        if args.needs_specs:
            prepare_specs(sync)
        return int(args.func(args, app))
    except StarliError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1
    except KeyboardInterrupt:
        console.print("[yellow]Aborted[/yellow]")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
