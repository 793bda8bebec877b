"""
starli package

This package implements the starli scaffolding CLI.

Key responsibilities are split across modules:
- `config.py`: load the explicit `Config` value (YAML file + environment)
- `paths.py`: resolve the cache root, specs directory and ETag marker file
- `storage_client.py`: isolated object-storage (GCS JSON API) interactions
- `archive.py`: safe streaming extraction of the specs tar archive
- `specs.py`: keep the local specs cache in sync with the remote bundle
- `catalog.py`: parse `starli.json` template descriptors from the cache
- `prompts.py`: interactive template selection and questions
- `renderer.py`: render a template into a new project directory
- `cli.py`: CLI entrypoint and orchestration (sync -> choose -> ask -> render)
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
