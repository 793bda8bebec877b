"""
config.py

Responsibility: Load the starli configuration into an explicit, typed value.

Sources, lowest precedence first:
- built-in defaults (public specs bucket, 50 second deadline)
- a YAML file: `--config <file>` or `~/.starli.yaml` when present
- `STARLI_*` environment variables

The resulting `Config` is passed to the synchronizer and catalog; nothing
in the package reads configuration from module-level state.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from starli.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "starli-cli.appspot.com"
DEFAULT_OBJECT = "specs.tar"
DEFAULT_TIMEOUT = 50.0
DEFAULT_STORAGE_API = "https://storage.googleapis.com"
HOME_CONFIG_NAME = ".starli.yaml"

# config key -> environment variable
_ENV_VARS = {
    "cache_dir": "STARLI_CACHE_DIR",
    "bucket": "STARLI_BUCKET",
    "object_name": "STARLI_OBJECT",
    "timeout": "STARLI_TIMEOUT",
    "storage_api": "STARLI_STORAGE_API",
}

_KEY_ALIASES = {
    "object": "object_name",
}


@dataclass(frozen=True)
class Config:
    """Settings for the specs cache and the remote bundle it mirrors."""

    cache_dir: Path | None = None
    bucket: str = DEFAULT_BUCKET
    object_name: str = DEFAULT_OBJECT
    timeout: float = DEFAULT_TIMEOUT
    storage_api: str = DEFAULT_STORAGE_API
    source: Path | None = None


def _normalize_key(key: Any) -> str:
    k = str(key).strip().replace("-", "_").lower()
    return _KEY_ALIASES.get(k, k)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file is not valid YAML: {path}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping/object at the top level: {path}")
    return {_normalize_key(k): v for k, v in data.items()}


def _home_config_path() -> Path | None:
    try:
        return Path.home() / HOME_CONFIG_NAME
    except (RuntimeError, KeyError):
        # No resolvable home: behave as if the home config does not exist.
        return None


def _parse_timeout(raw: Any) -> float:
    if isinstance(raw, bool):
        raise ConfigError(f"`timeout` must be a positive number of seconds, got {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"`timeout` must be a positive number of seconds, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"`timeout` must be a positive number of seconds, got {raw!r}")
    return value


def _parse_str(key: str, raw: Any) -> str:
    if not isinstance(raw, (str, int, float)) or isinstance(raw, bool):
        raise ConfigError(f"`{key}` must be a string when provided.")
    value = str(raw).strip()
    if not value:
        raise ConfigError(f"`{key}` must not be empty.")
    return value


def _apply(config: Config, values: Mapping[str, Any]) -> Config:
    changes: dict[str, Any] = {}
    for key, raw in values.items():
        if raw is None:
            continue
        if key == "cache_dir":
            changes["cache_dir"] = Path(_parse_str(key, raw)).expanduser()
        elif key == "timeout":
            changes["timeout"] = _parse_timeout(raw)
        elif key in ("bucket", "object_name", "storage_api"):
            changes[key] = _parse_str(key, raw)
        else:
            logger.debug("Ignoring unknown config key %r", key)
    return replace(config, **changes)


def load_config(
    config_file: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Build a `Config` from defaults, an optional YAML file and the environment.

    An explicit `config_file` must exist. Without one, `~/.starli.yaml` is
    used only if present.
    """
    env = os.environ if environ is None else environ
    config = Config()

    path: Path | None
    if config_file is not None:
        path = Path(config_file).expanduser()
        if not path.is_file():
            raise ConfigError(f"Config file does not exist: {path}")
    else:
        path = _home_config_path()
        if path is not None and not path.is_file():
            path = None

    if path is not None:
        config = _apply(config, _read_yaml(path))
        config = replace(config, source=path)
        logger.info("Using config file: %s", path)

    env_values = {key: env[var] for key, var in _ENV_VARS.items() if env.get(var)}
    return _apply(config, env_values)
