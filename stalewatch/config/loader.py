"""Locate, read and validate stalewatch.yaml.

Search order: an explicit path, then ``$STALEWATCH_CONFIG``, then
``./stalewatch.yaml``, then ``~/.stalewatch/config.yaml``. The first file
with content wins; with none, defaults apply. String values may reference
environment variables as ``${VAR}`` or ``${VAR:-fallback}``.
"""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import StalewatchConfig

CONFIG_ENV_VAR = "STALEWATCH_CONFIG"
PROJECT_CONFIG = Path("stalewatch.yaml")
USER_CONFIG = Path(".stalewatch") / "config.yaml"

_ENV_REF = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def config_search_paths(cli_path: str | None = None) -> list[Path]:
    paths: list[Path] = []
    if cli_path:
        paths.append(Path(cli_path))
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        paths.append(Path(env_path))
    paths.append(PROJECT_CONFIG)
    paths.append(Path.home() / USER_CONFIG)
    return paths


def load_config(cli_path: str | None = None) -> StalewatchConfig:
    """Resolve and validate the configuration.

    An explicit ``cli_path`` that does not exist is an error rather than a
    silent fall-through to the next location.
    """
    if cli_path and not Path(cli_path).is_file():
        raise ValueError(f"Config file not found: {cli_path}")

    for path in config_search_paths(cli_path):
        if not path.is_file():
            continue
        raw = _read_yaml(path)
        if raw is None:
            continue
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid config in {path}: expected a mapping, got {type(raw).__name__}")
        try:
            return StalewatchConfig.model_validate(_expand_env_vars(raw))
        except ValidationError as e:
            raise ValueError(f"Invalid config in {path}: {e}") from e

    return StalewatchConfig()


def _read_yaml(path: Path) -> object:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} and ${VAR:-fallback} references in strings.

    An unset or empty variable takes the fallback, or an empty string without one.
    """
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1)) or m.group(2) or "", obj)
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `stalewatch config init`
DEFAULT_CONFIG_TEMPLATE = """\
# stalewatch.yaml

# Items file the directory is built from (list of records)
items_path: "data/items.yml"

# Staleness tracking
staleness:
  enabled: true
  threshold_months: 12         # strictly older than this many calendar months is stale
  database_path: "data/stale-items.db"
  backup_before_run: true      # copy the database before each detect run
  validate_before_run: true    # run the integrity audit before each detect run

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
