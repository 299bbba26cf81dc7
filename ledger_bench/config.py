from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigurationError

CONFIG_ENV_VAR = "LEDGER_BENCH_CONFIG"


def load_config(path: str | os.PathLike[str]) -> dict[str, Any]:
    """Read a JSON benchmark configuration file."""
    config_path = Path(path)
    try:
        with open(config_path, encoding="utf-8") as f:
            config = json.load(f)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"configuration file {config_path} does not exist") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"configuration file {config_path} is not valid JSON: {exc}") from exc

    if not isinstance(config, dict):
        raise ConfigurationError(f"configuration file {config_path} must contain a JSON object")
    return config


def resolve_config(config: Mapping[str, Any] | str | os.PathLike[str] | None) -> dict[str, Any]:
    if config is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            raise ConfigurationError(
                f"no configuration given and {CONFIG_ENV_VAR} is not set"
            )
        return load_config(env_path)
    if isinstance(config, Mapping):
        return dict(config)
    return load_config(config)


__all__ = ["CONFIG_ENV_VAR", "load_config", "resolve_config"]
