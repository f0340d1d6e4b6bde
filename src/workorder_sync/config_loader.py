"""Config loader utilities (split from config.py)."""

from __future__ import annotations

import contextlib
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import yaml

from .config_settings import ENV_PREFIX, Config
from .exceptions import ConfigurationError
from .utils.logging import get_logger

CONFIG_ENV_VAR = f"{ENV_PREFIX}CONFIG"

# Nested sections are passed to Config directly instead of through the environment
_NESTED_KEYS = {"retry"}


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from .env, environment and config.yaml.

    Lookup order for the YAML file: explicit ``config_path``, then
    ``$WORKORDER_SYNC_CONFIG``, then ``./config.yaml``. A missing file is not
    an error; defaults and environment variables still apply.
    """
    logger = get_logger(__name__)

    candidate_paths: list[Path] = []
    if config_path:
        candidate_paths.append(config_path.expanduser())
        logger.info(
            "config_loading", config_path=str(config_path), source="cli_argument"
        )
    else:
        env_path = os.getenv(CONFIG_ENV_VAR)
        if env_path:
            candidate_paths.append(Path(env_path).expanduser())
            logger.debug(
                "config_searching", source="environment_variable", path=env_path
            )
        candidate_paths.append(Path.cwd() / "config.yaml")

    resolved_config_path: Path | None = None
    for candidate in candidate_paths:
        if candidate.exists():
            resolved_config_path = candidate
            logger.info("config_file_found", config_path=str(resolved_config_path))
            break

    if not resolved_config_path:
        logger.debug(
            "config_file_not_found", searched_paths=[str(p) for p in candidate_paths]
        )

    yaml_data: dict[str, Any] = {}
    if resolved_config_path:
        try:
            with open(resolved_config_path, encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(
                "config_yaml_load_error",
                config_path=str(resolved_config_path),
                error=str(e),
                error_type=type(e).__name__,
            )
            msg = f"Failed to parse config file: {resolved_config_path}"
            suggestion = (
                "Check YAML syntax (indentation, colons, quotes). "
                f"Original error: {e}"
            )
            raise ConfigurationError(msg, suggestion=suggestion) from e

        if not isinstance(yaml_data, dict):
            msg = f"Config file must contain a mapping: {resolved_config_path}"
            raise ConfigurationError(
                msg, suggestion="Use 'key: value' pairs at the top level"
            )

    config_kwargs = {k: v for k, v in yaml_data.items() if k in _NESTED_KEYS}

    with _yaml_as_env(yaml_data):
        try:
            config = Config(**config_kwargs)
        except ConfigurationError:
            raise
        except ValueError as e:
            logger.error(
                "config_validation_error",
                error=str(e),
                error_type=type(e).__name__,
                config_path=str(resolved_config_path) if resolved_config_path else None,
            )
            msg = "Configuration validation failed"
            raise ConfigurationError(msg, suggestion=str(e)) from e

    logger.debug(
        "config_loaded",
        data_dir=str(config.data_dir),
        remote_facade=config.remote_facade or None,
        servicer_name=config.servicer_name or None,
    )
    return config


@contextlib.contextmanager
def _yaml_as_env(yaml_data: dict[str, Any]) -> Iterator[None]:
    """Temporarily expose scalar YAML values as prefixed environment variables.

    Variables already present in the environment win over the YAML file.
    """
    added: list[str] = []
    try:
        for key, value in yaml_data.items():
            if value is None or key in _NESTED_KEYS or isinstance(value, (list, dict)):
                continue
            env_key = f"{ENV_PREFIX}{str(key).upper()}"
            if env_key in os.environ:
                continue
            os.environ[env_key] = str(value)
            added.append(env_key)
        yield
    finally:
        for env_key in added:
            os.environ.pop(env_key, None)

