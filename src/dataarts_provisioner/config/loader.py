"""YAML configuration file loader."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML

from dataarts_provisioner.config.schema import Config, ProviderConfig

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised for configuration loading / validation errors."""


def _provider(raw: Any, config_dir: Path) -> ProviderConfig:
    """Build provider settings from the YAML ``provider`` block.

    Unset YAML keys fall back to ``DATAARTS_*`` environment variables, then
    to ``config_dir/.env``.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("provider: expected a mapping")
    unknown = sorted(set(raw) - set(ProviderConfig.model_fields))
    if unknown:
        raise ConfigError(f"Unknown provider field(s): {', '.join(unknown)}")

    env_file = config_dir / ".env"
    return ProviderConfig(
        _env_file=env_file if env_file.is_file() else None,
        **{k: v for k, v in raw.items() if v is not None},
    )


def load_config(path: Path | str) -> Config:
    """Load a YAML configuration file and return a ``Config`` object.

    Raises:
        ConfigError: On YAML parse errors, unknown fields, or validation failures.
    """
    path = Path(path)

    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")

    try:
        raw["provider"] = _provider(raw.get("provider"), path.parent)
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    config.config_dir = path.parent
    logger.info("Loaded config from %s (%d resources)", path, len(config.resources))
    return config
