# src/alchemist/dataloader/config_loader.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from alchemist.errors import ConfigError
from alchemist.schemas.models import Config

logger = logging.getLogger(__name__)

_SUFFIXES = {".yaml", ".yml"}


def _deep_merge(base: dict[str, Any], extra: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """
    @brief
    Reads config.yaml into a validated Config.

    @details
    Every Config block has defaults, so an empty file (or no file at all via
    load_or_default) yields the default configuration. Unknown keys, wrong
    types and out-of-range thresholds are rejected with ConfigError.
    """

    def load(self, path: Path, overrides: Mapping[str, Any] | None = None) -> Config:
        """
        @brief
        Load configuration from YAML and apply optional overrides.

        @params
            path : Path
                config.yaml location (.yaml or .yml).
            overrides : Mapping[str, Any] | None
                Nested values that win over the file (e.g. from CLI flags).

        @returns
            Validated Config instance.

        @raises
            ConfigError
                Missing or unreadable file, bad YAML, or schema violation.
        """
        # (1) Parse the file
        data = self._read_yaml(path)

        # (2) Layer command-line overrides on top
        if overrides:
            data = _deep_merge(data, overrides)

        # (3) Validate
        return self._validate(data, source=str(path))

    def load_or_default(
        self, path: Path | None, overrides: Mapping[str, Any] | None = None
    ) -> Config:
        """Like load(), but a missing path means "use the defaults"."""
        if path is None:
            logger.info("No configuration file given; using defaults")
            return self._validate(dict(overrides or {}), source="<defaults>")
        return self.load(path, overrides)

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        if not isinstance(path, Path):
            raise ConfigError(
                message=f"Config path must be a pathlib.Path, not {type(path).__name__}",
                source="ConfigLoader._read_yaml",
                suggested_action="Wrap the location in pathlib.Path(...).",
            )
        if not path.is_file():
            raise ConfigError(
                message=f"Configuration file not found: {path}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check the --config path or omit it to run with defaults.",
            )
        if path.suffix.lower() not in _SUFFIXES:
            raise ConfigError(
                message=f"Unsupported configuration file type: {path.suffix or '<none>'}",
                source="ConfigLoader._read_yaml",
                suggested_action="Rename the file to .yaml or .yml.",
            )

        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(
                message=f"Malformed YAML in {path.name}: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Fix the indentation or quoting reported above.",
            ) from e
        except OSError as e:
            raise ConfigError(
                message=f"Cannot read {path}: {e}",
                source="ConfigLoader._read_yaml",
                suggested_action="Check file permissions.",
            ) from e

        # An empty document is an empty mapping: all defaults apply
        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise ConfigError(
                message=f"Top level of {path.name} must be a mapping, got {type(data).__name__}",
                source="ConfigLoader._read_yaml",
                suggested_action="Use key: value pairs at the top level.",
            )
        return dict(data)

    def _validate(self, data: dict[str, Any], source: str) -> Config:
        try:
            return Config.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError(
                message=f"Invalid configuration ({source}): {problems}",
                source="ConfigLoader._validate",
                suggested_action="Fix or remove the listed keys; unknown keys are not allowed.",
            ) from e


__all__ = ["ConfigLoader"]
