# src/alchemist/dataloader/rules_loader.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from alchemist.errors import RuleError
from alchemist.rules.models import RuleSet

logger = logging.getLogger(__name__)


class RulesLoader:
    """
    @brief
    Reads a saved rules document (YAML or JSON) into a RuleSet.

    @details
    The document holds `rules` (each tagged by `type`), `priorityWeights`,
    `priorityMethod` and `presetProfile`; camelCase and snake_case keys are
    both accepted. Unknown rule types or fields raise RuleError.
    """

    def load(self, path: Path) -> RuleSet:
        data = self._read(Path(path))
        try:
            ruleset = RuleSet.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise RuleError(
                f"Invalid rules document {path}: {problems}",
                source="RulesLoader.load",
                suggested_action="Check each rule's `type` and its fields.",
            ) from e

        logger.info(
            "Loaded %d rule(s) (%d active) from %s",
            len(ruleset.rules),
            sum(1 for r in ruleset.rules if r.is_active),
            path,
        )
        return ruleset

    def _read(self, path: Path) -> dict[str, Any]:
        if not path.is_file():
            raise RuleError(
                f"Rules file not found: {path}",
                source="RulesLoader._read",
                suggested_action="Check the --rules path.",
            )
        try:
            with path.open("r", encoding="utf-8") as f:
                if path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise RuleError(
                f"Malformed rules file {path.name}: {e}",
                source="RulesLoader._read",
            ) from e
        except OSError as e:
            raise RuleError(f"Cannot read {path}: {e}", source="RulesLoader._read") from e

        if data is None:
            return {}
        if isinstance(data, list):
            # a bare list of rules is accepted as shorthand
            return {"rules": data}
        if not isinstance(data, dict):
            raise RuleError(
                f"Top level of {path.name} must be a mapping or a list of rules",
                source="RulesLoader._read",
            )
        return data


__all__ = ["RulesLoader"]
