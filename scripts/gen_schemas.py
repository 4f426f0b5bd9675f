# scripts/gen_schemas.py
"""
Generate JSON Schemas for the Alchemist data contracts.

Exports one schema file per model:
    - client / worker / task: raw entity row schemas
    - validation_summary: the report returned by validate_all()
    - ruleset: the rules document read by scripts/run.py --rules
    - config: runtime configuration

Output directory: schemas/
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from pydantic import BaseModel

from alchemist.rules.models import RuleSet
from alchemist.schemas.models import (
    ClientRecord,
    Config,
    TaskRecord,
    ValidationSummary,
    WorkerRecord,
)

MODELS: dict[str, type[BaseModel]] = {
    "client": ClientRecord,
    "worker": WorkerRecord,
    "task": TaskRecord,
    "validation_summary": ValidationSummary,
    "ruleset": RuleSet,
    "config": Config,
}


def export_schema(model_cls: type[BaseModel], name: str, out_dir: Path) -> Path:
    """
    @brief
    Writes "<name>.schema.json" for one pydantic model.

    @details
    Schemas use the wire (alias) field names, e.g. rowIndex and ruleType.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    schema_path = (out_dir / f"{name}.schema.json").resolve()
    schema = model_cls.model_json_schema(by_alias=True)

    with schema_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
        f.write("\n")

    try:
        rel = schema_path.relative_to(Path.cwd())
    except ValueError:
        rel = schema_path
    print(f"Generated {rel}")
    return schema_path


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="alchemist-schemas")
    parser.add_argument("--out", type=str, default="schemas", help="Output directory")
    args = parser.parse_args(argv)

    out_dir = Path(args.out).resolve()
    for name, model_cls in MODELS.items():
        export_schema(model_cls, name, out_dir)


if __name__ == "__main__":
    main()
