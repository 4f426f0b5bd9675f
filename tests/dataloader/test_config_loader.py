# tests/dataloader/test_config_loader.py

from pathlib import Path

import pytest
import yaml

from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.errors import ConfigError
from alchemist.schemas.models import Config

ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture()
def tmp_yaml(tmp_path: Path) -> Path:
    """Writes a partial config; omitted blocks fall back to defaults."""
    path = tmp_path / "config.yaml"
    cfg = {
        "output_dir": "out",
        "validation": {"hours_per_slot": 6, "max_task_duration": 20},
        "fixes": {"bulk_min_confidence": "medium"},
    }
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f)
    return path


def test_load_valid_yaml_returns_config(tmp_yaml: Path):
    """
    @brief
    Verify that valid YAML is parsed, validated and completed with defaults.
    """
    # --- Arrange ---
    loader = ConfigLoader()

    # --- Act ---
    cfg = loader.load(tmp_yaml)

    # --- Assert ---
    assert isinstance(cfg, Config)
    assert cfg.output_dir == "out"
    assert cfg.validation.hours_per_slot == 6
    assert cfg.validation.max_task_duration == 20
    assert cfg.validation.max_concurrent == 10
    assert cfg.fixes.bulk_min_confidence == "medium"
    assert cfg.export.allow_errors is False


def test_shipped_config_matches_defaults():
    cfg = ConfigLoader().load(ROOT / "config" / "config.yaml")
    assert cfg.model_dump() == Config().model_dump()


def test_overrides_win_over_file(tmp_yaml: Path):
    cfg = ConfigLoader().load(tmp_yaml, {"validation": {"hours_per_slot": 4}})
    assert cfg.validation.hours_per_slot == 4
    assert cfg.validation.max_task_duration == 20


def test_empty_file_yields_defaults(tmp_path: Path):
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert ConfigLoader().load(path).model_dump() == Config().model_dump()


def test_load_or_default_without_path():
    cfg = ConfigLoader().load_or_default(None, {"export": {"allow_errors": True}})
    assert cfg.export.allow_errors is True
    assert cfg.validation.hours_per_slot == 8


def test_missing_file_raises_configerror(tmp_path: Path):
    """
    @brief
    Missing configuration file triggers ConfigError.
    """
    # --- Arrange ---
    loader = ConfigLoader()
    path = tmp_path / "no_such.yaml"

    # --- Act / Assert ---
    with pytest.raises(ConfigError) as e:
        loader.load(path)

    # --- Assert ---
    assert "not found" in str(e.value)


def test_wrong_extension_raises_configerror(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text("{}", encoding="utf-8")
    with pytest.raises(ConfigError):
        ConfigLoader().load(path)


def test_malformed_yaml_raises_configerror(tmp_path: Path):
    path = tmp_path / "bad.yaml"
    path.write_text("validation: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(path)
    assert "Malformed YAML" in str(e.value)


@pytest.mark.parametrize(
    "content",
    [
        "validation:\n  hours_per_slot: 0\n",
        "validation:\n  unknown_key: 1\n",
        "fixes:\n  bulk_min_confidence: extreme\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_content_raises_configerror(tmp_path: Path, content: str):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        ConfigLoader().load(path)


def test_non_path_argument_is_rejected():
    with pytest.raises(ConfigError):
        ConfigLoader().load("config/config.yaml")  # type: ignore[arg-type]
