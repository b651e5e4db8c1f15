"""Tests for config loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from config import DEFAULTS, ConfigError, load_config


def test_defaults() -> None:
    cfg = load_config()
    assert cfg == {"tape_cells": 30000, "instruction_budget": 10000, "lenient_log": False}
    cfg["tape_cells"] = 1
    assert DEFAULTS["tape_cells"] == 30000


def test_dict_overlay_and_coercion() -> None:
    cfg = load_config({"tape_cells": "64", "instruction_budget": 500.0, "lenient_log": 1})
    assert cfg == {"tape_cells": 64, "instruction_budget": 500, "lenient_log": True}


def test_null_budget_falls_back_to_default() -> None:
    assert load_config({"instruction_budget": None})["instruction_budget"] == 10000


def test_yaml_file(tmp_path: Path) -> None:
    p = tmp_path / "cfg.yaml"
    p.write_text("tape_cells: 16\ninstruction_budget: 50\n", encoding="utf-8")
    cfg = load_config(str(p))
    assert cfg["tape_cells"] == 16
    assert cfg["instruction_budget"] == 50
    assert cfg["lenient_log"] is False


def test_empty_yaml_file_gives_defaults(tmp_path: Path) -> None:
    p = tmp_path / "cfg.yaml"
    p.write_text("", encoding="utf-8")
    assert load_config(str(p)) == DEFAULTS


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "missing.yaml"))


def test_non_mapping_file(tmp_path: Path) -> None:
    p = tmp_path / "cfg.yaml"
    p.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(str(p))


def test_malformed_yaml(tmp_path: Path) -> None:
    p = tmp_path / "cfg.yaml"
    p.write_text("tape_cells: [1, 2\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Failed to load"):
        load_config(str(p))


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"tape_cells": 0}, "tape_cells must be positive"),
        ({"tape_cells": -3}, "tape_cells must be positive"),
        ({"instruction_budget": 0}, "instruction_budget must be positive"),
        ({"tape_cells": "lots"}, "Bad types"),
        ({"tape_cells": None}, "Bad types"),
        ({"mem_cells": 10}, "Unknown config keys: mem_cells"),
    ],
)
def test_invalid_values(overrides: dict, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        load_config(overrides)


def test_unsupported_input() -> None:
    with pytest.raises(ConfigError, match="Unsupported"):
        load_config(42)  # type: ignore[arg-type]
