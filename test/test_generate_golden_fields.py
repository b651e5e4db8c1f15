"""Tests for the golden-field generator."""

from __future__ import annotations

from pathlib import Path

import yaml
from generate_golden_fields import build_fields, main


def test_build_fields_for_running_program() -> None:
    fields = build_fields({"in_source": ",.", "in_stdin": "z"})
    assert fields == {
        "out_code_listing": "0 - , - IN\n1 - . - OUT",
        "out_stdout": "z",
        "ticks": 2,
    }


def test_build_fields_for_failing_run() -> None:
    fields = build_fields({"in_source": "+[]", "in_config": {"instruction_budget": 7}})
    assert fields["error"] == "InfiniteLoopError"
    assert fields["ticks"] == 7
    assert "out_stdout" not in fields


def test_build_fields_for_parse_error() -> None:
    assert build_fields({"in_source": ">p"}) == {
        "error": "UnknownInstructionError",
        "location": 1,
        "instruction": "p",
    }


def test_main_keeps_existing_expectations(tmp_path: Path) -> None:
    p = tmp_path / "g.yaml"
    p.write_text("in_source: '+.'\nout:\n  ticks: 99\n", encoding="utf-8")
    main(str(p))
    doc = yaml.safe_load(p.read_text(encoding="utf-8"))
    assert doc["out"]["ticks"] == 99
    assert doc["out"]["out_stdout"] == "\x01"
    assert doc["out"]["out_code_listing"] == "0 - + - INC\n1 - . - OUT"
