#!/usr/bin/env python3
"""
Fill out_code_listing (and out_stdout/ticks or error) for a golden YAML.
Usage: python generate_golden_fields.py path/to/golden.yaml
"""

from __future__ import annotations

import os
import sys
from parser import ParseError, parse
from typing import Any

import yaml
from config import load_config
from isa import disassemble
from processor import ControlUnit, Datapath, ExecuteError, OutputDecodeError, decode_output


def build_fields(doc: dict[str, Any]) -> dict[str, Any]:
    """Compute the generated expectation fields for one golden record."""
    fields: dict[str, Any] = {}
    try:
        program = parse(doc.get("in_source", ""))
    except ParseError as e:
        fields["error"] = type(e).__name__
        fields.update({k: v for k, v in vars(e).items() if k in ("location", "instruction")})
        return fields

    fields["out_code_listing"] = disassemble(program)

    cfg = load_config(doc.get("in_config"))
    stdin = doc.get("in_stdin") or ""
    dp = Datapath(
        program,
        bytearray(cfg["tape_cells"]),
        stdin.encode("utf-8"),
        instruction_budget=cfg["instruction_budget"],
        lenient_log=cfg["lenient_log"],
    )
    try:
        raw, _ = ControlUnit(dp).run()
        fields["out_stdout"] = decode_output(raw)
    except (ExecuteError, OutputDecodeError) as e:
        fields["error"] = type(e).__name__
    fields["ticks"] = dp.tick
    return fields


def main(path: str) -> None:
    if not os.path.exists(path):
        print("File not found:", path)
        sys.exit(2)

    with open(path, encoding="utf-8") as f:
        doc = yaml.safe_load(f) or {}

    if "in_source" not in doc:
        print("No 'in_source' found in YAML — nothing to run")
        sys.exit(2)

    target = doc.setdefault("out", {})
    for key, value in build_fields(doc).items():
        # never overwrite hand-written expectations
        target.setdefault(key, value)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(doc, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    print(f"Updated {path} with generated expectation fields.")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: generate_golden_fields.py path/to/golden.yaml")
        sys.exit(1)
    main(sys.argv[1])
