"""Module: validate Brainfuck source and produce an immutable Program.

This module contains:
- parse(source) -> Program (raises ParseError subclasses)
- parse_file(path) -> Program
- write_listing(program, path) for the human-readable disassembly
"""

from __future__ import annotations

# ruff: noqa: A005
import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from isa import INSTRUCTION_SET, OpCode, disassemble


class ParseError(ValueError):
    """Raised when source text is not a well-formed program."""

    _fields: tuple[str, ...] = ()

    def _values(self) -> tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParseError) or type(other) is not type(self):
            return NotImplemented
        return self._values() == other._values()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._values()))


class UnknownInstructionError(ParseError):
    """A character outside the instruction alphabet."""

    _fields = ("location", "instruction")

    def __init__(self, location: int, instruction: str) -> None:
        self.location = location
        self.instruction = instruction
        super().__init__(f"UnknownInstruction {{ location: {location}, instruction: {instruction!r} }}")


class UnmatchedLoopError(ParseError):
    """A ']' without an open '[', or a '[' that is never closed."""

    _fields = ("location",)

    def __init__(self, location: int) -> None:
        self.location = location
        super().__init__(f"UnmatchedLoop {{ location: {location} }}")


@dataclass(frozen=True)
class Program:
    """Validated Brainfuck program: the source characters, in order."""

    code: str

    @property
    def ops(self) -> tuple[OpCode, ...]:
        return tuple(OpCode(ch) for ch in self.code)

    def __len__(self) -> int:
        return len(self.code)


def parse(source: str) -> Program:
    """Validate `source` and return a Program.

    Scans left to right; the first offending character wins. An unmatched
    '[' is reported at the earliest one still open when the scan ends.
    """
    stack: list[int] = []

    for idx, ch in enumerate(source):
        if ch not in INSTRUCTION_SET:
            raise UnknownInstructionError(idx, ch)
        if ch == OpCode.LOOP_START.value:
            stack.append(idx)
        elif ch == OpCode.LOOP_END.value:
            if not stack:
                raise UnmatchedLoopError(idx)
            stack.pop()

    if stack:
        # stack[0] is the outermost opener still unmatched
        raise UnmatchedLoopError(stack[0])

    return Program(source)


def parse_file(path: str | Path) -> Program:
    """Read UTF-8 source from `path` and parse it."""
    p = Path(path)
    if not p.exists():
        err = f"Source file not found: {path}"
        raise FileNotFoundError(err)
    return parse(p.read_text(encoding="utf-8"))


def write_listing(program: Program, path: str | Path) -> str:
    """Write the disassembly of `program` to `path` and return the path."""
    out = Path(path)
    out.write_text(disassemble(program), encoding="utf-8")
    return str(out)


# --- CLI ---
if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Validate Brainfuck source and write an instruction listing")
    ap.add_argument("input", help="source file (e.g. program.bf)")
    ap.add_argument("-o", "--out", help="output listing file (default: <input>.lst)")
    args = ap.parse_args()

    try:
        program = parse_file(args.input)
    except FileNotFoundError as e:
        print(e)
        sys.exit(2)
    except ParseError as e:
        print("Parse error:", e)
        sys.exit(2)

    out_path = args.out if args.out else Path(args.input).with_suffix(".lst")
    print(write_listing(program, out_path))
