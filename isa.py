"""ISA: Brainfuck instruction alphabet and helpers."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from parser import Program


class OpCode(str, Enum):
    """Keeps opcodes for all instructions, valued by their source character."""

    INC = "+"  # MEM[PTR] += 1 (mod 256)
    DEC = "-"  # MEM[PTR] -= 1 (mod 256)
    RIGHT = ">"  # PTR += 1
    LEFT = "<"  # PTR -= 1
    OUT = "."  # output MEM[PTR]
    IN = ","  # MEM[PTR] = next input byte
    LOOP_START = "["  # skip past matching ] when MEM[PTR] == 0
    LOOP_END = "]"  # jump back to matching [ when MEM[PTR] != 0


INSTRUCTION_SET = frozenset(op.value for op in OpCode)

CELL_MOD = 256


def mnemonic(opcode: OpCode) -> str:
    """Get operation mnemonic."""
    return opcode.name


def find_matching_bracket(code: str, index: int) -> int:
    """Return the index of the ']' closing the '[' at `index`.

    Depth starts at 1 for the opener, goes up on '[' and down on ']';
    the match is where it reaches 0.
    Raises ValueError if `index` is not a '[' or the loop is never closed.
    """
    if not (0 <= index < len(code)) or code[index] != OpCode.LOOP_START.value:
        err = f"no '[' at position {index}"
        raise ValueError(err)
    depth = 1
    pos = index + 1
    while pos < len(code):
        ch = code[pos]
        if ch == OpCode.LOOP_START.value:
            depth += 1
        elif ch == OpCode.LOOP_END.value:
            depth -= 1
            if depth == 0:
                return pos
        pos += 1
    err = f"unmatched '[' at position {index}"
    raise ValueError(err)


def disassemble(program: Program) -> str:
    """Produce a listing: one `<index> - <char> - <MNEMONIC>` line per instruction.

    Brackets are annotated with the index of their partner.
    """
    code = program.code
    partners: dict[int, int] = {}
    for idx, ch in enumerate(code):
        if ch == OpCode.LOOP_START.value:
            end = find_matching_bracket(code, idx)
            partners[idx] = end
            partners[end] = idx

    lines: list[str] = []
    for idx, op in enumerate(program.ops):
        mnem = mnemonic(op)
        if idx in partners:
            mnem = f"{mnem} -> {partners[idx]}"
        lines.append(f"{idx} - {op.value} - {mnem}")
    return "\n".join(lines)
