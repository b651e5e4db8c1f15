"""Processor (Datapath + ControlUnit) and CLI wrapper.

Provides Brainfuck execution over a bounded byte tape, logging
initialization and an optional tape dump emitted on request.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

from config import ConfigError, load_config
from isa import CELL_MOD, OpCode, find_matching_bracket, mnemonic
from parser import ParseError, Program, parse

LOGFILE = "processor.log"
DEFAULT_INSTRUCTION_BUDGET = 10000


def init_logging(logfile: str = LOGFILE, debug: bool = False, console: bool = False) -> None:
    """Configure root logger to write to `logfile`.

    If debug=True set DEBUG level. If console=True also echo logs to stdout.

    NOTE: when debug=True we use a compact log format without timestamp so that
    entries look like:
        DEBUG root:processor.py TICK:    0 IP:     0 PTR:     0 CELL:   0 INSTR: INC
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    lvl = logging.DEBUG if debug else logging.CRITICAL
    root.setLevel(lvl)

    if debug:
        file_fmt = "%(levelname)s %(name)s:%(filename)s %(message)s"
    else:
        file_fmt = "%(levelname)-5s %(message)s"

    # The first formatted record is left unindented; every later one gets
    # four spaces so a trace reads as one block under its header line.
    class _IndentOnceFormatter(logging.Formatter):
        def __init__(self, fmt: str | None = None):
            super().__init__(fmt)
            self._seen_first = False

        def format(self, record: logging.LogRecord) -> str:
            s = super().format(record)
            if not self._seen_first:
                self._seen_first = True
                return s
            return "    " + s

    # always create a FileHandler even when not debug to allow easier inspection if asked
    fh = logging.FileHandler(logfile, mode="w", encoding="utf-8")
    fh.setLevel(lvl)
    if debug:
        fh.setFormatter(_IndentOnceFormatter(file_fmt))
    else:
        fh.setFormatter(logging.Formatter(file_fmt))
    root.addHandler(fh)

    if debug and console:
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(lvl)
        ch.setFormatter(logging.Formatter("%(levelname)5s %(message)s"))
        root.addHandler(ch)


class ExecuteError(RuntimeError):
    """Raised when a program run fails; the run's output is discarded."""

    _fields: tuple[str, ...] = ()

    def _values(self) -> tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExecuteError) or type(other) is not type(self):
            return NotImplemented
        return self._values() == other._values()

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._values()))


class NoInputLeftError(ExecuteError):
    """',' executed with the input exhausted."""

    def __init__(self) -> None:
        super().__init__("NoInputLeft")


class InfiniteLoopError(ExecuteError):
    """The run hit its instruction budget."""

    _fields = ("budget",)

    def __init__(self, budget: int) -> None:
        self.budget = budget
        super().__init__(f"InfiniteLoop {{ budget: {budget} }}")


class OutOfBoundsError(ExecuteError):
    """The data pointer left the tape."""

    _fields = ("location", "pointer")

    def __init__(self, location: int, pointer: int) -> None:
        self.location = location
        self.pointer = pointer
        super().__init__(f"OutOfBounds {{ location: {location}, pointer: {pointer} }}")


class OutputDecodeError(ValueError):
    """Program output is not valid UTF-8."""


def decode_output(data: bytes) -> str:
    """Decode raw program output as UTF-8."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        msg = f"Program output is not valid UTF-8: {e}"
        raise OutputDecodeError(msg) from e


class Datapath:
    """Datapath (tape + pointers + I/O buffers) for one program run."""

    program: Program
    tape: bytearray
    input_bytes: bytes
    instruction_budget: int
    lenient_log: bool

    IP: int  # instruction pointer (index into program)
    PTR: int  # data pointer (index into tape)
    input_pos: int
    output_buffer: bytearray
    loop_stack: list[int]  # positions of currently open '['
    tick: int

    def __init__(
        self,
        program: Program,
        tape: bytearray | bytes,
        input_bytes: bytes = b"",
        instruction_budget: int = DEFAULT_INSTRUCTION_BUDGET,
        lenient_log: bool = False,
    ) -> None:
        """Initialize Datapath state.

        A bytearray tape is used (and mutated) in place; bytes are copied.
        """
        self.program = program
        self.tape = tape if isinstance(tape, bytearray) else bytearray(tape)
        self.input_bytes = bytes(input_bytes)

        self.instruction_budget = int(instruction_budget)
        if self.instruction_budget <= 0:
            err = "instruction_budget must be positive"
            raise ValueError(err)
        self.lenient_log = bool(lenient_log)

        # registers/state
        self.IP = 0
        self.PTR = 0
        self.input_pos = 0
        self.output_buffer = bytearray()
        self.loop_stack = []
        self.tick = 0

        logging.debug(
            "Datapath: tape of %d cells, input of %d bytes, budget %d",
            len(self.tape),
            len(self.input_bytes),
            self.instruction_budget,
        )

    def _check_ptr(self, location: int) -> None:
        if not 0 <= self.PTR < len(self.tape):
            raise OutOfBoundsError(location, self.PTR)

    def read_cell(self, location: int) -> int:
        """Read the cell under the data pointer."""
        self._check_ptr(location)
        return self.tape[self.PTR]

    def write_cell(self, location: int, value: int) -> None:
        """Write `value` (mod 256) to the cell under the data pointer."""
        self._check_ptr(location)
        self.tape[self.PTR] = value % CELL_MOD

    def move(self, location: int, delta: int) -> None:
        """Move the data pointer by `delta`.

        Raises OutOfBoundsError when the pointer would leave the tape.
        """
        target = self.PTR + delta
        if not 0 <= target < len(self.tape):
            raise OutOfBoundsError(location, target)
        self.PTR = target

    def read_input(self) -> int:
        """Consume the next input byte."""
        if self.input_pos >= len(self.input_bytes):
            raise NoInputLeftError()
        value = self.input_bytes[self.input_pos]
        self.input_pos += 1
        return value


class ControlUnit:
    """Control unit implementing the FETCH-EXEC loop for the Datapath."""

    dp: Datapath

    def __init__(self, dp: Datapath) -> None:
        """Create a ControlUnit bound to `dp`."""
        self.dp = dp

    def _cell_at_ptr(self) -> int:
        dp = self.dp
        if 0 <= dp.PTR < len(dp.tape):
            return dp.tape[dp.PTR]
        return 0

    def _log_step(self, op: OpCode) -> None:
        # skip verbose per-step logs in lenient mode to reduce log size
        if self.dp.lenient_log:
            return
        dp = self.dp
        logging.debug(
            "TICK: %4d IP: %5d PTR: %5d CELL: %3d INSTR: %s",
            dp.tick,
            dp.IP,
            dp.PTR,
            self._cell_at_ptr(),
            mnemonic(op),
        )

    def run(self) -> tuple[bytes, int]:
        """Execute the program until it runs off the end.

        Returns (output bytes, executed instruction count). Raises an
        ExecuteError subclass on failure.
        """
        dp = self.dp
        ops = dp.program.ops
        try:
            while dp.IP < len(ops):
                op = ops[dp.IP]
                self._log_step(op)

                location = dp.IP
                dp.IP += 1
                self.exec(op, location)

                dp.tick += 1
                if dp.tick >= dp.instruction_budget:
                    raise InfiniteLoopError(dp.instruction_budget)
        except ExecuteError as e:
            logging.debug("Run failed at tick %d: %s", dp.tick, e)
            raise

        logging.debug("Run completed: %d ticks, %d output bytes", dp.tick, len(dp.output_buffer))
        return bytes(dp.output_buffer), dp.tick

    def exec(self, op: OpCode, location: int) -> None:
        """Execute one instruction found at `location`.

        IP already points past `location`; jumps overwrite it.
        """
        dp = self.dp

        if op == OpCode.INC:
            dp.write_cell(location, dp.read_cell(location) + 1)
            return

        if op == OpCode.DEC:
            dp.write_cell(location, dp.read_cell(location) - 1)
            return

        if op == OpCode.RIGHT:
            dp.move(location, 1)
            return

        if op == OpCode.LEFT:
            dp.move(location, -1)
            return

        if op == OpCode.OUT:
            dp.output_buffer.append(dp.read_cell(location))
            return

        if op == OpCode.IN:
            value = dp.read_input()
            dp.write_cell(location, value)
            logging.debug("IN: got %d (%r)", value, chr(value))
            return

        if op == OpCode.LOOP_START:
            if dp.read_cell(location) != 0:
                dp.loop_stack.append(location)
                return
            end = find_matching_bracket(dp.program.code, location)
            logging.debug("LOOP_START at %d skipped to %d", location, end + 1)
            dp.IP = end + 1
            return

        if op == OpCode.LOOP_END:
            start = dp.loop_stack.pop() if dp.loop_stack else None
            if dp.read_cell(location) != 0 and start is not None:
                # re-evaluate the '[' so it pushes itself again
                dp.IP = start
            return

        logging.debug("Unhandled opcode: %s", op)


def dump_tape(tape: bytearray | bytes, path: str | Path, pointer: int | None = None) -> None:
    """Write a tape dump up to the last non-zero cell (or the pointer, if later)."""
    last = max((i for i, v in enumerate(tape) if v), default=-1)
    if pointer is not None:
        last = max(last, min(pointer, len(tape) - 1))
    with open(path, "w", encoding="utf-8") as f:
        f.write("=== TAPE DUMP ===\n")
        f.write(f"tape_cells: {len(tape)}\n\n")
        for i in range(last + 1):
            v = tape[i]
            txt = f"{i:08d}: {v:02X}  ({v})"
            if 32 <= v < 127:
                txt += f"   '{chr(v)}'"
            if i == pointer:
                txt += "   <- PTR"
            f.write(txt + "\n")
        f.write("\n=== END DUMP ===\n")


# ---------- Public API ----------
def execute(
    program: Program,
    input_bytes: bytes,
    tape: bytearray | bytes,
    instruction_budget: int = DEFAULT_INSTRUCTION_BUDGET,
) -> bytes:
    """Run `program` on `input_bytes` and `tape` and return the raw output."""
    dp = Datapath(program, tape, input_bytes, instruction_budget=instruction_budget)
    out, _ = ControlUnit(dp).run()
    return out


def run_source(source: str, input_text: str = "", config: str | dict[str, Any] | None = None) -> tuple[str, int]:
    """Parse and run `source` with a zeroed tape; return (stdout, ticks)."""
    cfg = load_config(config)
    program = parse(source)
    dp = Datapath(
        program,
        bytearray(cfg["tape_cells"]),
        input_text.encode("utf-8"),
        instruction_budget=cfg["instruction_budget"],
        lenient_log=cfg["lenient_log"],
    )
    out, ticks = ControlUnit(dp).run()
    return decode_output(out), ticks


# ---------- CLI ----------
if __name__ == "__main__":
    import argparse

    from parser import parse_file

    ap = argparse.ArgumentParser(description="Brainfuck runner. Accepts a source file (.bf).")
    ap.add_argument("program", help="program.bf")
    src_group = ap.add_mutually_exclusive_group()
    src_group.add_argument("--input", help="file whose bytes are fed to ','", default=None)
    src_group.add_argument("--stdin", help="text (UTF-8) fed to ','", default=None)
    ap.add_argument("--config", help="path to yaml config", default=None)

    help_debug = "enable debug logging to logfile (detailed per-step state)."
    help_logfile = "path to processor log"
    help_console = "also echo logs to console (only when --debug)"
    ap.add_argument("--debug", action="store_true", help=help_debug)
    ap.add_argument("--logfile", default=LOGFILE, help=help_logfile)
    ap.add_argument("--console", action="store_true", help=help_console)
    ap.add_argument("--dump", help="write a tape dump to this path after the run", default=None)
    args = ap.parse_args()

    init_logging(logfile=args.logfile, debug=args.debug, console=args.console)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        print("Bad config:", e)
        sys.exit(2)

    try:
        prog = parse_file(args.program)
    except FileNotFoundError as e:
        print(e)
        sys.exit(2)
    except ParseError as e:
        print("Parse error:", e)
        sys.exit(2)

    if args.input:
        input_path = Path(args.input)
        if not input_path.exists():
            print("Input file not found:", args.input)
            sys.exit(2)
        in_bytes = input_path.read_bytes()
    elif args.stdin is not None:
        in_bytes = args.stdin.encode("utf-8")
    else:
        in_bytes = b""

    datapath = Datapath(
        prog,
        bytearray(cfg["tape_cells"]),
        in_bytes,
        instruction_budget=cfg["instruction_budget"],
        lenient_log=cfg["lenient_log"],
    )
    try:
        raw_out, ticks = ControlUnit(datapath).run()
        out = decode_output(raw_out)
    except (ExecuteError, OutputDecodeError) as e:
        print("Execution error:", e)
        sys.exit(2)
    finally:
        if args.dump:
            dump_tape(datapath.tape, args.dump, pointer=datapath.PTR)

    # print program output to stdout
    sys.stdout.write(out)
    sys.stdout.write("\n")
    sys.stdout.write("TICKS: " + str(ticks))
    sys.stdout.write("\n")
