"""Bytecode definitions for the Quill virtual machine."""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Dict, List, Tuple, Union

if TYPE_CHECKING:
    from quill.quill_symbol_table import QuillSymbolTable


def _op(n: int, arg_count: int = 0, has_target: bool = False) -> Tuple[int, int, bool]:
    """Helper to construct an Opcode value: (integer_value, integer_arg_count, has_target).

    arg_count is the number of integer operands the opcode encodes in arg1/arg2.
    has_target is True for opcodes that name a label or function to resolve
    through the symbol table.
    """
    return (n, arg_count, has_target)


class Opcode(IntEnum):
    """Bytecode operation codes.

    Each member's value is an (integer_value, arg_count, has_target) tuple.
    The integer value is used for VM dispatch.
    """

    _arg_count: int
    _has_target: bool

    def __new__(cls, int_value: int, arg_count: int = 0, has_target: bool = False) -> 'Opcode':
        obj = int.__new__(cls, int_value)
        obj._value_ = int_value
        obj._arg_count = arg_count
        obj._has_target = has_target
        return obj

    @property
    def arg_count(self) -> int:
        """Number of integer operands (0, 1, or 2)."""
        return self._arg_count

    @property
    def has_target(self) -> bool:
        """True if the instruction carries a label or function name."""
        return self._has_target

    # Values and slots
    PUSH_CONSTANT = _op(1, 1)           # PUSH_CONSTANT value
    LOAD_SLOT = _op(2, 1)               # LOAD_SLOT offset
    BIND_ARGUMENT = _op(3, 2)           # BIND_ARGUMENT slot_index caller_offset
    STORE_SLOT = _op(4, 1)              # STORE_SLOT slot_index
    POP = _op(5, 0)                     # Discard top of stack

    # Control flow
    BRANCH_IF_FALSE = _op(10, 0, True)  # BRANCH_IF_FALSE label
    JUMP = _op(11, 0, True)             # JUMP label

    # Functions
    CALL = _op(20, 1, True)             # CALL name argument_count
    RETURN = _op(21, 0)                 # Return from function

    # Arithmetic and comparison
    ADD = _op(30, 0)                    # left + right
    SUBTRACT = _op(31, 0)               # left - right
    LESS_THAN = _op(32, 0)              # 1 if left < right else 0


@dataclass(frozen=True)
class QuillLabel:
    """
    Opaque handle for a compiler-generated jump target.

    Labels are a separate type from function names, so a user function can never
    collide with a synthetic label even if it happens to be called `if_else_0`.
    """
    kind: str
    serial: int

    def __str__(self) -> str:
        return f"{self.kind}_{self.serial}"


JumpTarget = Union[QuillLabel, str]


@dataclass
class Instruction:
    """Single bytecode instruction.

    arg1/arg2 hold the integer operands; target holds the label (for jumps) or
    function name (for calls). line records the source line for diagnostics.
    """
    opcode: Opcode
    arg1: int = 0
    arg2: int = 0
    target: JumpTarget | None = None
    line: int | None = field(default=None, compare=False)

    def arg_count(self) -> int:
        """Return the number of integer operands this instruction takes (0, 1, or 2)."""
        return self.opcode.arg_count

    def __repr__(self) -> str:
        """Human-readable representation."""
        parts = [self.opcode.name]
        if self.opcode.has_target:
            parts.append(str(self.target))

        n = self.arg_count()
        if n >= 1:
            parts.append(str(self.arg1))

        if n == 2:
            parts.append(str(self.arg2))

        return " ".join(parts)


@dataclass(frozen=True)
class QuillProgram:
    """Compiled program: the instruction sequence and its symbol table.

    A program is immutable once compiled; the symbol table is sealed by the compiler.
    top_level_slot_count is the number of slots top-level locals use; the VM
    zero-fills the top-level frame to that size before running.
    """
    instructions: Tuple[Instruction, ...]
    symbols: 'QuillSymbolTable'
    source_file: str = ""
    top_level_slot_count: int = 0

    def __len__(self) -> int:
        return len(self.instructions)

    def disassemble(self) -> str:
        """Return disassembled bytecode, with function names and labels shown at their locations."""
        names_at: Dict[int, List[str]] = {}
        for name, symbol in self.symbols.functions.items():
            names_at.setdefault(symbol.location, []).append(
                f"{name}:  ; function, {symbol.arity} params, {symbol.local_count} locals"
            )

        for label, symbol in self.symbols.labels.items():
            names_at.setdefault(symbol.location, []).append(f"{label}:")

        header = f"QuillProgram: {self.source_file}" if self.source_file else "QuillProgram"
        lines = [header, f"  Instructions: {len(self.instructions)}"]
        for i, instr in enumerate(self.instructions):
            for name in names_at.get(i, []):
                lines.append(f"  {name}")

            lines.append(f"    {i:3d}: {instr!r}")

        # Labels placed at the very end of the program (after the last instruction)
        for name in names_at.get(len(self.instructions), []):
            lines.append(f"  {name}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return self.disassemble()
