"""Symbol table and local-name scopes for the Quill compiler.

The symbol table maps function names and synthetic labels to resolved instruction
locations plus calling metadata. It is written by the compiler and read by the
bytecode validator and the VM.

Compilation is two-phase: the declaration pass records every function's signature
(name and arity), and the emission pass defines each function exactly once with its
final location and local count. Labels are created as opaque handles and placed once
their address is known.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from quill.quill_bytecode import JumpTarget, QuillLabel


@dataclass(frozen=True)
class QuillSymbol:
    """A named bytecode address plus calling metadata.

    Synthetic labels always have arity = local_count = 0.
    """
    location: int
    arity: int = 0
    local_count: int = 0

    def __repr__(self) -> str:
        return f"QuillSymbol(location={self.location}, arity={self.arity}, locals={self.local_count})"


@dataclass(frozen=True)
class QuillFunctionSignature:
    """Function recorded by the declaration pass, before its code has been emitted."""
    name: str
    arity: int
    line: int | None = None
    column: int | None = None


class QuillSymbolTable:
    """
    Function and label symbols for one program.

    Functions and labels live in separate maps and only meet in resolve(), which
    accepts either kind of target.

    Example usage:
        table = QuillSymbolTable()

        # Declaration pass
        table.declare_function("add", 2)

        # Emission pass
        done = table.new_label("function_done")
        table.define_function("add", location=1, local_count=0)
        table.place_label(done, 6)

        table.seal()
        table.resolve("add")   # QuillSymbol(location=1, arity=2, locals=0)
        table.resolve(done)    # QuillSymbol(location=6, arity=0, locals=0)
    """

    def __init__(self) -> None:
        """Initialize an empty, writable symbol table."""
        self.signatures: Dict[str, QuillFunctionSignature] = {}
        self.functions: Dict[str, QuillSymbol] = {}
        self.labels: Dict[QuillLabel, QuillSymbol] = {}
        self._label_serials: Dict[str, int] = {}
        self._unplaced: List[QuillLabel] = []
        self.sealed = False

    def declare_function(self, name: str, arity: int, line: int | None = None, column: int | None = None) -> None:
        """
        Record a function signature during the declaration pass.

        Raises:
            KeyError: If the function has already been declared
        """
        self._check_writable()
        if name in self.signatures:
            raise KeyError(name)

        self.signatures[name] = QuillFunctionSignature(name, arity, line, column)

    def is_declared(self, name: str) -> bool:
        """Return True if a function with this name was declared."""
        return name in self.signatures

    def signature(self, name: str) -> QuillFunctionSignature | None:
        """Return the declared signature of a function, if any."""
        return self.signatures.get(name)

    def define_function(self, name: str, location: int, local_count: int) -> QuillSymbol:
        """
        Finalize a declared function with its entry location and local count.

        Raises:
            KeyError: If the function was never declared
            ValueError: If the function has already been defined
        """
        self._check_writable()
        signature = self.signatures[name]
        if name in self.functions:
            raise ValueError(f"Function '{name}' is already defined")

        symbol = QuillSymbol(location=location, arity=signature.arity, local_count=local_count)
        self.functions[name] = symbol
        return symbol

    def new_label(self, kind: str) -> QuillLabel:
        """Create a fresh, not yet placed label of the given kind (e.g. 'if_else')."""
        self._check_writable()
        serial = self._label_serials.get(kind, 0)
        self._label_serials[kind] = serial + 1
        label = QuillLabel(kind, serial)
        self._unplaced.append(label)
        return label

    def place_label(self, label: QuillLabel, location: int) -> QuillSymbol:
        """
        Bind a label to an instruction location.

        Raises:
            ValueError: If the label has already been placed
        """
        self._check_writable()
        if label in self.labels:
            raise ValueError(f"Label '{label}' is already placed")

        symbol = QuillSymbol(location=location)
        self.labels[label] = symbol
        self._unplaced.remove(label)
        return symbol

    def undefined_functions(self) -> List[str]:
        """Names declared but never defined."""
        return [name for name in self.signatures if name not in self.functions]

    def unplaced_labels(self) -> List[QuillLabel]:
        """Labels created but never placed."""
        return list(self._unplaced)

    def seal(self) -> None:
        """Make the table read-only. Further mutation raises RuntimeError."""
        self.sealed = True

    def resolve(self, target: JumpTarget) -> QuillSymbol | None:
        """
        Resolve a function name or label.

        Args:
            target: Function name or label handle

        Returns:
            The symbol, or None if the target is unknown
        """
        if isinstance(target, QuillLabel):
            return self.labels.get(target)

        return self.functions.get(target)

    def function_names(self) -> List[str]:
        """Names of all defined functions."""
        return list(self.functions.keys())

    def _check_writable(self) -> None:
        if self.sealed:
            raise RuntimeError("Symbol table is sealed")

    def dump(self) -> str:
        """Dump the symbol table for debugging."""
        lines = [repr(self)]
        for name, symbol in self.functions.items():
            lines.append(f"  {name}: {symbol}")

        for label, symbol in self.labels.items():
            lines.append(f"  {label}: {symbol}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"QuillSymbolTable(functions={len(self.functions)}, labels={len(self.labels)})"


@dataclass
class QuillLocalScope:
    """
    Compile-time local-name table for one function body (or for top-level code).

    Parameters take slots 0..arity-1; locals take the following slots in order of
    declaration. Redeclaring a name gives it a new slot; later references see the
    newest one.
    """
    parameter_count: int = 0
    slots: Dict[str, int] = field(default_factory=dict)
    next_slot: int = 0

    def declare(self, name: str) -> int:
        """Assign the next unused slot to name and return it."""
        slot = self.next_slot
        self.next_slot += 1
        self.slots[name] = slot
        return slot

    def declare_parameter(self, name: str) -> int:
        """Assign the next slot to a parameter."""
        slot = self.declare(name)
        self.parameter_count += 1
        return slot

    def lookup(self, name: str) -> int | None:
        """Return the slot for name, or None if it was never declared."""
        return self.slots.get(name)

    @property
    def local_count(self) -> int:
        """Number of declared locals, not counting parameters."""
        return self.next_slot - self.parameter_count

    def __repr__(self) -> str:
        return f"QuillLocalScope(params={self.parameter_count}, slots={self.slots})"
