"""
Builtin functions for Quill.

Builtins are host-provided operations reached through the same CALL instruction as
user functions. The VM checks this registry before looking the name up in the symbol
table, so a builtin never needs a symbol, a frame, or a location.
"""

import sys
from typing import Callable, Dict, List, TextIO


class QuillBuiltinRegistry:
    """
    Registry of builtin functions.

    Each builtin takes its arguments in source order and returns the integer left
    on the caller's stack as the call's value. print therefore does more than pop
    and write its arguments: it also pushes 0, so a print call has the same stack
    effect as any other call and an expression statement's POP always has a value
    to discard.
    """

    # Authoritative list of builtin names
    BUILTIN_TABLE = [
        'print',
    ]

    def __init__(self, output: TextIO | None = None) -> None:
        """
        Initialize the builtin registry.

        Args:
            output: Stream written by print (defaults to sys.stdout at call time)
        """
        self.output = output
        self._functions: Dict[str, Callable[[List[int]], int]] = self._build_function_table()

    def _build_function_table(self) -> Dict[str, Callable[[List[int]], int]]:
        """Map every name in BUILTIN_TABLE to its implementation."""
        implementations: Dict[str, Callable[[List[int]], int]] = {
            'print': self._builtin_print,
        }

        table = {}
        for name in self.BUILTIN_TABLE:
            if name not in implementations:
                raise RuntimeError(f"Builtin function '{name}' in BUILTIN_TABLE but not implemented")

            table[name] = implementations[name]

        return table

    @classmethod
    def is_builtin(cls, name: str) -> bool:
        """Return True if name is a builtin function."""
        return name in cls.BUILTIN_TABLE

    def call(self, name: str, args: List[int]) -> int:
        """
        Call a builtin.

        Args:
            name: Builtin name (must satisfy is_builtin)
            args: Argument values in source order

        Returns:
            The value the call leaves on the stack
        """
        return self._functions[name](args)

    def _builtin_print(self, args: List[int]) -> int:
        """Write the arguments space-separated, followed by a newline."""
        stream = self.output if self.output is not None else sys.stdout
        stream.write(" ".join(str(arg) for arg in args) + "\n")
        return 0
