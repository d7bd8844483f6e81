"""Main Quill class: compiles source to bytecode and runs it."""

from typing import TextIO

from quill.quill_bytecode import QuillProgram
from quill.quill_compiler import QuillCompiler
from quill.quill_lexer import QuillLexer
from quill.quill_parser import QuillParser
from quill.quill_vm import QuillTraceWatcher, QuillVM


class Quill:
    """
    Quill language front door.

    Runs the lexer, parser and compiler over source text to produce a QuillProgram,
    then executes that program on a fresh QuillVM.
    """

    def __init__(
        self,
        max_call_depth: int = 1000,
        discard_expression_values: bool = True,
        output: TextIO | None = None,
        validate: bool = True
    ):
        """
        Initialize Quill.

        Args:
            max_call_depth: Maximum number of nested user function calls
            discard_expression_values: Drop the value of each expression statement
            output: Stream written by the print builtin (defaults to stdout)
            validate: Validate bytecode before executing it
        """
        self.max_call_depth = max_call_depth
        self.discard_expression_values = discard_expression_values
        self.output = output
        self.validate = validate
        self.trace_watcher: QuillTraceWatcher | None = None

        # The most recent VM, kept for inspection after a run
        self.vm: QuillVM | None = None

    def set_trace_watcher(self, watcher: QuillTraceWatcher | None) -> None:
        """Set the trace watcher installed on every VM this instance creates."""
        self.trace_watcher = watcher

    def compile(self, source: str, source_file: str = "") -> QuillProgram:
        """
        Compile Quill source text.

        Args:
            source: Program source
            source_file: Name recorded on the program for diagnostics

        Returns:
            The compiled program

        Raises:
            QuillTokenError: If lexing fails
            QuillParseError: If parsing fails
            QuillCompileError: If compilation fails
        """
        tokens = QuillLexer().lex(source)
        ast = QuillParser(tokens, source).parse()
        compiler = QuillCompiler(discard_expression_values=self.discard_expression_values)
        return compiler.compile(ast, source, source_file)

    def execute(self, program: QuillProgram) -> int | None:
        """
        Execute a compiled program.

        Args:
            program: Program returned by compile()

        Returns:
            The value of a top-level return, or None if the program ran to its end

        Raises:
            QuillRuntimeError: If execution fails
        """
        vm = QuillVM(validate=self.validate, max_call_depth=self.max_call_depth, output=self.output)
        vm.set_trace_watcher(self.trace_watcher)
        self.vm = vm
        return vm.execute(program)

    def run(self, source: str, source_file: str = "") -> int | None:
        """
        Compile and execute Quill source text.

        Raises:
            QuillError: If any stage fails
        """
        return self.execute(self.compile(source, source_file))
