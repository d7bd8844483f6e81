"""Quill bytecode compiler.

Walks the AST and emits a flat instruction sequence plus a symbol table.

Compilation runs in two phases:
1. Declaration pass - records every function's name and arity so calls can be
   checked no matter where the callee is declared.
2. Emission pass - a single structural recursion over the AST that emits code,
   defines each function once with its final location and local count, and places
   the synthetic labels that guard function bodies and close if bodies.
"""

from dataclasses import dataclass, field
import logging
from typing import Dict, List, Sequence

from quill.quill_ast import (
    QuillAST, QuillASTBinaryOp, QuillASTCall, QuillASTExpression, QuillASTExpressionStatement,
    QuillASTFunction, QuillASTIdentifier, QuillASTIf, QuillASTLocal, QuillASTNode, QuillASTNumber,
    QuillASTReturn, QuillASTStatement
)
from quill.quill_builtins import QuillBuiltinRegistry
from quill.quill_bytecode import Instruction, JumpTarget, Opcode, QuillProgram
from quill.quill_error import ErrorMessageBuilder, QuillCompileError
from quill.quill_symbol_table import QuillLocalScope, QuillSymbolTable


BINARY_OPCODES: Dict[str, Opcode] = {
    '+': Opcode.ADD,
    '-': Opcode.SUBTRACT,
    '<': Opcode.LESS_THAN,
}


@dataclass
class CompileContext:
    """
    Compilation context - tracks bytecode emission for one program.
    """
    symbols: QuillSymbolTable
    instructions: List[Instruction] = field(default_factory=list)

    def emit(self, opcode: Opcode, arg1: int = 0, arg2: int = 0,
             target: JumpTarget | None = None, line: int | None = None) -> int:
        """Emit an instruction and return its index."""
        index = len(self.instructions)
        self.instructions.append(Instruction(opcode, arg1, arg2, target, line))
        return index

    def current_instruction_index(self) -> int:
        """Get index of next instruction to be emitted."""
        return len(self.instructions)


class QuillCompiler:
    """
    Compiles a Quill AST into a QuillProgram.
    """

    def __init__(self, discard_expression_values: bool = True) -> None:
        """
        Initialize the compiler.

        Args:
            discard_expression_values: Emit a POP after each expression statement so the
                statement's unused value does not stay on the stack
        """
        self.discard_expression_values = discard_expression_values
        self._source = ""
        self._logger = logging.getLogger("QuillCompiler")

    def compile(self, ast: QuillAST, source: str = "", source_file: str = "") -> QuillProgram:
        """
        Compile a program.

        Args:
            ast: Ordered top-level statements
            source: Original source text, used to show context in error messages
            source_file: Source file name, recorded on the program

        Returns:
            The compiled program, with a sealed symbol table

        Raises:
            QuillCompileError: If the program cannot be compiled
        """
        self._source = source
        ctx = CompileContext(symbols=QuillSymbolTable())

        self._declare_functions(ast, ctx.symbols)

        # Top-level statements share one implicit local-name table
        top_level_scope = QuillLocalScope()
        for stmt in ast:
            self._compile_statement(stmt, ctx, top_level_scope)

        undefined = ctx.symbols.undefined_functions()
        unplaced = ctx.symbols.unplaced_labels()
        if undefined or unplaced:
            raise QuillCompileError(
                message="Internal compiler error: unresolved symbols after compilation",
                received=f"Undefined functions: {undefined}, unplaced labels: {[str(label) for label in unplaced]}"
            )

        ctx.symbols.seal()

        self._logger.debug(
            "Compiled %s: %d instructions, %d functions, %d labels",
            source_file or "<source>",
            len(ctx.instructions),
            len(ctx.symbols.functions),
            len(ctx.symbols.labels)
        )

        return QuillProgram(tuple(ctx.instructions), ctx.symbols, source_file, top_level_scope.next_slot)

    def _declare_functions(self, statements: Sequence[QuillASTStatement], symbols: QuillSymbolTable) -> None:
        """Declaration pass: record the signature of every function, wherever it is declared."""
        for stmt in statements:
            if isinstance(stmt, QuillASTFunction):
                if QuillBuiltinRegistry.is_builtin(stmt.name):
                    raise self._error(
                        f"Cannot redefine builtin function '{stmt.name}'",
                        stmt,
                        suggestion="Choose a different function name"
                    )

                previous = symbols.signature(stmt.name)
                if previous is not None:
                    raise self._error(
                        f"Function already defined: '{stmt.name}'",
                        stmt,
                        context=f"First definition at line {previous.line}",
                        suggestion="Functions share one namespace; rename one of them"
                    )

                symbols.declare_function(stmt.name, len(stmt.parameters), stmt.line, stmt.column)
                self._declare_functions(stmt.body, symbols)

            elif isinstance(stmt, QuillASTIf):
                self._declare_functions(stmt.body, symbols)

    def _compile_statement(self, stmt: QuillASTStatement, ctx: CompileContext, scope: QuillLocalScope) -> None:
        """Compile a statement."""
        if isinstance(stmt, QuillASTFunction):
            self._compile_function(stmt, ctx)

        elif isinstance(stmt, QuillASTIf):
            self._compile_if(stmt, ctx, scope)

        elif isinstance(stmt, QuillASTLocal):
            self._compile_local(stmt, ctx, scope)

        elif isinstance(stmt, QuillASTReturn):
            self._compile_expression(stmt.expression, ctx, scope)
            ctx.emit(Opcode.RETURN, line=stmt.line)

        elif isinstance(stmt, QuillASTExpressionStatement):
            self._compile_expression(stmt.expression, ctx, scope)
            if self.discard_expression_values:
                ctx.emit(Opcode.POP, line=stmt.line)

        else:
            raise self._error(
                f"Malformed statement: {type(stmt).__name__}",
                stmt,
                expected="function declaration, if, local, return, or expression statement"
            )

    def _compile_function(self, node: QuillASTFunction, ctx: CompileContext) -> None:
        """
        Compile a function declaration.

        Layout:
            JUMP function_done_<n>      ; top-level code must not fall into the body
            BIND_ARGUMENT 0 -k          ; <- function location
            ...
            BIND_ARGUMENT k-1 -1
            <body>
            PUSH_CONSTANT 0             ; implicit return if control reaches the end
            RETURN
          function_done_<n>:
        """
        symbols = ctx.symbols
        done_label = symbols.new_label("function_done")
        ctx.emit(Opcode.JUMP, target=done_label, line=node.line)

        location = ctx.current_instruction_index()

        # Arguments arrive in source order, so parameter i sits (arity - i) places below the frame base
        scope = QuillLocalScope()
        arity = len(node.parameters)
        for i, param in enumerate(node.parameters):
            if scope.lookup(param.name) is not None:
                raise self._error(
                    f"Duplicate parameter '{param.name}' in function '{node.name}'",
                    param,
                    suggestion="Give each parameter a distinct name"
                )

            slot = scope.declare_parameter(param.name)
            ctx.emit(Opcode.BIND_ARGUMENT, slot, -(arity - i), line=param.line)

        for stmt in node.body:
            self._compile_statement(stmt, ctx, scope)

        ctx.emit(Opcode.PUSH_CONSTANT, 0, line=node.line)
        ctx.emit(Opcode.RETURN, line=node.line)

        symbols.define_function(node.name, location, scope.local_count)
        symbols.place_label(done_label, ctx.current_instruction_index())

    def _compile_if(self, node: QuillASTIf, ctx: CompileContext, scope: QuillLocalScope) -> None:
        """Compile an if statement (no else branch)."""
        self._compile_expression(node.test, ctx, scope)

        else_label = ctx.symbols.new_label("if_else")
        ctx.emit(Opcode.BRANCH_IF_FALSE, target=else_label, line=node.line)

        for stmt in node.body:
            self._compile_statement(stmt, ctx, scope)

        ctx.symbols.place_label(else_label, ctx.current_instruction_index())

    def _compile_local(self, node: QuillASTLocal, ctx: CompileContext, scope: QuillLocalScope) -> None:
        """
        Compile a local declaration.

        The new slot is the next unused one. The name is bound after the initializer is
        compiled, so `local x = x + 1;` reads the previous x.
        """
        slot = scope.next_slot
        self._compile_expression(node.expression, ctx, scope)
        scope.declare(node.name)
        ctx.emit(Opcode.STORE_SLOT, slot, line=node.line)

    def _compile_expression(self, expr: QuillASTExpression, ctx: CompileContext, scope: QuillLocalScope) -> None:
        """Compile an expression, leaving exactly one value on the stack."""
        if isinstance(expr, QuillASTNumber):
            ctx.emit(Opcode.PUSH_CONSTANT, expr.value, line=expr.line)

        elif isinstance(expr, QuillASTIdentifier):
            self._compile_identifier(expr, ctx, scope)

        elif isinstance(expr, QuillASTBinaryOp):
            self._compile_binary_op(expr, ctx, scope)

        elif isinstance(expr, QuillASTCall):
            self._compile_call(expr, ctx, scope)

        else:
            raise self._error(
                f"Malformed expression: {type(expr).__name__}",
                expr if isinstance(expr, QuillASTNode) else None,
                expected="number, identifier, binary operation, or function call"
            )

    def _compile_identifier(self, expr: QuillASTIdentifier, ctx: CompileContext, scope: QuillLocalScope) -> None:
        """Compile a reference to a parameter or local."""
        slot = scope.lookup(expr.name)
        if slot is None:
            raise self._error(
                f"Undefined identifier: '{expr.name}'",
                expr,
                suggestion=ErrorMessageBuilder.did_you_mean(
                    expr.name,
                    list(scope.slots.keys()),
                    "Declare it with 'local' or as a function parameter before using it"
                ),
                example=f"local {expr.name} = 0;"
            )

        ctx.emit(Opcode.LOAD_SLOT, slot, line=expr.line)

    def _compile_binary_op(self, expr: QuillASTBinaryOp, ctx: CompileContext, scope: QuillLocalScope) -> None:
        """Compile `left op right`: left first, then right, then the operator."""
        opcode = BINARY_OPCODES.get(expr.operator)
        if opcode is None:
            raise self._error(
                f"Unable to compile binary operation: '{expr.operator}'",
                expr,
                expected="One of: " + ", ".join(BINARY_OPCODES.keys())
            )

        self._compile_expression(expr.left, ctx, scope)
        self._compile_expression(expr.right, ctx, scope)
        ctx.emit(opcode, line=expr.line)

    def _compile_call(self, expr: QuillASTCall, ctx: CompileContext, scope: QuillLocalScope) -> None:
        """Compile a call: arguments left to right, then CALL."""
        argument_count = len(expr.arguments)

        if not QuillBuiltinRegistry.is_builtin(expr.name):
            signature = ctx.symbols.signature(expr.name)
            if signature is None:
                available = list(ctx.symbols.signatures.keys()) + QuillBuiltinRegistry.BUILTIN_TABLE
                raise self._error(
                    f"Undefined function: '{expr.name}'",
                    expr,
                    suggestion=ErrorMessageBuilder.did_you_mean(
                        expr.name,
                        available,
                        "Declare it with 'function name(...) ... end'"
                    )
                )

            if signature.arity != argument_count:
                plural = "s" if signature.arity != 1 else ""
                raise self._error(
                    f"Function '{expr.name}' expects {signature.arity} argument{plural}, got {argument_count}",
                    expr,
                    suggestion=f"Provide exactly {signature.arity} argument{plural}"
                )

        for arg in expr.arguments:
            self._compile_expression(arg, ctx, scope)

        ctx.emit(Opcode.CALL, argument_count, target=expr.name, line=expr.line)

    def _error(self, message: str, node: QuillASTNode | None, context: str | None = None,
               expected: str | None = None, suggestion: str | None = None,
               example: str | None = None) -> QuillCompileError:
        """Build a compile error pointing at an AST node."""
        return QuillCompileError(
            message=message,
            context=context,
            expected=expected,
            suggestion=suggestion,
            example=example,
            line=node.line if node is not None else None,
            column=node.column if node is not None else None,
            source=self._source or None
        )
