"""Quill: a small imperative language compiled to bytecode for a stack virtual machine."""

# Main API
from quill.quill import Quill

# Exceptions
from quill.quill_error import (
    QuillError, QuillTokenError, QuillParseError, QuillCompileError, QuillRuntimeError, ErrorMessageBuilder
)
from quill.quill_bytecode_validator import QuillBytecodeValidationError, QuillBytecodeValidator, ValidationErrorType

# Bytecode and symbols
from quill.quill_bytecode import Instruction, Opcode, QuillLabel, QuillProgram
from quill.quill_symbol_table import QuillFunctionSignature, QuillLocalScope, QuillSymbol, QuillSymbolTable

# Lower-level components (for advanced usage)
from quill.quill_token import QuillToken, QuillTokenType
from quill.quill_lexer import QuillLexer
from quill.quill_parser import QuillParser
from quill.quill_compiler import QuillCompiler
from quill.quill_vm import Frame, QuillVM, QuillTraceWatcher
from quill.quill_builtins import QuillBuiltinRegistry
from quill.quill_trace import QuillBufferingTraceWatcher, QuillStdoutTraceWatcher


__all__ = [
    # Main API
    "Quill",

    # Exceptions
    "QuillError", "QuillTokenError", "QuillParseError", "QuillCompileError", "QuillRuntimeError",
    "ErrorMessageBuilder", "QuillBytecodeValidationError", "QuillBytecodeValidator", "ValidationErrorType",

    # Bytecode and symbols
    "Instruction", "Opcode", "QuillLabel", "QuillProgram",
    "QuillFunctionSignature", "QuillLocalScope", "QuillSymbol", "QuillSymbolTable",

    # Lower-level components
    "QuillToken", "QuillTokenType", "QuillLexer", "QuillParser", "QuillCompiler", "Frame", "QuillVM",
    "QuillTraceWatcher", "QuillBuiltinRegistry", "QuillBufferingTraceWatcher", "QuillStdoutTraceWatcher"
]
