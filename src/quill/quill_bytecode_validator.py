"""
Bytecode validator for the Quill virtual machine.

Checks a program once, before execution, so malformed bytecode is rejected before
any instruction runs.

The validator checks:
- Every jump, branch and call target resolves
- Symbol locations lie inside the program
- Call argument counts match the callee's arity
- Slot operands are non-negative and argument offsets point below the frame
"""

from enum import Enum

from quill.quill_builtins import QuillBuiltinRegistry
from quill.quill_bytecode import Instruction, Opcode, QuillProgram
from quill.quill_error import QuillRuntimeError


class ValidationErrorType(Enum):
    """Types of validation errors."""
    INVALID_OPCODE = "invalid_opcode"
    UNRESOLVED_TARGET = "unresolved_target"
    INVALID_LOCATION = "invalid_location"
    ARITY_MISMATCH = "arity_mismatch"
    INVALID_OPERAND = "invalid_operand"


class QuillBytecodeValidationError(QuillRuntimeError):
    """Bytecode validation error with the offending instruction."""

    def __init__(
        self,
        error_type: ValidationErrorType,
        message: str,
        instruction_index: int | None = None,
        instruction: Instruction | None = None
    ):
        self.error_type = error_type
        self.instruction_index = instruction_index
        self.instruction = instruction

        context = None
        if instruction_index is not None:
            context = f"At instruction {instruction_index}"
            if instruction is not None:
                context += f": {instruction!r}"

        super().__init__(
            message=f"Bytecode validation error: {message}",
            context=context,
            line=instruction.line if instruction is not None else None
        )


class QuillBytecodeValidator:
    """
    Validates Quill bytecode for correctness before execution.
    """

    def validate(self, program: QuillProgram) -> None:
        """
        Validate a program.

        Raises:
            QuillBytecodeValidationError: If the program is malformed
        """
        self._validate_symbols(program)

        for index, instr in enumerate(program.instructions):
            self._validate_instruction(program, index, instr)

    def _validate_symbols(self, program: QuillProgram) -> None:
        """Check that every symbol points inside the program."""
        size = len(program.instructions)

        for name, symbol in program.symbols.functions.items():
            if not 0 <= symbol.location < size:
                raise QuillBytecodeValidationError(
                    ValidationErrorType.INVALID_LOCATION,
                    f"Function '{name}' has location {symbol.location} outside the program (size {size})"
                )

        # Labels may sit one past the final instruction (end of program)
        for label, symbol in program.symbols.labels.items():
            if not 0 <= symbol.location <= size:
                raise QuillBytecodeValidationError(
                    ValidationErrorType.INVALID_LOCATION,
                    f"Label '{label}' has location {symbol.location} outside the program (size {size})"
                )

    def _validate_instruction(self, program: QuillProgram, index: int, instr: Instruction) -> None:
        """Check one instruction's operands and target."""
        if not isinstance(instr.opcode, Opcode):
            raise QuillBytecodeValidationError(
                ValidationErrorType.INVALID_OPCODE, f"Unknown opcode: {instr.opcode!r}", index
            )

        opcode = instr.opcode

        if opcode in (Opcode.LOAD_SLOT, Opcode.STORE_SLOT, Opcode.BIND_ARGUMENT) and instr.arg1 < 0:
            raise QuillBytecodeValidationError(
                ValidationErrorType.INVALID_OPERAND, f"Negative slot index {instr.arg1}", index, instr
            )

        if opcode == Opcode.BIND_ARGUMENT and instr.arg2 >= 0:
            raise QuillBytecodeValidationError(
                ValidationErrorType.INVALID_OPERAND,
                f"Argument offset {instr.arg2} must be negative (arguments sit below the frame)",
                index,
                instr
            )

        if not opcode.has_target:
            return

        if instr.target is None:
            raise QuillBytecodeValidationError(
                ValidationErrorType.UNRESOLVED_TARGET, f"{opcode.name} has no target", index, instr
            )

        if opcode == Opcode.CALL:
            if instr.arg1 < 0:
                raise QuillBytecodeValidationError(
                    ValidationErrorType.INVALID_OPERAND, f"Negative argument count {instr.arg1}", index, instr
                )

            if isinstance(instr.target, str) and QuillBuiltinRegistry.is_builtin(instr.target):
                return

        symbol = program.symbols.resolve(instr.target)
        if symbol is None:
            raise QuillBytecodeValidationError(
                ValidationErrorType.UNRESOLVED_TARGET, f"Unresolved target '{instr.target}'", index, instr
            )

        if opcode == Opcode.CALL and symbol.arity != instr.arg1:
            raise QuillBytecodeValidationError(
                ValidationErrorType.ARITY_MISMATCH,
                f"Call to '{instr.target}' passes {instr.arg1} arguments, function takes {symbol.arity}",
                index,
                instr
            )


def validate_bytecode(program: QuillProgram) -> None:
    """
    Convenience function to validate a program.

    Raises:
        QuillBytecodeValidationError: If validation fails
    """
    QuillBytecodeValidator().validate(program)
