"""Tests for the bytecode validator.

This tests the validator's ability to catch malformed programs before they run.
"""

import pytest

from quill import Instruction, Opcode, QuillLabel, QuillProgram, QuillSymbol, QuillSymbolTable, QuillVM
from quill.quill_bytecode_validator import QuillBytecodeValidationError, ValidationErrorType, validate_bytecode


def make_program(instructions, functions=None, labels=None) -> QuillProgram:
    """Build a program from raw instructions plus (name, arity, location, local_count) functions and (label, location) labels."""
    table = QuillSymbolTable()
    for name, arity, location, local_count in functions or []:
        table.declare_function(name, arity)
        table.define_function(name, location, local_count)

    for label, location in labels or []:
        table.labels[label] = QuillSymbol(location=location)

    return QuillProgram(tuple(instructions), table)


class TestBytecodeValidator:
    """Test bytecode validation."""

    def test_valid_compiled_program(self, helpers):
        """Test that compiler output passes validation."""
        program = helpers.compile(
            "function sum(n) if n < 1 then return 0; end return n + sum(n - 1); end print(sum(3));"
        )
        validate_bytecode(program)

    def test_valid_handwritten_program(self):
        """Test a small hand-assembled program."""
        program = make_program([
            Instruction(Opcode.PUSH_CONSTANT, 42),
            Instruction(Opcode.RETURN),
        ])
        validate_bytecode(program)

    def test_unresolved_jump_target(self):
        """Test that a jump to an unplaced label is caught."""
        program = make_program([Instruction(Opcode.JUMP, target=QuillLabel("if_else", 5))])

        with pytest.raises(QuillBytecodeValidationError) as exc_info:
            validate_bytecode(program)

        assert exc_info.value.error_type == ValidationErrorType.UNRESOLVED_TARGET
        assert exc_info.value.instruction_index == 0
        assert exc_info.value.message.startswith("Bytecode validation error:")

    def test_missing_target(self):
        """Test that a branch without a target is caught."""
        program = make_program([
            Instruction(Opcode.PUSH_CONSTANT, 1),
            Instruction(Opcode.BRANCH_IF_FALSE),
        ])

        with pytest.raises(QuillBytecodeValidationError) as exc_info:
            validate_bytecode(program)

        assert exc_info.value.error_type == ValidationErrorType.UNRESOLVED_TARGET
        assert "has no target" in exc_info.value.message

    def test_unknown_function(self):
        """Test that a call to a function with no symbol is caught."""
        program = make_program([Instruction(Opcode.CALL, 0, target="missing")])

        with pytest.raises(QuillBytecodeValidationError) as exc_info:
            validate_bytecode(program)

        assert exc_info.value.error_type == ValidationErrorType.UNRESOLVED_TARGET

    def test_call_arity_mismatch(self):
        """Test that a call must pass the callee's arity."""
        program = make_program(
            [
                Instruction(Opcode.CALL, 0, target="f"),
                Instruction(Opcode.BIND_ARGUMENT, 0, -1),
                Instruction(Opcode.LOAD_SLOT, 0),
                Instruction(Opcode.RETURN),
            ],
            functions=[("f", 1, 1, 0)]
        )

        with pytest.raises(QuillBytecodeValidationError) as exc_info:
            validate_bytecode(program)

        assert exc_info.value.error_type == ValidationErrorType.ARITY_MISMATCH

    def test_builtin_calls_need_no_symbol(self):
        """Test that print is accepted with any argument count."""
        program = make_program([
            Instruction(Opcode.PUSH_CONSTANT, 1),
            Instruction(Opcode.PUSH_CONSTANT, 2),
            Instruction(Opcode.CALL, 2, target="print"),
        ])
        validate_bytecode(program)

    def test_function_location_outside_program(self):
        """Test that a function must start inside the program."""
        program = make_program([Instruction(Opcode.RETURN)], functions=[("f", 0, 10, 0)])

        with pytest.raises(QuillBytecodeValidationError) as exc_info:
            validate_bytecode(program)

        assert exc_info.value.error_type == ValidationErrorType.INVALID_LOCATION

    def test_label_may_point_past_last_instruction(self):
        """Test that a label at the end of the program is valid, but not beyond it."""
        label = QuillLabel("if_else", 0)
        instructions = [
            Instruction(Opcode.PUSH_CONSTANT, 0),
            Instruction(Opcode.BRANCH_IF_FALSE, target=label),
        ]
        validate_bytecode(make_program(instructions, labels=[(label, 2)]))

        with pytest.raises(QuillBytecodeValidationError) as exc_info:
            validate_bytecode(make_program(instructions, labels=[(label, 3)]))

        assert exc_info.value.error_type == ValidationErrorType.INVALID_LOCATION

    def test_negative_slot(self):
        """Test that slot operands cannot be negative."""
        program = make_program([Instruction(Opcode.LOAD_SLOT, -1)])

        with pytest.raises(QuillBytecodeValidationError) as exc_info:
            validate_bytecode(program)

        assert exc_info.value.error_type == ValidationErrorType.INVALID_OPERAND

    def test_argument_offset_must_be_negative(self):
        """Test that arguments are addressed below the frame."""
        program = make_program([Instruction(Opcode.BIND_ARGUMENT, 0, 0)])

        with pytest.raises(QuillBytecodeValidationError) as exc_info:
            validate_bytecode(program)

        assert exc_info.value.error_type == ValidationErrorType.INVALID_OPERAND

    def test_unknown_opcode(self):
        """Test that a raw integer is not accepted as an opcode."""
        program = make_program([Instruction(99)])  # type: ignore[arg-type]

        with pytest.raises(QuillBytecodeValidationError) as exc_info:
            validate_bytecode(program)

        assert exc_info.value.error_type == ValidationErrorType.INVALID_OPCODE
        assert exc_info.value.context == "At instruction 0"

    def test_vm_validates_before_running(self, output):
        """Test that a malformed program fails before any instruction executes."""
        program = make_program([
            Instruction(Opcode.PUSH_CONSTANT, 1),
            Instruction(Opcode.CALL, 1, target="print"),
            Instruction(Opcode.JUMP, target=QuillLabel("if_else", 0)),
        ])

        with pytest.raises(QuillBytecodeValidationError):
            QuillVM(output=output).execute(program)

        assert output.getvalue() == ""
