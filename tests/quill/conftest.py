"""Shared fixtures and utilities for Quill tests."""

import io
from typing import List

import pytest

from quill import Quill, QuillProgram, QuillVM


@pytest.fixture
def output():
    """In-memory stream collecting print output."""
    return io.StringIO()


@pytest.fixture
def quill(output):
    """Create a fresh Quill instance whose print output goes to the output fixture."""
    return Quill(output=output)


@pytest.fixture
def quill_custom(output):
    """Factory for Quill instances with custom configuration."""
    def _create_quill(
        max_call_depth: int = 100,
        discard_expression_values: bool = True,
        validate: bool = True
    ) -> Quill:
        return Quill(
            max_call_depth=max_call_depth,
            discard_expression_values=discard_expression_values,
            output=output,
            validate=validate
        )
    return _create_quill


class QuillTestHelpers:
    """Helper utilities for Quill testing."""

    @staticmethod
    def compile(source: str, discard_expression_values: bool = True) -> QuillProgram:
        """Compile source with a throwaway Quill instance."""
        return Quill(discard_expression_values=discard_expression_values).compile(source)

    @staticmethod
    def opcode_names(program: QuillProgram) -> List[str]:
        """Names of the opcodes in a program, in order."""
        return [instr.opcode.name for instr in program.instructions]

    @staticmethod
    def assert_returns(quill: Quill, source: str, expected: int) -> None:
        """Assert that running source returns the expected value."""
        result = quill.run(source)
        assert result == expected, f"Expected {expected!r} from {source!r}, got {result!r}"

    @staticmethod
    def run_keeping_values(source: str, output: io.StringIO | None = None) -> QuillVM:
        """Run source with expression values kept on the stack and return the VM."""
        quill = Quill(discard_expression_values=False, output=output)
        quill.run(source)
        assert quill.vm is not None
        return quill.vm


@pytest.fixture
def helpers():
    """Provide test helper utilities."""
    return QuillTestHelpers
