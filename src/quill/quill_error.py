"""Exception classes for Quill with detailed context."""

import difflib
from typing import List


class QuillError(Exception):
    """Base exception for Quill errors with detailed context information."""

    def __init__(
        self,
        message: str,
        context: str | None = None,
        expected: str | None = None,
        received: str | None = None,
        suggestion: str | None = None,
        example: str | None = None,
        line: int | None = None,
        column: int | None = None,
        source: str | None = None
    ):
        """
        Initialize detailed error.

        Args:
            message: Core error description
            context: Additional context information
            expected: What was expected
            received: What was actually received
            suggestion: Suggestion for fixing the error
            example: Example of correct usage
            line: Line number (1-indexed)
            column: Column number (1-indexed)
            source: Source code for context display
        """
        self.message = message
        self.context = context
        self.expected = expected
        self.received = received
        self.suggestion = suggestion
        self.example = example
        self.line = line
        self.column = column
        self.source = source

        super().__init__(self._format_detailed_message())

    def _get_context_lines(self, source: str, line_num: int, before: int = 2, after: int = 1) -> List[tuple[int, str]]:
        """
        Get lines of context around a specific line.

        Args:
            source: The source code string
            line_num: Line number (1-indexed)
            before: Number of lines before to include
            after: Number of lines after to include

        Returns:
            List of (line_number, line_content) tuples
        """
        lines = source.split('\n')
        start_line = max(1, line_num - before)
        end_line = min(len(lines), line_num + after)
        return [(i, lines[i - 1]) for i in range(start_line, end_line + 1)]

    def _format_context_with_marker(self, source: str, line_num: int, column: int | None) -> str:
        """
        Format source context with a marker pointing to the error location.

        Args:
            source: The source code string
            line_num: Line number (1-indexed)
            column: Column number (1-indexed), optional

        Returns:
            Formatted string with context and marker
        """
        context_lines = self._get_context_lines(source, line_num)
        if not context_lines:
            return "(no context available)"

        line_num_width = len(str(max(ln for ln, _ in context_lines)))

        result_lines = []
        for ln, content in context_lines:
            indicator = ">" if ln == line_num else " "
            result_lines.append(f"  {indicator} {ln:>{line_num_width}}: {content}")

            if ln == line_num and column is not None:
                # "  " + indicator + " " + line number + ": " puts column 1 under the first character
                padding = 2 + 1 + 1 + line_num_width + 2 + (column - 1)
                result_lines.append(" " * padding + "^ Near here")

        return "\n".join(result_lines)

    def _format_detailed_message(self) -> str:
        """Format the error message with all available details."""
        parts = [f"Error: {self.message}"]

        if self.line is not None:
            if self.column is not None:
                parts.append(f"Location: Line {self.line}, Column {self.column}")

            else:
                parts.append(f"Location: Line {self.line}")

            if self.source:
                context_str = self._format_context_with_marker(self.source, self.line, self.column)
                parts.append(f"\nSource Context:\n{context_str}")

        if self.received:
            parts.append(f"Received: {self.received}")

        if self.expected:
            parts.append(f"Expected: {self.expected}")

        if self.context:
            parts.append(f"Context: {self.context}")

        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")

        if self.example:
            parts.append(f"Example: {self.example}")

        return "\n".join(parts)


class QuillTokenError(QuillError):
    """Tokenization errors with detailed context."""


class QuillParseError(QuillError):
    """Parsing errors with detailed context."""


class QuillCompileError(QuillError):
    """Compilation errors with detailed context."""


class QuillRuntimeError(QuillError):
    """Execution errors with detailed context."""


class ErrorMessageBuilder:
    """Helper class for building detailed error messages."""

    @staticmethod
    def suggest_similar_names(target: str, available_names: List[str], max_suggestions: int = 3) -> List[str]:
        """Suggest similar names using fuzzy matching."""
        if not target or not available_names:
            return []

        return difflib.get_close_matches(target, available_names, n=max_suggestions, cutoff=0.6)

    @staticmethod
    def did_you_mean(target: str, available_names: List[str], fallback: str) -> str:
        """Build a 'Did you mean' suggestion, or return the fallback text if nothing is close."""
        similar = ErrorMessageBuilder.suggest_similar_names(target, available_names)
        if similar:
            return f"Did you mean: {', '.join(similar)}?"

        return fallback
