"""Token types and token representation for Quill source."""

from dataclasses import dataclass
from enum import Enum


class QuillTokenType(Enum):
    """Token types for Quill source."""
    IDENTIFIER = "IDENTIFIER"
    KEYWORD = "KEYWORD"
    NUMBER = "NUMBER"
    SYNTAX = "SYNTAX"


KEYWORDS = frozenset({"function", "end", "if", "then", "local", "return"})

SYNTAX_CHARACTERS = frozenset({";", "=", "+", "-", "<", "(", ")", ","})


@dataclass
class QuillToken:
    """Represents a single token in Quill source."""
    type: QuillTokenType
    value: str
    line: int = 1  # Line number (1-indexed)
    column: int = 1  # Column number (1-indexed)

    @property
    def length(self) -> int:
        """Number of source characters covered by this token."""
        return len(self.value)

    def is_keyword(self, value: str) -> bool:
        """Return True if this token is the given keyword."""
        return self.type == QuillTokenType.KEYWORD and self.value == value

    def is_syntax(self, value: str) -> bool:
        """Return True if this token is the given syntax character."""
        return self.type == QuillTokenType.SYNTAX and self.value == value

    def __repr__(self) -> str:
        return f"QuillToken({self.type.name}, {self.value!r}, line={self.line}, col={self.column})"
