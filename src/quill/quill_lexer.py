"""Lexer for Quill source with detailed error messages."""

from typing import List

from quill.quill_error import QuillTokenError
from quill.quill_token import KEYWORDS, SYNTAX_CHARACTERS, QuillToken, QuillTokenType


class QuillLexer:
    """Lexes Quill source into tokens with detailed error messages."""

    def lex(self, source: str) -> List[QuillToken]:
        """
        Lex Quill source with detailed error reporting.

        Args:
            source: The source string to lex

        Returns:
            List of tokens

        Raises:
            QuillTokenError: If an unrecognized character is found
        """
        tokens: List[QuillToken] = []
        i = 0
        line = 1
        column = 1

        while i < len(source):
            ch = source[i]

            if ch == '\n':
                line += 1
                column = 1
                i += 1
                continue

            if ch.isspace():
                column += 1
                i += 1
                continue

            if self._is_digit(ch):
                start = i
                while i < len(source) and self._is_digit(source[i]):
                    i += 1

                # Digits running straight into letters (e.g. "12abc") are neither a number nor an identifier
                if i < len(source) and self._is_identifier_char(source[i]):
                    end = i
                    while end < len(source) and self._is_identifier_char(source[end]):
                        end += 1

                    raise QuillTokenError(
                        message=f"Invalid number literal: {source[start:end]}",
                        line=line,
                        column=column,
                        source=source,
                        received=f"Token: {source[start:end]}",
                        expected="Decimal digits only, or an identifier that does not start with a digit",
                        example="Correct: 42, count2\nIncorrect: 2count"
                    )

                text = source[start:i]
                tokens.append(QuillToken(QuillTokenType.NUMBER, text, line, column))
                column += len(text)
                continue

            if self._is_identifier_char(ch):
                start = i
                while i < len(source) and self._is_identifier_char(source[i]):
                    i += 1

                text = source[start:i]
                token_type = QuillTokenType.KEYWORD if text in KEYWORDS else QuillTokenType.IDENTIFIER
                tokens.append(QuillToken(token_type, text, line, column))
                column += len(text)
                continue

            if ch in SYNTAX_CHARACTERS:
                tokens.append(QuillToken(QuillTokenType.SYNTAX, ch, line, column))
                column += 1
                i += 1
                continue

            raise QuillTokenError(
                message=f"Unrecognized character while lexing: {ch!r}",
                line=line,
                column=column,
                source=source,
                received=f"Character: {ch!r}",
                expected="Identifier, number, keyword, or one of ; = + - < ( ) ,",
                suggestion="Remove the character or replace it with a supported operator"
            )

        return tokens

    def _is_identifier_char(self, ch: str) -> bool:
        """Return True if ch may appear in an identifier."""
        return ch.isalnum() or ch == '_'

    def _is_digit(self, ch: str) -> bool:
        """Return True if ch is an ASCII decimal digit."""
        return '0' <= ch <= '9'
