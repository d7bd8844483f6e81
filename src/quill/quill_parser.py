"""Recursive-descent parser for Quill with detailed error messages."""

from typing import List, Tuple

from quill.quill_ast import (
    QuillAST, QuillASTBinaryOp, QuillASTCall, QuillASTExpression, QuillASTExpressionStatement,
    QuillASTFunction, QuillASTIdentifier, QuillASTIf, QuillASTLocal, QuillASTNumber, QuillASTReturn,
    QuillASTStatement
)
from quill.quill_error import QuillParseError
from quill.quill_token import QuillToken, QuillTokenType


class QuillParser:
    """Parses tokens into a list of Quill statements."""

    def __init__(self, tokens: List[QuillToken], source: str = ""):
        """
        Initialize parser with tokens and original source.

        Args:
            tokens: List of tokens to parse
            source: Original source string for error context
        """
        self.tokens = tokens
        self.pos = 0
        self.current_token: QuillToken | None = tokens[0] if tokens else None
        self.source = source

    def parse(self) -> QuillAST:
        """
        Parse all tokens into a program.

        Returns:
            Ordered list of top-level statements

        Raises:
            QuillParseError: If parsing fails
        """
        statements: QuillAST = []
        while self.current_token is not None:
            statements.append(self._parse_statement())

        return statements

    def _parse_statement(self) -> QuillASTStatement:
        """Parse a single statement."""
        token = self._expect_token("statement")

        if token.is_keyword("function"):
            return self._parse_function()

        if token.is_keyword("if"):
            return self._parse_if()

        if token.is_keyword("local"):
            return self._parse_local()

        if token.is_keyword("return"):
            self._advance()
            expr = self._parse_expression()
            self._expect_syntax(";", "after return expression")
            return QuillASTReturn(expr, line=token.line, column=token.column)

        if token.type == QuillTokenType.KEYWORD:
            raise self._error(
                f"Unexpected keyword: {token.value}",
                token,
                expected="function, if, local, return, or an expression",
                suggestion="Check that every 'function' and 'if' has a matching 'end'"
            )

        expr = self._parse_expression()
        self._expect_syntax(";", "after expression")
        return QuillASTExpressionStatement(expr, line=token.line, column=token.column)

    def _parse_function(self) -> QuillASTFunction:
        """Parse `function name(params) body end`."""
        start = self._expect_token("function declaration")
        self._advance()  # consume 'function'

        name_token = self._expect_identifier("for function name")
        self._expect_syntax("(", "in function declaration")

        parameters: List[QuillASTIdentifier] = []
        while not self._at_syntax(")"):
            if parameters:
                self._expect_syntax(",", "or close parenthesis after parameter in function declaration")

            param_token = self._expect_identifier("for parameter name")
            parameters.append(QuillASTIdentifier(param_token.value, line=param_token.line, column=param_token.column))

        self._advance()  # consume ')'

        body = self._parse_block(f"function '{name_token.value}'")
        return QuillASTFunction(
            name_token.value,
            tuple(parameters),
            body,
            line=start.line,
            column=start.column
        )

    def _parse_if(self) -> QuillASTIf:
        """Parse `if test then body end`."""
        start = self._expect_token("if statement")
        self._advance()  # consume 'if'

        test = self._parse_expression()

        token = self._expect_token("'then' after if test")
        if not token.is_keyword("then"):
            raise self._error(
                "Expected 'then' after if test",
                token,
                expected="then",
                example="if x < 1 then return 0; end"
            )

        self._advance()  # consume 'then'

        body = self._parse_block("if statement")
        return QuillASTIf(test, body, line=start.line, column=start.column)

    def _parse_local(self) -> QuillASTLocal:
        """Parse `local name = expression;`."""
        start = self._expect_token("local declaration")
        self._advance()  # consume 'local'

        name_token = self._expect_identifier("for local name")
        self._expect_syntax("=", "in local declaration")
        expr = self._parse_expression()
        self._expect_syntax(";", "after local declaration")
        return QuillASTLocal(name_token.value, expr, line=start.line, column=start.column)

    def _parse_block(self, owner: str) -> Tuple[QuillASTStatement, ...]:
        """Parse statements up to and including the closing 'end'."""
        statements: List[QuillASTStatement] = []
        while True:
            if self.current_token is None:
                raise QuillParseError(
                    message=f"Missing 'end' for {owner}",
                    expected="end",
                    suggestion=f"Add 'end' to close the {owner}",
                    line=self._last_line(),
                    source=self.source
                )

            if self.current_token.is_keyword("end"):
                self._advance()
                return tuple(statements)

            statements.append(self._parse_statement())

    def _parse_expression(self) -> QuillASTExpression:
        """Parse a comparison: additive ('<' additive)*."""
        left = self._parse_additive()
        while self.current_token is not None and self.current_token.is_syntax("<"):
            op = self.current_token
            self._advance()
            right = self._parse_additive()
            left = QuillASTBinaryOp(op.value, left, right, line=op.line, column=op.column)

        return left

    def _parse_additive(self) -> QuillASTExpression:
        """Parse primary (('+' | '-') primary)*."""
        left = self._parse_primary()
        while self.current_token is not None and (self.current_token.is_syntax("+") or self.current_token.is_syntax("-")):
            op = self.current_token
            self._advance()
            right = self._parse_primary()
            left = QuillASTBinaryOp(op.value, left, right, line=op.line, column=op.column)

        return left

    def _parse_primary(self) -> QuillASTExpression:
        """Parse a number, identifier, call, or parenthesized expression."""
        token = self._expect_token("expression")

        if token.type == QuillTokenType.NUMBER:
            self._advance()
            return QuillASTNumber(token.value, line=token.line, column=token.column)

        if token.type == QuillTokenType.IDENTIFIER:
            self._advance()
            if self._at_syntax("("):
                return self._parse_call(token)

            return QuillASTIdentifier(token.value, line=token.line, column=token.column)

        if token.is_syntax("("):
            self._advance()
            expr = self._parse_expression()
            self._expect_syntax(")", "to close parenthesized expression")
            return expr

        raise self._error(
            f"Expected valid expression, found: {token.value}",
            token,
            expected="Number, identifier, function call, or '('",
            example="1 + 2, x < 10, add(1, 2)"
        )

    def _parse_call(self, name_token: QuillToken) -> QuillASTCall:
        """Parse the argument list of `name(args)`; the name is already consumed."""
        self._advance()  # consume '('

        arguments: List[QuillASTExpression] = []
        while not self._at_syntax(")"):
            if arguments:
                self._expect_syntax(",", "between function call arguments")

            arguments.append(self._parse_expression())

        self._advance()  # consume ')'
        return QuillASTCall(name_token.value, tuple(arguments), line=name_token.line, column=name_token.column)

    def _at_syntax(self, value: str) -> bool:
        """
        Return True if the current token is the given syntax character.

        Raises:
            QuillParseError: If input ends here, since every caller is inside an unclosed construct
        """
        token = self._expect_token(f"'{value}'")
        return token.is_syntax(value)

    def _expect_token(self, what: str) -> QuillToken:
        """Return the current token, raising if the input has ended."""
        if self.current_token is None:
            raise QuillParseError(
                message=f"Unexpected end of input, expected {what}",
                expected=what,
                line=self._last_line(),
                source=self.source
            )

        return self.current_token

    def _expect_syntax(self, value: str, where: str) -> None:
        """Consume the given syntax character or raise."""
        token = self._expect_token(f"'{value}' {where}")
        if not token.is_syntax(value):
            raise self._error(f"Expected '{value}' {where}", token, expected=value)

        self._advance()

    def _expect_identifier(self, what: str) -> QuillToken:
        """Consume an identifier token or raise."""
        token = self._expect_token(f"identifier {what}")
        if token.type != QuillTokenType.IDENTIFIER:
            raise self._error(f"Expected valid identifier {what}", token, expected="identifier")

        self._advance()
        return token

    def _error(self, message: str, token: QuillToken, expected: str | None = None,
               suggestion: str | None = None, example: str | None = None) -> QuillParseError:
        """Build a parse error pointing at a token."""
        return QuillParseError(
            message=message,
            received=f"Token: {token.value} (type: {token.type.name})",
            expected=expected,
            suggestion=suggestion,
            example=example,
            line=token.line,
            column=token.column,
            source=self.source
        )

    def _last_line(self) -> int | None:
        """Line of the final token, used for end-of-input errors."""
        if not self.tokens:
            return None

        return self.tokens[-1].line

    def _advance(self) -> None:
        """Move to the next token."""
        self.pos += 1
        if self.pos < len(self.tokens):
            self.current_token = self.tokens[self.pos]

        else:
            self.current_token = None
