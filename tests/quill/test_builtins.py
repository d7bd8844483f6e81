"""Tests for Quill builtin functions."""

import io

import pytest

from quill import QuillBuiltinRegistry


class TestBuiltinRegistry:
    """Test the builtin registry."""

    def test_print_is_the_only_builtin(self):
        """Test the builtin table."""
        assert QuillBuiltinRegistry.BUILTIN_TABLE == ['print']
        assert QuillBuiltinRegistry.is_builtin('print')
        assert not QuillBuiltinRegistry.is_builtin('printf')

    def test_print_writes_space_separated_values(self):
        """Test print formatting and its result."""
        output = io.StringIO()
        registry = QuillBuiltinRegistry(output)
        assert registry.call('print', [1, 2, 3]) == 0
        assert output.getvalue() == "1 2 3\n"

    def test_print_without_arguments(self):
        """Test that print with no arguments writes an empty line."""
        output = io.StringIO()
        QuillBuiltinRegistry(output).call('print', [])
        assert output.getvalue() == "\n"

    def test_print_defaults_to_stdout(self, capsys):
        """Test that print writes to stdout when no stream is given."""
        QuillBuiltinRegistry().call('print', [-7])
        assert capsys.readouterr().out == "-7\n"


class TestPrintBuiltin:
    """Test print through compiled programs."""

    @pytest.mark.parametrize("source,expected", [
        ("print(1, 2, 3);", "1 2 3\n"),
        ("print(10 - 3);", "7\n"),
        ("print();", "\n"),
        ("print(1); print(2);", "1\n2\n"),
        ("local x = 4; print(x, x + 1);", "4 5\n"),
    ])
    def test_print_output(self, quill, output, source, expected):
        """Test print output in source order."""
        quill.run(source)
        assert output.getvalue() == expected

    def test_print_returns_zero(self, quill, output):
        """Test that print's value can be used in an expression."""
        assert quill.run("return print(9) + 5;") == 5
        assert output.getvalue() == "9\n"

    def test_print_inside_function(self, quill, output):
        """Test print from a user function, and that arguments are evaluated first."""
        quill.run("function show(a, b) print(a, b); return a; end print(show(1, 2), 3);")
        assert output.getvalue() == "1 2\n1 3\n"
