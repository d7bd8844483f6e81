"""Tests for the quill command line entry point."""

import logging

import pytest

from quill.__main__ import build_argument_parser, main


@pytest.fixture(autouse=True)
def reset_logging():
    """Remove handlers main() installs so tests do not leak them."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    root.setLevel(logging.WARNING)


@pytest.fixture
def program_file(tmp_path):
    """Factory writing source to a file and returning its path."""
    def _write(source: str, name: str = "program.quill") -> str:
        path = tmp_path / name
        path.write_text(source, encoding='utf-8')
        return str(path)
    return _write


class TestMain:
    """Test running files from the command line."""

    def test_runs_program(self, program_file, capsys):
        """Test that print output reaches stdout and the exit status is 0."""
        path = program_file("function sq(x) return x + x; end print(sq(4), 1);")
        assert main([path]) == 0
        assert capsys.readouterr().out == "8 1\n"

    def test_quill_error_exit_status(self, program_file, capsys):
        """Test that a Quill error is reported on stderr with status 1."""
        path = program_file("return y;")
        assert main([path]) == 1
        captured = capsys.readouterr()
        assert "Error: Undefined identifier: 'y'" in captured.err
        assert captured.out == ""

    def test_runtime_error_exit_status(self, program_file, capsys):
        """Test that runtime errors also give status 1."""
        path = program_file("function f() return f(); end f();")
        assert main([path, "--max-call-depth", "5"]) == 1
        assert "Maximum call depth exceeded (5)" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        """Test that an unreadable file gives status 2."""
        assert main([str(tmp_path / "missing.quill")]) == 2
        assert "Cannot read" in capsys.readouterr().err

    def test_disassemble(self, program_file, capsys):
        """Test that --disassemble prints bytecode without running it."""
        path = program_file("print(1);")
        assert main([path, "--disassemble"]) == 0
        out = capsys.readouterr().out
        assert "QuillProgram:" in out
        assert "CALL print 1" in out

    def test_trace(self, program_file, capsys):
        """Test that --trace reports instructions on stderr."""
        path = program_file("print(5);")
        assert main([path, "--trace"]) == 0
        captured = capsys.readouterr()
        assert captured.out == "5\n"
        assert "PUSH_CONSTANT 5" in captured.err

    def test_keep_expression_values(self, program_file):
        """Test that --keep-expression-values compiles without POPs."""
        path = program_file("print(5);")
        assert main([path, "--keep-expression-values", "--no-validate"]) == 0

    def test_log_file(self, program_file, tmp_path):
        """Test that --log-file captures debug logging."""
        path = program_file("return 1;")
        log_path = tmp_path / "quill.log"
        assert main([path, "--log-level", "DEBUG", "--log-file", str(log_path)]) == 0
        log_text = log_path.read_text(encoding='utf-8')
        assert "QuillCompiler - DEBUG - Compiled" in log_text
        assert "QuillVM - DEBUG - Program returned 1" in log_text

    def test_argument_defaults(self):
        """Test the parser's defaults."""
        args = build_argument_parser().parse_args(["x.quill"])
        assert args.max_call_depth == 1000
        assert args.log_level == "WARNING"
        assert not args.disassemble
        assert not args.trace
