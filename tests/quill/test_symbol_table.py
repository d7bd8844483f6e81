"""Tests for the Quill symbol table and local scopes."""

import pytest

from quill import QuillLabel, QuillLocalScope, QuillSymbol, QuillSymbolTable


class TestQuillSymbolTable:
    """Test function and label symbols."""

    def test_declare_then_define(self):
        """Test the two-phase lifecycle of a function symbol."""
        table = QuillSymbolTable()
        table.declare_function("add", 2, line=3, column=1)
        assert table.is_declared("add")
        assert table.signature("add").arity == 2
        assert table.resolve("add") is None
        assert table.undefined_functions() == ["add"]

        table.define_function("add", location=5, local_count=1)
        assert table.resolve("add") == QuillSymbol(location=5, arity=2, local_count=1)
        assert table.undefined_functions() == []

    def test_duplicate_declaration(self):
        """Test that declaring a function twice raises."""
        table = QuillSymbolTable()
        table.declare_function("f", 0)
        with pytest.raises(KeyError):
            table.declare_function("f", 1)

    def test_define_undeclared(self):
        """Test that only declared functions can be defined."""
        with pytest.raises(KeyError):
            QuillSymbolTable().define_function("f", 0, 0)

    def test_define_twice(self):
        """Test that a function is defined exactly once."""
        table = QuillSymbolTable()
        table.declare_function("f", 0)
        table.define_function("f", 1, 0)
        with pytest.raises(ValueError):
            table.define_function("f", 2, 0)

    def test_labels(self):
        """Test label creation, numbering and placement."""
        table = QuillSymbolTable()
        first = table.new_label("if_else")
        second = table.new_label("if_else")
        other = table.new_label("function_done")
        assert (str(first), str(second), str(other)) == ("if_else_0", "if_else_1", "function_done_0")
        assert table.unplaced_labels() == [first, second, other]

        table.place_label(second, 9)
        assert table.resolve(second) == QuillSymbol(location=9)
        assert table.resolve(first) is None
        assert table.unplaced_labels() == [first, other]

        with pytest.raises(ValueError):
            table.place_label(second, 10)

    def test_labels_and_functions_do_not_collide(self):
        """Test that a function named like a label resolves separately."""
        table = QuillSymbolTable()
        label = table.new_label("if_else")
        table.place_label(label, 4)
        table.declare_function("if_else_0", 0)
        table.define_function("if_else_0", 1, 0)
        assert table.resolve(label).location == 4
        assert table.resolve("if_else_0").location == 1
        assert table.resolve(QuillLabel("if_else", 1)) is None

    def test_seal(self):
        """Test that a sealed table rejects every mutation but still resolves."""
        table = QuillSymbolTable()
        table.declare_function("f", 0)
        table.define_function("f", 0, 0)
        table.seal()

        with pytest.raises(RuntimeError, match="sealed"):
            table.declare_function("g", 0)

        with pytest.raises(RuntimeError):
            table.new_label("if_else")

        assert table.resolve("f") is not None
        assert table.function_names() == ["f"]

    def test_dump(self):
        """Test the debugging dump lists every symbol."""
        table = QuillSymbolTable()
        table.declare_function("f", 1)
        table.define_function("f", 1, 0)
        table.place_label(table.new_label("function_done"), 4)
        dump = table.dump()
        assert "f: QuillSymbol(location=1, arity=1, locals=0)" in dump
        assert "function_done_0: QuillSymbol(location=4, arity=0, locals=0)" in dump


class TestQuillLocalScope:
    """Test compile-time slot assignment."""

    def test_parameters_then_locals(self):
        """Test that locals follow parameters and are counted separately."""
        scope = QuillLocalScope()
        assert scope.declare_parameter("a") == 0
        assert scope.declare_parameter("b") == 1
        assert scope.declare("c") == 2
        assert scope.parameter_count == 2
        assert scope.local_count == 1
        assert scope.lookup("b") == 1
        assert scope.lookup("missing") is None

    def test_redeclaration_takes_new_slot(self):
        """Test that redeclaring a name shadows it with a fresh slot."""
        scope = QuillLocalScope()
        scope.declare("x")
        assert scope.declare("x") == 1
        assert scope.lookup("x") == 1
        assert scope.local_count == 2
