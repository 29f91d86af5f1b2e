"""Tests for the ast-based Python parser."""

import textwrap

import pytest

from function_insight.exceptions import ParseError
from function_insight.scanning import PythonParser


def parse(source: str, path: str = "pkg/mod.py"):
    return PythonParser().parse(textwrap.dedent(source).lstrip("\n"), path)


def by_name(parsed):
    return {fn.local_name: fn for fn in parsed.functions}


class TestFunctionDefinitions:
    """Definitions, names and parameters."""

    def test_no_decision_points_gives_complexity_one(self):
        """A straight-line function has cyclomatic complexity exactly 1."""
        parsed = parse(
            """
            def add(a, b):
                result = a + b
                return result
            """
        )
        fn = by_name(parsed)["add"]
        assert fn.decision_points == 0
        assert fn.cyclomatic_complexity == 1

    def test_methods_are_qualified_by_class(self):
        """Methods are named Class.method."""
        parsed = parse(
            """
            class Cart:
                def add(self, item, qty=1):
                    return item

                @staticmethod
                def empty(cls_like):
                    return []
            """
        )
        fns = by_name(parsed)
        assert fns["Cart.add"].qualified_name == "pkg/mod.py::Cart.add"
        assert fns["Cart.add"].params == ("item", "qty")
        assert fns["Cart.add"].class_name == "Cart"
        # staticmethod keeps its first parameter
        assert fns["Cart.empty"].params == ("cls_like",)

    def test_nested_functions_are_named_by_scope(self):
        """Nested functions are named by their enclosing scope."""
        parsed = parse(
            """
            def outer(x):
                def inner(y):
                    if y:
                        return y
                return inner(x)
            """
        )
        fns = by_name(parsed)
        assert set(fns) == {"outer", "outer.inner"}
        # The nested if belongs to inner, not outer
        assert fns["outer"].decision_points == 0
        assert fns["outer.inner"].decision_points == 1

    def test_property_accessors_get_distinct_names(self):
        """Property getter and setter do not collide."""
        parsed = parse(
            """
            class Box:
                @property
                def size(self):
                    return self._size

                @size.setter
                def size(self, value):
                    self._size = value
            """
        )
        assert {"Box.size", "Box.size.setter"} <= set(by_name(parsed))

    def test_overload_stubs_are_skipped(self):
        """typing.overload stubs are not definitions."""
        parsed = parse(
            """
            from typing import overload

            @overload
            def f(x: int) -> int: ...
            @overload
            def f(x: str) -> str: ...
            def f(x):
                return x
            """
        )
        assert [fn.local_name for fn in parsed.functions] == ["f"]

    def test_variadic_parameters(self):
        """Star parameters are listed by name."""
        parsed = parse(
            """
            def f(a, /, b, *args, c, **kwargs):
                pass
            """
        )
        assert by_name(parsed)["f"].params == ("a", "b", "*args", "c", "**kwargs")

    def test_line_range_includes_decorators(self):
        """A definition starts at its first decorator."""
        parsed = parse(
            """
            import functools

            @functools.lru_cache()
            def cached(n):
                # comment lines are not code

                return n
            """
        )
        fn = by_name(parsed)["cached"]
        assert fn.line_range == (3, 7)
        assert fn.lines_of_code == 1


class TestDecisionPoints:
    """Cyclomatic complexity counting."""

    def test_counts_branches_loops_and_handlers(self):
        """Branches, loops and handlers each add a decision point."""
        parsed = parse(
            """
            def f(items):
                for item in items:
                    if item > 1:
                        pass
                    elif item < 0:
                        pass
                while False:
                    pass
                try:
                    pass
                except ValueError:
                    pass
                return 1 if items else 0
            """
        )
        # for, if, elif, while, except, conditional expression
        assert by_name(parsed)["f"].cyclomatic_complexity == 7

    def test_boolean_operands_and_comprehensions(self):
        """Boolean chains and comprehensions add decision points."""
        parsed = parse(
            """
            def f(a, b, c, xs):
                ok = a and b and c
                return [x for x in xs if x if ok]
            """
        )
        # 2 for the and-chain, 1 for the comprehension, 2 for its ifs
        assert by_name(parsed)["f"].decision_points == 5


class TestCalls:
    """Call-site collection."""

    def test_calls_are_attributed_to_innermost_function(self):
        """Calls belong to the innermost enclosing function."""
        parsed = parse(
            """
            class Service:
                def run(self):
                    self.load()
                    helper(1)
                    os.path.join("a", "b")
                    super().run()

            def helper(n):
                return str(n)
            """
        )
        targets = {(c.caller, c.target) for c in parsed.calls}
        assert ("pkg/mod.py::Service.run", "self.load") in targets
        assert ("pkg/mod.py::Service.run", "helper") in targets
        assert ("pkg/mod.py::Service.run", "os.path.join") in targets
        assert ("pkg/mod.py::Service.run", "super.run") in targets
        assert ("pkg/mod.py::helper", "str") in targets

    def test_module_level_calls_are_ignored(self):
        """Calls outside any function are not recorded."""
        parsed = parse(
            """
            print("import time")

            def f():
                pass
            """
        )
        assert parsed.calls == []


class TestFind:
    def test_exact_local_name_wins(self):
        """An exact local name beats a simple-name match."""
        parsed = parse(
            """
            def run():
                pass

            class Job:
                def run(self):
                    pass
            """
        )
        assert [fn.local_name for fn in parsed.find("Job.run")] == ["Job.run"]
        assert [fn.local_name for fn in parsed.find("run")] == ["run"]

    def test_bare_name_falls_back_to_simple_name(self):
        """A bare name matches methods by their simple name."""
        parsed = parse(
            """
            class Job:
                def start(self):
                    pass
            """
        )
        assert [fn.local_name for fn in parsed.find("start")] == ["Job.start"]


class TestParseErrors:
    def test_syntax_error_carries_location(self):
        """Syntax errors report line and column."""
        with pytest.raises(ParseError) as exc_info:
            parse(
                """
                def broken(:
                    pass
                """
            )
        err = exc_info.value
        assert err.path == "pkg/mod.py"
        assert err.language == "python"
        assert err.location is not None
        assert err.location[0] == 1
