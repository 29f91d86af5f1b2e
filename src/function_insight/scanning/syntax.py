"""Syntax models produced by the per-language parsers.

ParsedSource is the stable contract between a parser and the rest of the
pipeline:
    - Per-function: qualified name, parameters, line range, lines of code,
      decision-point count
    - Per-call: enclosing function (the caller), raw call target, line

Qualified names take the form ``path/to/file.py::Class.method``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath

QUALIFIER = "::"


def qualify(path: str, local_name: str) -> str:
    """Build a codebase-unique function identifier."""
    return f"{path}{QUALIFIER}{local_name}"


def split_qualified(qualified_name: str) -> tuple[str, str]:
    """Split ``path::local`` into ``(path, local)``."""
    path, _, local = qualified_name.rpartition(QUALIFIER)
    return path, local


_PACKAGE_FILES = ("__init__", "index")


def module_name(path: str) -> str:
    """Dotted module name of a source file: ``shop/orders.py`` -> ``shop.orders``.

    Package files (``__init__.py``, ``index.js``) name their directory.
    """
    parts = list(PurePosixPath(path).with_suffix("").parts)
    if len(parts) > 1 and parts[-1] in _PACKAGE_FILES:
        parts.pop()
    return ".".join(parts)


@dataclass(frozen=True)
class FunctionDef:
    """A function or method definition.

    Attributes:
        path: File path relative to the repository root
        local_name: Dotted name inside the file (``Class.method``, ``outer.inner``)
        params: Declared parameter names (``self``/``cls`` excluded for methods)
        start_line: First line, including decorators (1-indexed)
        end_line: Last line of the body (1-indexed)
        lines_of_code: Non-empty, non-comment lines of the body
        decision_points: Branching constructs inside the body
        class_name: Enclosing class, if the function is a method
    """

    path: str
    local_name: str
    params: tuple[str, ...]
    start_line: int
    end_line: int
    lines_of_code: int
    decision_points: int = 0
    class_name: str | None = None

    @property
    def qualified_name(self) -> str:
        return qualify(self.path, self.local_name)

    @property
    def simple_name(self) -> str:
        return self.local_name.rsplit(".", 1)[-1]

    @property
    def signature(self) -> tuple[str, ...]:
        return self.params

    @property
    def cyclomatic_complexity(self) -> int:
        """McCabe complexity: decision points + 1."""
        return self.decision_points + 1

    @property
    def line_range(self) -> tuple[int, int]:
        return (self.start_line, self.end_line)


@dataclass(frozen=True)
class CallSite:
    """A call expression inside a function body.

    Attributes:
        caller: Qualified name of the enclosing function
        target: Call target as written (``helper``, ``self.save``, ``os.path.join``)
        line: Line number of the call (1-indexed)
    """

    caller: str
    target: str
    line: int


@dataclass
class ParsedSource:
    """Complete parse of one source file.

    Attributes:
        path: File path relative to the repository root
        language: Parser language name
        functions: All function/method definitions, nested ones included
        calls: Call expressions that occur inside some function body
        imports: Names bound by import statements, mapped to the dotted
            thing they refer to (``np`` -> ``numpy``, ``total`` ->
            ``shop.orders.total``)
    """

    path: str
    language: str
    functions: list[FunctionDef] = field(default_factory=list)
    calls: list[CallSite] = field(default_factory=list)
    imports: dict[str, str] = field(default_factory=dict)

    def find(self, function_name: str) -> list[FunctionDef]:
        """Functions matching a local name (``Class.method``) or bare name.

        An exact local-name match wins over bare-name matches.
        """
        exact = [fn for fn in self.functions if fn.local_name == function_name]
        if exact:
            return exact
        return [fn for fn in self.functions if fn.simple_name == function_name]
