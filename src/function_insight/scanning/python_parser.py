"""Python parser built on the standard ``ast`` module.

Produces one FunctionDef per ``def``/``async def`` (methods and nested
functions included) and one CallSite per call expression, attributed to the
innermost enclosing function.
"""

from __future__ import annotations

import ast
import sys
from typing import Optional, Union

from ..exceptions import ParseError
from .base import SourceParser
from .syntax import CallSite, FunctionDef, ParsedSource, module_name, qualify

_FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef]

_ACCESSOR_DECORATORS = ("setter", "deleter", "getter")


class _BodyVisitor(ast.NodeVisitor):
    """Count decision points and collect calls in one function body.

    Nested function and class bodies belong to their own definitions and are
    not visited.
    """

    def __init__(self) -> None:
        self.decision_points = 0
        self.calls: list[tuple[str, int]] = []

    def _branch(self, node: ast.AST) -> None:
        self.decision_points += 1
        self.generic_visit(node)

    visit_If = _branch
    visit_For = _branch
    visit_AsyncFor = _branch
    visit_While = _branch
    visit_ExceptHandler = _branch
    visit_IfExp = _branch
    visit_Assert = _branch

    if sys.version_info >= (3, 10):
        visit_match_case = _branch

    def visit_BoolOp(self, node: ast.BoolOp) -> None:  # noqa: N802
        self.decision_points += len(node.values) - 1
        self.generic_visit(node)

    def visit_comprehension(self, node: ast.comprehension) -> None:
        self.decision_points += 1 + len(node.ifs)
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:  # noqa: N802
        target = _call_target(node.func)
        if target is not None:
            self.calls.append((target, node.lineno))
        self.generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:  # noqa: N802
        return

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:  # noqa: N802
        return

    def visit_ClassDef(self, node: ast.ClassDef) -> None:  # noqa: N802
        return


def _call_target(func: ast.expr) -> Optional[str]:
    """Render a call's callee as a dotted name, or None if it is not one."""
    parts: list[str] = []
    node = func
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if isinstance(node, ast.Name):
        parts.append(node.id)
    elif (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == "super"
        and parts
    ):
        parts.append("super")
    else:
        return None
    return ".".join(reversed(parts))


def _decorator_name(decorator: ast.expr) -> str:
    if isinstance(decorator, ast.Call):
        decorator = decorator.func
    if isinstance(decorator, ast.Name):
        return decorator.id
    if isinstance(decorator, ast.Attribute):
        return decorator.attr
    return ""


def _accessor_suffix(node: _FunctionNode) -> Optional[str]:
    """``setter`` for ``@name.setter`` on ``def name``, etc."""
    for decorator in node.decorator_list:
        if (
            isinstance(decorator, ast.Attribute)
            and decorator.attr in _ACCESSOR_DECORATORS
            and isinstance(decorator.value, ast.Name)
            and decorator.value.id == node.name
        ):
            return decorator.attr
    return None


def _parameters(node: _FunctionNode, is_method: bool) -> tuple[str, ...]:
    args = node.args
    names = [a.arg for a in getattr(args, "posonlyargs", [])]
    names.extend(a.arg for a in args.args)
    if args.vararg is not None:
        names.append("*" + args.vararg.arg)
    names.extend(a.arg for a in args.kwonlyargs)
    if args.kwarg is not None:
        names.append("**" + args.kwarg.arg)
    if is_method and names and names[0] in ("self", "cls"):
        names = names[1:]
    return tuple(names)


def _collect_imports(tree: ast.Module, path: str) -> dict[str, str]:
    """Map each name bound by an import to the dotted name it refers to.

    Relative imports are made absolute against ``path``.
    """
    package = module_name(path).split(".")
    if not path.endswith(("__init__.py", "__init__.pyi")):
        package = package[:-1]

    imports: dict[str, str] = {}
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    imports[alias.asname] = alias.name
                else:
                    # ``import a.b`` binds ``a``
                    head = alias.name.split(".")[0]
                    imports[head] = head
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                base = package[: max(len(package) - (node.level - 1), 0)]
                module = ".".join(base + ([node.module] if node.module else []))
            else:
                module = node.module or ""
            for alias in node.names:
                if alias.name == "*":
                    continue
                target = f"{module}.{alias.name}" if module else alias.name
                imports[alias.asname or alias.name] = target
    return imports


def _count_code_lines(lines: list[str], start: int, end: int) -> int:
    count = 0
    for line in lines[start - 1 : end]:
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            count += 1
    return count


class _DefinitionCollector(ast.NodeVisitor):
    """Walk a module, tracking class/function scopes."""

    def __init__(self, path: str, lines: list[str]) -> None:
        self.path = path
        self.lines = lines
        self.functions: list[FunctionDef] = []
        self.calls: list[CallSite] = []
        # (name, is_class)
        self._scope: list[tuple[str, bool]] = []

    def visit_ClassDef(self, node: ast.ClassDef) -> None:  # noqa: N802
        self._scope.append((node.name, True))
        self.generic_visit(node)
        self._scope.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:  # noqa: N802
        self._visit_function(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:  # noqa: N802
        self._visit_function(node)

    def _visit_function(self, node: _FunctionNode) -> None:
        decorators = {_decorator_name(d) for d in node.decorator_list}
        if "overload" in decorators:
            return

        is_method = bool(self._scope) and self._scope[-1][1]
        name = node.name
        suffix = _accessor_suffix(node)
        if suffix is not None:
            name = f"{name}.{suffix}"
        local_name = ".".join([s for s, _ in self._scope] + [name])

        start_line = min([node.lineno] + [d.lineno for d in node.decorator_list])
        end_line = getattr(node, "end_lineno", None) or node.lineno
        body_start = node.body[0].lineno if node.body else node.lineno

        body = _BodyVisitor()
        for stmt in node.body:
            body.visit(stmt)

        fn = FunctionDef(
            path=self.path,
            local_name=local_name,
            params=_parameters(node, is_method and "staticmethod" not in decorators),
            start_line=start_line,
            end_line=end_line,
            lines_of_code=_count_code_lines(self.lines, body_start, end_line),
            decision_points=body.decision_points,
            class_name=self._scope[-1][0] if is_method else None,
        )
        self.functions.append(fn)
        caller = qualify(self.path, local_name)
        self.calls.extend(CallSite(caller=caller, target=t, line=ln) for t, ln in body.calls)

        self._scope.append((node.name, False))
        for stmt in node.body:
            self.visit(stmt)
        self._scope.pop()


class PythonParser(SourceParser):
    """Parser for Python source files."""

    language = "python"
    extensions = (".py", ".pyi")
    version = "2"

    def parse(self, source_text: str, path: str) -> ParsedSource:
        try:
            tree = ast.parse(source_text, filename=path)
        except SyntaxError as e:
            raise ParseError(
                path, self.language, e.msg or "invalid syntax", (e.lineno or 0, e.offset or 0)
            )
        except ValueError as e:
            # e.g. source contains null bytes
            raise ParseError(path, self.language, str(e))

        collector = _DefinitionCollector(path, source_text.splitlines())
        collector.visit(tree)
        return ParsedSource(
            path=path,
            language=self.language,
            functions=collector.functions,
            calls=collector.calls,
            imports=_collect_imports(tree, path),
        )
