"""Tree-sitter parser for JavaScript and TypeScript.

``.js``/``.jsx``/``.mjs``/``.cjs`` use the JavaScript grammar (JSX included),
``.ts`` the TypeScript grammar and ``.tsx`` the TSX grammar.

Definitions are function declarations, class methods, and function or arrow
expressions bound to a name (``const f = () => {}``, class fields). Anonymous
callbacks are not definitions: their calls and branches count toward the
enclosing function.
"""

from __future__ import annotations

import posixpath
from pathlib import PurePosixPath
from typing import Optional

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from ..exceptions import ParseError
from .base import SourceParser
from .syntax import CallSite, FunctionDef, ParsedSource, qualify

_GRAMMARS = {
    "javascript": Language(tree_sitter_javascript.language()),
    "typescript": Language(tree_sitter_typescript.language_typescript()),
    "tsx": Language(tree_sitter_typescript.language_tsx()),
}

_GRAMMAR_BY_EXTENSION = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
}

_DECLARATIONS = frozenset(
    {"function_declaration", "generator_function_declaration", "method_definition"}
)
_EXPRESSIONS = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function"}
)
_CLASSES = frozenset({"class_declaration", "abstract_class_declaration", "class"})
_FIELDS = frozenset({"field_definition", "public_field_definition"})

_DECISIONS = frozenset(
    {
        "if_statement",
        "for_statement",
        "for_in_statement",
        "while_statement",
        "do_statement",
        "switch_case",
        "catch_clause",
        "ternary_expression",
    }
)
_LOGICAL_OPERATORS = frozenset({"&&", "||", "??"})

_CLOSING_LINES = frozenset({"}", "};", "})", "});", "},"})


def _text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _call_target(node: Optional[Node]) -> Optional[str]:
    """Render a callee as a dotted name, or None if it is not one."""
    if node is None:
        return None
    if node.type in ("identifier", "this", "super"):
        return _text(node)
    if node.type == "member_expression":
        owner = _call_target(node.child_by_field_name("object"))
        prop = node.child_by_field_name("property")
        if owner is None or prop is None:
            return None
        return f"{owner}.{_text(prop)}"
    if node.type == "parenthesized_expression" and node.named_child_count == 1:
        return _call_target(node.named_children[0])
    return None


def _param_name(node: Node) -> Optional[str]:
    kind = node.type
    if kind in ("identifier", "shorthand_property_identifier_pattern"):
        return _text(node)
    if kind in ("required_parameter", "optional_parameter"):
        pattern = node.child_by_field_name("pattern")
        return _param_name(pattern) if pattern is not None else None
    if kind == "assignment_pattern":
        left = node.child_by_field_name("left")
        return _param_name(left) if left is not None else None
    if kind == "rest_pattern":
        inner = node.named_children[0] if node.named_children else None
        name = _param_name(inner) if inner is not None else None
        return f"...{name}" if name else None
    if kind in ("object_pattern", "array_pattern"):
        return " ".join(_text(node).split())
    return None


def _parameters(function: Node) -> tuple[str, ...]:
    single = function.child_by_field_name("parameter")
    if single is not None:
        name = _param_name(single)
        return (name,) if name else ()
    params = function.child_by_field_name("parameters")
    if params is None:
        return ()
    names = (_param_name(child) for child in params.named_children)
    return tuple(name for name in names if name)


def _module_of(spec: str, path: str) -> str:
    """Dotted module for an import specifier, relative ones resolved against ``path``."""
    if spec.startswith("."):
        spec = posixpath.normpath(posixpath.join(posixpath.dirname(path), spec))
    stem = PurePosixPath(spec)
    if stem.suffix in _GRAMMAR_BY_EXTENSION:
        stem = stem.with_suffix("")
    parts = [p for p in stem.parts if p not in ("", ".")]
    if len(parts) > 1 and parts[-1] == "index":
        parts.pop()
    return ".".join(parts)


def _string_value(node: Optional[Node]) -> Optional[str]:
    if node is None or node.type != "string":
        return None
    return _text(node)[1:-1]


class _Body:
    """Decision points and calls of one function, nested definitions excluded."""

    def __init__(self) -> None:
        self.decision_points = 0
        self.calls: list[tuple[str, int]] = []


class _Collector:
    def __init__(self, path: str, source: bytes):
        self.path = path
        self.source = source
        self.functions: list[FunctionDef] = []
        self.calls: list[CallSite] = []
        self.imports: dict[str, str] = {}

    # ── traversal ────────────────────────────────────────────────

    def visit(self, node: Node, scope: list[tuple[str, bool]], body: Optional[_Body]) -> None:
        kind = node.type

        if kind in _CLASSES:
            self._visit_class(node, scope, body)
            return

        name = self._definition_name(node)
        if name is not None:
            self._visit_function(node, name, scope)
            return

        if body is not None:
            self._count(node, body)
        if kind == "import_statement":
            self._record_import(node)
        elif kind == "variable_declarator":
            self._record_require(node)

        for child in node.children:
            self.visit(child, scope, body)

    def _visit_class(self, node: Node, scope: list[tuple[str, bool]], body: Optional[_Body]) -> None:
        class_name = _text(node.child_by_field_name("name"))
        if not class_name and node.parent is not None and node.parent.type == "variable_declarator":
            class_name = _text(node.parent.child_by_field_name("name"))
        class_body = node.child_by_field_name("body")
        for child in node.children:
            if class_body is not None and child == class_body:
                self.visit(child, scope + [(class_name or "anonymous", True)], None)
            else:
                self.visit(child, scope, body)

    def _visit_function(self, node: Node, name: str, scope: list[tuple[str, bool]]) -> None:
        in_class = bool(scope) and scope[-1][1]
        class_name = scope[-1][0] if in_class else None
        local_name = ".".join([s for s, _ in scope] + [name])

        own = _Body()
        for field in ("parameters", "parameter", "body"):
            child = node.child_by_field_name(field)
            if child is not None:
                self.visit(child, scope + [(name, False)], own)

        start = node
        while start.parent is not None and start.parent.type in (
            "variable_declarator",
            "lexical_declaration",
            "variable_declaration",
            "export_statement",
        ):
            start = start.parent

        fn = FunctionDef(
            path=self.path,
            local_name=local_name,
            params=_parameters(node),
            start_line=_line(start),
            end_line=node.end_point[0] + 1,
            lines_of_code=self._code_lines(node.child_by_field_name("body")),
            decision_points=own.decision_points,
            class_name=class_name,
        )
        self.functions.append(fn)
        caller = qualify(self.path, local_name)
        self.calls.extend(CallSite(caller=caller, target=t, line=ln) for t, ln in own.calls)

    # ── definitions ──────────────────────────────────────────────

    def _definition_name(self, node: Node) -> Optional[str]:
        kind = node.type
        if kind in _DECLARATIONS:
            name = _text(node.child_by_field_name("name"))
            if kind == "method_definition" and any(c.type == "set" for c in node.children):
                # Setter and getter share a name
                name = f"{name}.setter"
            return name or None
        if kind not in _EXPRESSIONS:
            return None
        parent = node.parent
        if parent is not None and parent.type == "variable_declarator":
            if parent.child_by_field_name("value") == node:
                bound = parent.child_by_field_name("name")
                if bound is not None and bound.type == "identifier":
                    return _text(bound)
        if parent is not None and parent.type in _FIELDS:
            if parent.child_by_field_name("value") == node:
                key = parent.child_by_field_name("property") or parent.child_by_field_name("name")
                return _text(key) or None
        return _text(node.child_by_field_name("name")) or None

    def _count(self, node: Node, body: _Body) -> None:
        kind = node.type
        if kind in _DECISIONS:
            body.decision_points += 1
        elif kind == "binary_expression":
            operator = node.child_by_field_name("operator")
            if operator is not None and operator.type in _LOGICAL_OPERATORS:
                body.decision_points += 1
        elif kind == "call_expression":
            target = _call_target(node.child_by_field_name("function"))
            if target is not None and target not in ("super", "import"):
                body.calls.append((target, _line(node)))
        elif kind == "new_expression":
            target = _call_target(node.child_by_field_name("constructor"))
            if target is not None:
                body.calls.append((target, _line(node)))

    def _code_lines(self, body: Optional[Node]) -> int:
        if body is None:
            return 0
        text = self.source[body.start_byte : body.end_byte].decode("utf-8", errors="replace")
        if body.type == "statement_block":
            text = text[1:-1]
        count = 0
        for line in text.split("\n"):
            stripped = line.strip()
            if not stripped or stripped in _CLOSING_LINES:
                continue
            if stripped.startswith(("//", "/*", "*")):
                continue
            count += 1
        return count

    # ── imports ──────────────────────────────────────────────────

    def _record_import(self, node: Node) -> None:
        spec = _string_value(node.child_by_field_name("source"))
        if spec is None:
            return
        module = _module_of(spec, self.path)
        clause = next((c for c in node.named_children if c.type == "import_clause"), None)
        if clause is None:
            return
        for child in clause.named_children:
            if child.type == "identifier":
                # Default import
                self.imports[_text(child)] = module
            elif child.type == "namespace_import":
                alias = next((c for c in child.named_children if c.type == "identifier"), None)
                if alias is not None:
                    self.imports[_text(alias)] = module
            elif child.type == "named_imports":
                for spec_node in child.named_children:
                    if spec_node.type != "import_specifier":
                        continue
                    imported = _text(spec_node.child_by_field_name("name"))
                    alias = _text(spec_node.child_by_field_name("alias")) or imported
                    if imported:
                        self.imports[alias] = f"{module}.{imported}"

    def _record_require(self, node: Node) -> None:
        value = node.child_by_field_name("value")
        if value is None or value.type != "call_expression":
            return
        if _text(value.child_by_field_name("function")) != "require":
            return
        arguments = value.child_by_field_name("arguments")
        if arguments is None or not arguments.named_children:
            return
        spec = _string_value(arguments.named_children[0])
        if spec is None:
            return
        module = _module_of(spec, self.path)
        bound = node.child_by_field_name("name")
        if bound is None:
            return
        if bound.type == "identifier":
            self.imports[_text(bound)] = module
        elif bound.type == "object_pattern":
            for child in bound.named_children:
                if child.type == "shorthand_property_identifier_pattern":
                    self.imports[_text(child)] = f"{module}.{_text(child)}"
                elif child.type == "pair_pattern":
                    key = _text(child.child_by_field_name("key"))
                    alias = _text(child.child_by_field_name("value"))
                    if key and alias:
                        self.imports[alias] = f"{module}.{key}"


def _first_error(node: Node) -> Optional[Node]:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None


class JavaScriptParser(SourceParser):
    """Parser for JavaScript and TypeScript source files."""

    language = "javascript"
    extensions = tuple(_GRAMMAR_BY_EXTENSION)
    version = "2"

    def parse(self, source_text: str, path: str) -> ParsedSource:
        grammar = _GRAMMAR_BY_EXTENSION.get(PurePosixPath(path).suffix.lower(), "javascript")
        language = "javascript" if grammar == "javascript" else "typescript"
        source = source_text.encode("utf-8")

        # Parser instances are not shared between extractor threads
        tree = Parser(_GRAMMARS[grammar]).parse(source)
        root = tree.root_node
        if root.has_error:
            error = _first_error(root) or root
            row, column = error.start_point[0], error.start_point[1]
            reason = "missing " + error.type if error.is_missing else "syntax error"
            raise ParseError(path, language, reason, (row + 1, column))

        collector = _Collector(path, source)
        collector.visit(root, [], None)
        return ParsedSource(
            path=path,
            language=language,
            functions=collector.functions,
            calls=collector.calls,
            imports=collector.imports,
        )
