"""Call target resolution.

Turns a raw call target as written (``helper``, ``self.save``,
``utils.slugify``) into a qualified function identifier, or None when the
target is external or ambiguous. Resolution order:

    1. ``self.x`` / ``cls.x`` / ``this.x``: method ``x`` of the caller's class
    2. bare ``x``: nested function of the caller, then a function in the same
       file, then what an import of ``x`` points at, then the unique
       top-level ``x`` in the codebase
    3. ``X()`` where ``X`` is a class: ``X.__init__`` / ``X.constructor``
    4. ``a.x``: ``a.x`` defined in the same file (class attribute call), then
       ``x`` in the project module that ``a`` was imported as

An attribute call on anything that is not a project import (``requests.get``,
``d.get``, ``self.session.get``) is external and stays unresolved.
"""

from collections import defaultdict
from typing import Iterable, Mapping, Optional

from ..scanning.syntax import CallSite, FunctionDef, module_name, qualify, split_qualified

_RECEIVERS = ("self", "cls", "this")
_CONSTRUCTORS = ("__init__", "constructor")


class CallResolver:
    """Resolves call sites against a fixed set of function definitions.

    Args:
        functions: Every known definition
        imports: Per file path, the names bound by imports (see
            ``ParsedSource.imports``)
    """

    def __init__(
        self,
        functions: Iterable[FunctionDef],
        imports: Optional[Mapping[str, Mapping[str, str]]] = None,
    ):
        self._defs: dict[str, FunctionDef] = {}
        # local name -> qualified names, across files
        self._by_local: dict[str, list[str]] = defaultdict(list)
        # dotted module -> file paths
        self._by_module: dict[str, set[str]] = defaultdict(set)
        for fn in functions:
            self._by_module[module_name(fn.path)].add(fn.path)
            if fn.qualified_name in self._defs:
                continue
            self._defs[fn.qualified_name] = fn
            self._by_local[fn.local_name].append(fn.qualified_name)
        self._imports = imports or {}

    def resolve(self, call: CallSite) -> Optional[str]:
        caller = self._defs.get(call.caller)
        path, caller_local = split_qualified(call.caller)
        parts = call.target.split(".")
        name = parts[-1]
        imported = self._imports.get(path, {})

        if len(parts) == 2 and parts[0] in _RECEIVERS:
            if caller is None or caller.class_name is None:
                return None
            class_prefix = caller_local.rsplit(".", 1)[0]
            return self._existing(qualify(path, f"{class_prefix}.{name}"))

        if len(parts) == 1:
            for candidate in (
                qualify(path, f"{caller_local}.{name}"),
                qualify(path, name),
            ):
                if candidate in self._defs:
                    return candidate
            if name in imported:
                return self._through_import(imported[name], [])
            unique = self._unique(name)
            if unique is not None:
                return unique
            return self._constructor(path, name)

        if parts[0] in _RECEIVERS or parts[0] == "super":
            return None

        same_file = self._existing(qualify(path, ".".join(parts)))
        if same_file is not None:
            return same_file
        if parts[0] in imported:
            return self._through_import(imported[parts[0]], parts[1:])
        return None

    def _through_import(self, imported: str, rest: list[str]) -> Optional[str]:
        """Resolve ``imported`` + ``rest`` to a function in a project module.

        The longest prefix that names a project module wins; the remainder is
        the local name inside it.
        """
        full = imported.split(".") + rest
        for split in range(len(full) - 1, 0, -1):
            path = self._module_file(".".join(full[:split]))
            if path is None:
                continue
            local = ".".join(full[split:])
            found = self._existing(qualify(path, local))
            if found is not None:
                return found
            for ctor in _CONSTRUCTORS:
                found = self._existing(qualify(path, f"{local}.{ctor}"))
                if found is not None:
                    return found
        return None

    def _module_file(self, module: str) -> Optional[str]:
        """File defining ``module``, matching trailing components (``src/`` layouts)."""
        exact = self._by_module.get(module)
        if exact and len(exact) == 1:
            return next(iter(exact))
        suffix = "." + module
        matches = {
            path
            for name, paths in self._by_module.items()
            if name.endswith(suffix)
            for path in paths
        }
        return matches.pop() if len(matches) == 1 else None

    def _existing(self, qualified: str) -> Optional[str]:
        return qualified if qualified in self._defs else None

    def _unique(self, local_name: str) -> Optional[str]:
        matches = self._by_local.get(local_name, [])
        return matches[0] if len(matches) == 1 else None

    def _constructor(self, path: str, class_name: str) -> Optional[str]:
        for ctor in _CONSTRUCTORS:
            local = f"{class_name}.{ctor}"
            same_file = self._existing(qualify(path, local))
            if same_file is not None:
                return same_file
            unique = self._unique(local)
            if unique is not None:
                return unique
        return None
