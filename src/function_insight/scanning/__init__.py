"""Source parsing: per-language parsers behind one contract."""

from .base import SourceParser
from .extractor import ExtractionResult, SourceExtractor
from .javascript_parser import JavaScriptParser
from .python_parser import PythonParser
from .registry import ParserRegistry, default_registry
from .syntax import CallSite, FunctionDef, ParsedSource, qualify, split_qualified
from .tree import SourceTree, WorkingTree

__all__ = [
    "SourceParser",
    "PythonParser",
    "JavaScriptParser",
    "ParserRegistry",
    "default_registry",
    "SourceExtractor",
    "ExtractionResult",
    "FunctionDef",
    "CallSite",
    "ParsedSource",
    "qualify",
    "split_qualified",
    "SourceTree",
    "WorkingTree",
]
