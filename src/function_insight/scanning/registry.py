"""Parser registry: resolves a file extension to a parser instance."""

from pathlib import PurePosixPath
from typing import Iterable, Optional

from ..exceptions import UnsupportedLanguageError
from ..logging_config import get_logger
from .base import SourceParser
from .javascript_parser import JavaScriptParser
from .python_parser import PythonParser

logger = get_logger(__name__)


class ParserRegistry:
    """Maps file extensions to SourceParser implementations.

    Later registrations for an extension replace earlier ones, so a richer
    parser can be plugged in over a built-in one.
    """

    def __init__(self, parsers: Optional[Iterable[SourceParser]] = None):
        self._by_extension: dict[str, SourceParser] = {}
        for parser in parsers or ():
            self.register(parser)

    def register(self, parser: SourceParser) -> None:
        for ext in parser.extensions:
            previous = self._by_extension.get(ext.lower())
            if previous is not None and previous is not parser:
                logger.debug(f"Replacing {previous!r} for {ext} with {parser!r}")
            self._by_extension[ext.lower()] = parser

    @property
    def supported_extensions(self) -> list[str]:
        return sorted(self._by_extension)

    def supports(self, path: str) -> bool:
        return PurePosixPath(path).suffix.lower() in self._by_extension

    def parser_for(self, path: str) -> SourceParser:
        """Return the parser for ``path``.

        Raises:
            UnsupportedLanguageError: If no parser handles the extension
        """
        ext = PurePosixPath(path).suffix.lower()
        parser = self._by_extension.get(ext)
        if parser is None:
            raise UnsupportedLanguageError(ext, self.supported_extensions)
        return parser


def default_registry() -> ParserRegistry:
    """Registry with the built-in Python and JavaScript/TypeScript parsers."""
    return ParserRegistry([PythonParser(), JavaScriptParser()])
