"""Base parser class: the contract every language parser implements."""

from abc import ABC, abstractmethod

from .syntax import ParsedSource


class SourceParser(ABC):
    """Abstract base class for language-specific parsers.

    A parser turns source text into function definitions and call sites.
    Implementations raise ``ParseError`` when the text cannot be parsed.
    """

    #: Language name reported in ParsedSource and errors
    language: str = ""
    #: File extensions handled, lower-case with leading dot
    extensions: tuple[str, ...] = ()
    #: Bumped whenever parse output changes, so cached parses are invalidated
    version: str = "1"

    @abstractmethod
    def parse(self, source_text: str, path: str) -> ParsedSource:
        """Parse source text of the file at ``path`` (relative to repo root)."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(language={self.language!r})"
