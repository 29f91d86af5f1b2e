"""HistoryCollector: commits that touched one function."""

from pathlib import Path
from typing import Optional

from ..exceptions import AnalysisError
from ..logging_config import get_logger
from ..scanning.registry import ParserRegistry
from .git_reader import GitReader, VersionControlReader
from .models import CommitRecord

logger = get_logger(__name__)


class HistoryCollector:
    """Collect the commit history of a function's line range.

    The function is located in the file as it exists at ``revision`` (so line
    numbers match what git tracks). If the file or the function does not
    exist at that revision the history is empty.
    """

    def __init__(
        self,
        registry: ParserRegistry,
        reader: Optional[VersionControlReader] = None,
    ):
        self.registry = registry
        self.reader = reader or GitReader()

    def collect(
        self,
        repository: Path,
        file_path: str,
        function_name: str,
        revision: str = "HEAD",
    ) -> list[CommitRecord]:
        """Commits touching the function, oldest first.

        Raises:
            RepositoryAccessError: If the repository cannot be read at all
        """
        if isinstance(self.reader, GitReader):
            self.reader.ensure_repository(repository)

        source = self.reader.read_file(repository, file_path, revision)
        if source is None:
            logger.debug(f"{file_path} not present at {revision}; no history")
            return []

        line_range = self._locate(source, file_path, function_name)
        if line_range is None:
            logger.debug(f"{function_name} not present in {file_path}@{revision}; no history")
            return []

        commits = self.reader.list_commits(repository, file_path, line_range, revision)
        # Input order is not trusted
        ordered = sorted(commits, key=lambda c: (c.timestamp, c.hash))
        logger.debug(f"Collected {len(ordered)} commits for {file_path}#{function_name}")
        return ordered

    def _locate(self, source: str, file_path: str, function_name: str) -> Optional[tuple[int, int]]:
        parser = self.registry.parser_for(file_path)
        try:
            parsed = parser.parse(source, file_path)
        except AnalysisError as e:
            # The structural stage reports parse failures of its own
            logger.debug(f"Cannot parse {file_path} at revision: {e}")
            return None
        matches = parsed.find(function_name)
        if not matches:
            return None
        return matches[0].line_range
