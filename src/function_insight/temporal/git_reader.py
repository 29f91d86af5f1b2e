"""Read function-level history from git via subprocess.

Uses ``git log -L<start>,<end>:<path>`` so each commit's patch is limited to
the tracked line range. Git follows the range backwards through edits and,
best-effort, through content moves.
"""

import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from ..exceptions import RepositoryAccessError
from ..logging_config import get_logger
from .models import CommitRecord

logger = get_logger(__name__)

# Record / field / header-end separators; none of them occur in commit text
_RS = "\x1e"
_FS = "\x1f"
_GS = "\x1d"

_LOG_FORMAT = f"--format={_RS}%H{_FS}%at{_FS}%an <%ae>{_FS}%B{_GS}"

# git stderr when the path or range does not exist at the revision
_MISSING_PATH_RE = re.compile(
    r"no path .* in the commit|does not exist in|exists on disk, but not in|has only \d+ lines?",
    re.IGNORECASE,
)

_ISSUE_RE = re.compile(r"(?<![\w&/])#\d+\b|\b[A-Z][A-Z0-9]+-\d+\b")


def parse_issue_refs(message: str) -> tuple[str, ...]:
    """Issue references in a commit message, in order of first appearance.

    Recognizes ``#123``, ``GH-123`` and Jira-style ``PROJ-123`` keys.
    """
    seen: dict[str, None] = {}
    for match in _ISSUE_RE.finditer(message):
        seen.setdefault(match.group(0), None)
    return tuple(seen)


class VersionControlReader(Protocol):
    """Version-control operations the history collector depends on."""

    def read_file(self, repository: Path, path: str, revision: str) -> Optional[str]:
        """File text at ``revision``, or None if the path does not exist there."""
        ...

    def list_files(self, repository: Path, revision: str) -> list[str]:
        """Relative paths of every file committed at ``revision``."""
        ...

    def list_commits(
        self, repository: Path, path: str, line_range: tuple[int, int], revision: str
    ) -> list[CommitRecord]:
        """Commits touching ``line_range`` of ``path``, each with its range diff."""
        ...

    def diff(self, repository: Path, commit: str, path: str, line_range: tuple[int, int]) -> str:
        """Patch of ``commit`` restricted to ``line_range``."""
        ...


class GitReader:
    """VersionControlReader backed by the ``git`` CLI."""

    # Maximum git output size (50MB) to prevent OOM on huge histories
    _MAX_OUTPUT_BYTES = 50 * 1024 * 1024

    def __init__(self, max_commits: int = 500, timeout: float = 60.0):
        self.max_commits = max_commits
        self.timeout = timeout

    def ensure_repository(self, repository: Path) -> None:
        """Raise RepositoryAccessError unless ``repository`` is a readable git work tree."""
        if not Path(repository).is_dir():
            raise RepositoryAccessError(str(repository), "directory does not exist")
        result = self._run(repository, ["rev-parse", "--git-dir"])
        if result.returncode != 0:
            raise RepositoryAccessError(str(repository), result.stderr.strip() or "not a git repository")

    def resolve_revision(self, repository: Path, revision: str) -> str:
        """Full commit hash for ``revision``.

        Raises:
            RepositoryAccessError: If the revision does not name a commit
        """
        result = self._run(repository, ["rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}"])
        if result.returncode != 0 or not result.stdout.strip():
            raise RepositoryAccessError(str(repository), f"unknown revision: {revision}")
        return result.stdout.strip()

    def read_file(self, repository: Path, path: str, revision: str) -> Optional[str]:
        result = self._run(repository, ["show", f"{revision}:{path}"])
        if result.returncode == 0:
            return result.stdout
        if _MISSING_PATH_RE.search(result.stderr):
            return None
        raise RepositoryAccessError(str(repository), result.stderr.strip())

    def list_files(self, repository: Path, revision: str) -> list[str]:
        result = self._run(repository, ["ls-tree", "-r", "-z", "--name-only", revision])
        if result.returncode != 0:
            raise RepositoryAccessError(str(repository), result.stderr.strip())
        return [name for name in result.stdout.split("\0") if name]

    def list_commits(
        self, repository: Path, path: str, line_range: tuple[int, int], revision: str
    ) -> list[CommitRecord]:
        start, end = line_range
        result = self._run(
            repository,
            [
                "log",
                "--no-color",
                "--no-ext-diff",
                _LOG_FORMAT,
                f"-n{self.max_commits}",
                f"-L{start},{end}:{path}",
                revision,
                "--",
            ],
        )
        if result.returncode != 0:
            if _MISSING_PATH_RE.search(result.stderr):
                logger.debug(f"No history for {path}@{revision}: {result.stderr.strip()}")
                return []
            raise RepositoryAccessError(str(repository), result.stderr.strip())
        if len(result.stdout) > self._MAX_OUTPUT_BYTES:
            logger.warning(
                "git log output exceeded %dMB limit, truncating",
                self._MAX_OUTPUT_BYTES // (1024 * 1024),
            )
            cut = result.stdout.rfind(_RS, 0, self._MAX_OUTPUT_BYTES)
            return parse_line_log(result.stdout[: max(cut, 0)])
        return parse_line_log(result.stdout)

    def diff(self, repository: Path, commit: str, path: str, line_range: tuple[int, int]) -> str:
        start, end = line_range
        result = self._run(
            repository,
            ["log", "--no-color", "--no-ext-diff", _LOG_FORMAT, "-n1", f"-L{start},{end}:{path}", commit, "--"],
        )
        if result.returncode != 0:
            raise RepositoryAccessError(str(repository), result.stderr.strip())
        records = parse_line_log(result.stdout)
        return records[0].diff if records else ""

    def _run(self, repository: Path, args: list[str]) -> subprocess.CompletedProcess:
        cmd = ["git", "-C", str(repository), *args]
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise RepositoryAccessError(str(repository), "git executable not found")
        except subprocess.TimeoutExpired:
            raise RepositoryAccessError(str(repository), f"git timed out after {self.timeout}s")


def parse_line_log(raw: str) -> list[CommitRecord]:
    """Parse ``git log -L`` output produced with the record format above.

    Each record is ``RS hash FS epoch FS author FS message GS <patch>``.
    Records are returned in git's order (newest first).
    """
    records = []
    for chunk in raw.split(_RS):
        if not chunk.strip():
            continue
        header, _, patch = chunk.partition(_GS)
        parts = header.split(_FS, 3)
        if len(parts) < 4:
            logger.debug(f"Skipping malformed log record: {header[:60]!r}")
            continue
        commit_hash, epoch, author, message = parts
        try:
            timestamp = datetime.fromtimestamp(int(epoch), tz=timezone.utc)
        except ValueError:
            logger.debug(f"Skipping record with bad timestamp: {epoch!r}")
            continue
        message = message.strip()
        records.append(
            CommitRecord(
                hash=commit_hash.strip(),
                message=message,
                author=author.strip(),
                timestamp=timestamp,
                issue_refs=parse_issue_refs(message),
                diff=patch.strip("\n"),
            )
        )
    return records
