"""Tests for git log parsing, issue references and history collection."""

from datetime import datetime, timezone

import pytest

from function_insight.exceptions import RepositoryAccessError
from function_insight.scanning import SourceExtractor, default_registry
from function_insight.temporal import (
    CommitRecord,
    GitReader,
    HistoryCollector,
    RevisionTree,
    parse_issue_refs,
    parse_line_log,
)

RS, FS, GS = "\x1e", "\x1f", "\x1d"


def log_record(hash_, epoch, author, message, patch=""):
    return f"{RS}{hash_}{FS}{epoch}{FS}{author}{FS}{message}{GS}\n{patch}\n"


class TestIssueRefs:
    def test_hash_and_tracker_keys(self):
        """Both #123 and ABC-123 references are found."""
        assert parse_issue_refs("Fix totals (#12), see JIRA-42 and GH-7") == ("#12", "JIRA-42", "GH-7")

    def test_duplicates_keep_first_position(self):
        """Repeated references are listed once, in first-seen order."""
        assert parse_issue_refs("#3 then #4 then #3 again") == ("#3", "#4")

    def test_ignores_lookalikes(self):
        """HTML entities, URL anchors and lowercase keys are not references."""
        assert parse_issue_refs("color &#123; and url/#anchor1 and utf-8") == ()


class TestParseLineLog:
    def test_parses_records_in_order(self):
        """Log records keep their order and fields."""
        raw = log_record(
            "b" * 40, 1708443000, "Bob <bob@example.com>", "Second\n\nFixes #9", "@@ -1 +1 @@\n-a\n+b"
        ) + log_record("a" * 40, 1704877200, "Alice <alice@example.com>", "First")
        records = parse_line_log(raw)
        assert [r.hash for r in records] == ["b" * 40, "a" * 40]

        second = records[0]
        assert second.subject == "Second"
        assert second.issue_refs == ("#9",)
        assert second.timestamp == datetime.fromtimestamp(1708443000, tz=timezone.utc)
        assert second.diff == "@@ -1 +1 @@\n-a\n+b"
        assert second.short_hash == "b" * 10

    def test_skips_malformed_records(self):
        """Records that do not parse are skipped."""
        raw = f"{RS}garbage{GS}\n" + log_record("c" * 40, "not-a-number", "X <x@x>", "msg")
        assert parse_line_log(raw) == []

    def test_empty_output(self):
        """Empty log output gives no commits."""
        assert parse_line_log("") == []


class FakeReader:
    """In-memory VersionControlReader."""

    def __init__(self, files, commits):
        self.files = files
        self.commits = commits
        self.ranges = []

    def read_file(self, repository, path, revision):
        return self.files.get(path)

    def list_commits(self, repository, path, line_range, revision):
        self.ranges.append(line_range)
        return list(self.commits)

    def diff(self, repository, commit, path, line_range):
        return ""


def commit(hash_, day):
    return CommitRecord(
        hash=hash_,
        message=f"commit {hash_}",
        author="Alice <alice@example.com>",
        timestamp=datetime(2024, 1, day, tzinfo=timezone.utc),
    )


class TestHistoryCollector:
    SOURCE = "import os\n\n\ndef total(items):\n    return sum(items)\n"

    def test_orders_oldest_first(self, tmp_path):
        """Commits come back oldest first."""
        reader = FakeReader(
            {"m.py": self.SOURCE}, [commit("c3", 3), commit("c1", 1), commit("c2", 2)]
        )
        history = HistoryCollector(default_registry(), reader).collect(tmp_path, "m.py", "total")
        assert [c.hash for c in history] == ["c1", "c2", "c3"]
        assert reader.ranges == [(4, 5)]

    def test_same_timestamp_ties_break_on_hash(self, tmp_path):
        """Commits with equal timestamps are ordered by hash."""
        reader = FakeReader({"m.py": self.SOURCE}, [commit("bb", 1), commit("aa", 1)])
        history = HistoryCollector(default_registry(), reader).collect(tmp_path, "m.py", "total")
        assert [c.hash for c in history] == ["aa", "bb"]

    def test_missing_file_gives_empty_history(self, tmp_path):
        """A file absent at the revision has no history."""
        reader = FakeReader({}, [commit("c1", 1)])
        assert HistoryCollector(default_registry(), reader).collect(tmp_path, "m.py", "total") == []
        assert reader.ranges == []

    def test_missing_function_gives_empty_history(self, tmp_path):
        """A function absent from the file has no history."""
        reader = FakeReader({"m.py": self.SOURCE}, [commit("c1", 1)])
        assert HistoryCollector(default_registry(), reader).collect(tmp_path, "m.py", "nope") == []

    def test_not_a_repository(self, tmp_path):
        """A directory outside git is an access error."""
        collector = HistoryCollector(default_registry(), GitReader())
        with pytest.raises(RepositoryAccessError):
            collector.collect(tmp_path, "m.py", "total")


class TestGitHistory:
    """Against a real repository built by the ``git_repo`` fixture."""

    def test_collects_both_commits_oldest_first(self, git_repo):
        """Both commits touching the function are collected."""
        first, second = git_repo["commits"]
        history = HistoryCollector(default_registry()).collect(
            git_repo["root"], "shop/orders.py", "total"
        )
        assert [c.hash for c in history] == [first, second]
        assert history[0].issue_refs == ("#12",)
        assert history[1].issue_refs == ("SHOP-7",)
        assert history[1].subject == "Skip refunds in totals"
        assert history[0].timestamp == datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)
        assert history[0].author == "Alice <alice@example.com>"
        assert "item > 0" in history[1].diff

    def test_history_at_earlier_revision(self, git_repo):
        """History stops at the requested revision."""
        first, _ = git_repo["commits"]
        collector = HistoryCollector(default_registry())
        at_first = collector.collect(git_repo["root"], "shop/orders.py", "total", revision=first)
        assert [c.hash for c in at_first] == [first]
        # round_money was added in the second commit
        assert collector.collect(git_repo["root"], "shop/orders.py", "round_money", revision=first) == []

    def test_file_missing_at_revision(self, git_repo):
        """A file added later has no history at an earlier revision."""
        first, _ = git_repo["commits"]
        collector = HistoryCollector(default_registry())
        assert collector.collect(git_repo["root"], "shop/report.py", "monthly_report", revision=first) == []

    def test_resolve_revision(self, git_repo):
        """Short hashes and HEAD resolve to full hashes."""
        first, second = git_repo["commits"]
        reader = GitReader()
        assert reader.resolve_revision(git_repo["root"], "HEAD") == second
        assert reader.resolve_revision(git_repo["root"], first[:8]) == first
        with pytest.raises(RepositoryAccessError):
            reader.resolve_revision(git_repo["root"], "deadbeefdeadbeef")

    def test_read_file_at_revision(self, git_repo):
        """File contents are read as of a revision."""
        first, _ = git_repo["commits"]
        reader = GitReader()
        assert "round_money" not in reader.read_file(git_repo["root"], "shop/orders.py", first)
        assert reader.read_file(git_repo["root"], "shop/missing.py", first) is None

    def test_diff_of_single_commit(self, git_repo):
        """A commit's patch is limited to the function's lines."""
        _, second = git_repo["commits"]
        patch = GitReader().diff(git_repo["root"], second, "shop/orders.py", (1, 6))
        assert "+        if item > 0:" in patch
        assert "round_money" in patch

    def test_list_files_at_revision(self, git_repo):
        """Only files committed at the revision are listed."""
        first, second = git_repo["commits"]
        reader = GitReader()
        assert reader.list_files(git_repo["root"], first) == ["shop/orders.py"]
        assert reader.list_files(git_repo["root"], second) == ["shop/orders.py", "shop/report.py"]


class TestRevisionTree:
    """Parsing a past revision instead of the working tree."""

    def test_extracts_only_committed_files(self, git_repo):
        """Files added later or only on disk are not part of the revision."""
        root = git_repo["root"]
        first, _ = git_repo["commits"]
        (root / "shop" / "draft.py").write_text("def draft():\n    pass\n")

        tree = RevisionTree(GitReader(), root, first)
        result = SourceExtractor(default_registry()).extract_all(tree)

        assert list(result.sources) == ["shop/orders.py"]
        names = {fn.local_name for fn in result.sources["shop/orders.py"].functions}
        assert names == {"total", "checkout"}

    def test_missing_file_is_a_read_error(self, git_repo):
        """Reading a file absent at the revision raises."""
        first, _ = git_repo["commits"]
        tree = RevisionTree(GitReader(), git_repo["root"], first)
        with pytest.raises(FileNotFoundError):
            tree.read_text("shop/report.py")

    def test_skipped_directories_are_filtered(self, tmp_path):
        """Hidden and dependency directories are left out of the listing."""
        class ListingReader:
            def list_files(self, repository, revision):
                return ["a.py", "node_modules/x.js", ".github/tool.py", "pkg/b.py"]

        tree = RevisionTree(ListingReader(), tmp_path, "f" * 40)
        assert tree.list_files() == ["a.py", "pkg/b.py"]
