"""Shared test fixtures for Function Insight."""

import json
import os
import shutil
import subprocess
import textwrap
from datetime import datetime, timezone
from pathlib import Path

import pytest

from function_insight.config import AnalysisConfig
from function_insight.exceptions import PermanentLLMError, TransientLLMError


GOOD_REPLY = json.dumps(
    {
        "intent_summary": "Computes the order total.",
        "dependency_overview": "Called by checkout; calls tax helpers.",
        "risk_assessment": "Low risk: small and rarely changed.",
        "refactoring_recommendations": ["Extract the discount rule", "Add tests for rounding"],
    }
)


class FakeLLM:
    """LLMService that replays a script of replies and failures.

    Each script entry is either a reply string or an exception instance to
    raise. The last entry repeats once the script is exhausted.
    """

    def __init__(self, *script):
        self.script = list(script) or [GOOD_REPLY]
        self.prompts: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        index = min(len(self.prompts) - 1, len(self.script) - 1)
        item = self.script[index]
        if isinstance(item, BaseException):
            raise item
        return item


def transient(reason: str = "rate limited") -> TransientLLMError:
    return TransientLLMError(reason, status_code=429)


def permanent(reason: str = "invalid request") -> PermanentLLMError:
    return PermanentLLMError(reason, status_code=400)


class FixedClock:
    """Injectable clock that tests can move forward."""

    def __init__(self, now: datetime = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def fake_llm():
    return FakeLLM(GOOD_REPLY)


@pytest.fixture
def good_reply():
    """A well-formed JSON reply from the LLM."""
    return GOOD_REPLY


@pytest.fixture
def scripted_llm():
    """Factory for a FakeLLM that replays the given replies and failures."""
    return FakeLLM


@pytest.fixture
def transient_error():
    """Factory for retryable LLM failures."""
    return transient


@pytest.fixture
def permanent_error():
    """Factory for LLM failures that must not be retried."""
    return permanent


@pytest.fixture
def make_files():
    """Write ``{relative path: source}`` under a root, dedenting the source."""
    return write_files


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def config():
    """Config that keeps tests fast and independent of the user's environment."""
    return AnalysisConfig(stage_timeout_seconds=30, workers=2, parse_cache_enabled=False)


def write_files(root: Path, files: dict) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"))


def git(root: Path, *args: str) -> str:
    env = dict(
        os.environ,
        GIT_AUTHOR_NAME="Alice",
        GIT_AUTHOR_EMAIL="alice@example.com",
        GIT_COMMITTER_NAME="Alice",
        GIT_COMMITTER_EMAIL="alice@example.com",
    )
    result = subprocess.run(
        ["git", "-C", str(root), *args],
        capture_output=True,
        text=True,
        env=env,
        check=True,
    )
    return result.stdout.strip()


def commit_all(root: Path, message: str, when: str) -> str:
    """Commit everything with a fixed author/committer date; return the hash."""
    git(root, "add", "-A")
    env_date = f"{when} +0000"
    subprocess.run(
        ["git", "-C", str(root), "commit", "-q", "-m", message, "--date", env_date],
        capture_output=True,
        text=True,
        check=True,
        env=dict(
            os.environ,
            GIT_AUTHOR_NAME="Alice",
            GIT_AUTHOR_EMAIL="alice@example.com",
            GIT_COMMITTER_NAME="Alice",
            GIT_COMMITTER_EMAIL="alice@example.com",
            GIT_COMMITTER_DATE=env_date,
        ),
    )
    return git(root, "rev-parse", "HEAD")


ORDERS_V1 = """
def total(items, tax_rate):
    subtotal = 0
    for item in items:
        subtotal += item
    return subtotal * (1 + tax_rate)


def checkout(cart):
    return total(cart, 0.2)
"""

ORDERS_V2 = """
def total(items, tax_rate):
    subtotal = 0
    for item in items:
        if item > 0:
            subtotal += item
    return round_money(subtotal * (1 + tax_rate))


def round_money(value):
    return round(value, 2)


def checkout(cart):
    return total(cart, 0.2)
"""

REPORT = """
from shop.orders import total


def monthly_report(carts):
    return [total(c, 0.1) for c in carts]
"""


@pytest.fixture
def sample_repo(tmp_path):
    """Plain directory (no git) with a small Python codebase."""
    root = tmp_path / "shop-repo"
    write_files(root, {"shop/orders.py": ORDERS_V2, "shop/report.py": REPORT})
    return root


@pytest.fixture
def git_repo(tmp_path):
    """Git repository where ``shop/orders.py::total`` changed in two commits."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    root = tmp_path / "shop-git"
    root.mkdir()
    git(root, "init", "-q")
    write_files(root, {"shop/orders.py": ORDERS_V1})
    first = commit_all(root, "Add order totals (#12)", "2024-01-10T09:00:00")
    write_files(root, {"shop/orders.py": ORDERS_V2, "shop/report.py": REPORT})
    second = commit_all(root, "Skip refunds in totals\n\nFixes SHOP-7", "2024-02-20T15:30:00")
    return {"root": root, "commits": [first, second]}
