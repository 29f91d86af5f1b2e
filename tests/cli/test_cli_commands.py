"""Tests for the typer CLI."""

import json

import pytest
from typer.testing import CliRunner

from function_insight.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """No user config, no real LLM, parse cache off."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("FUNCTION_INSIGHT_PARSE_CACHE_ENABLED", "false")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def llm(monkeypatch, fake_llm):
    """Route the CLI to the scripted LLM."""
    monkeypatch.setattr(
        "function_insight.core.orchestrator.create_llm_service", lambda config: fake_llm
    )
    return fake_llm


class TestAnalyzeCommand:
    def test_json_output(self, sample_repo, llm):
        """--json prints the record as JSON."""
        result = runner.invoke(app, ["analyze", str(sample_repo), "shop/orders.py", "total", "--json", "-q"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["ref"]["function_name"] == "total"
        assert data["stability"]["risk_level"] == "Stable"
        assert data["metrics"]["call_site_count"] == 2
        assert llm.calls == 1

    def test_rendered_report(self, sample_repo, llm):
        """Without --json a rich report is printed."""
        result = runner.invoke(app, ["analyze", str(sample_repo), "shop/orders.py", "total", "-q"])
        assert result.exit_code == 0, result.output
        assert "Stable" in result.output
        assert "Computes the order total." in result.output
        assert "Partially analyzed" in result.output

    def test_without_api_key_gives_partial_result(self, sample_repo):
        """Missing credentials give a partial record, not an error."""
        result = runner.invoke(app, ["analyze", str(sample_repo), "shop/orders.py", "total", "--json", "-q"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["narrative"]["intent_summary"] == "synthesis unavailable"
        assert "OPENAI_API_KEY" in data["synthesis_failure"]

    def test_unknown_function_exits_1(self, sample_repo, llm):
        """An unknown function exits with status 1 before calling the LLM."""
        result = runner.invoke(app, ["analyze", str(sample_repo), "shop/orders.py", "nope", "-q"])
        assert result.exit_code == 1
        assert "Error" in result.output
        assert llm.calls == 0

    def test_missing_root(self, tmp_path):
        """A repository root that does not exist is rejected."""
        result = runner.invoke(app, ["analyze", str(tmp_path / "absent"), "a.py", "f"])
        assert result.exit_code != 0


class TestHistoryCommand:
    def test_empty_history(self, sample_repo):
        """History of a never-analyzed function says so."""
        result = runner.invoke(app, ["history", str(sample_repo), "total"])
        assert result.exit_code == 0
        assert "No history found" in result.output

    def test_lists_analyses(self, sample_repo, llm):
        """History lists past analyses as JSON or a table."""
        runner.invoke(app, ["analyze", str(sample_repo), "shop/orders.py", "total", "--json", "-q"])
        result = runner.invoke(app, ["history", str(sample_repo), "total", "--json"])
        assert result.exit_code == 0, result.output
        records = json.loads(result.stdout)
        assert len(records) == 1
        assert records[0]["ref"]["file_path"] == "shop/orders.py"

        table = runner.invoke(app, ["history", str(sample_repo), "total", "--file", "shop/orders.py"])
        assert table.exit_code == 0
        assert "Analysis History" in table.output


class TestCacheCommands:
    def test_info_without_store(self, sample_repo):
        """cache-info before any analysis reports no store."""
        result = runner.invoke(app, ["cache-info", str(sample_repo)])
        assert result.exit_code == 0
        assert "No store yet" in result.output

    def test_info_and_clear(self, sample_repo, llm):
        """cache-info counts analyses and cache-clear removes them."""
        runner.invoke(app, ["analyze", str(sample_repo), "shop/orders.py", "total", "--json", "-q"])

        info = runner.invoke(app, ["cache-info", str(sample_repo)])
        assert info.exit_code == 0, info.output
        assert "Analyses: 1" in info.output

        cleared = runner.invoke(app, ["cache-clear", str(sample_repo)])
        assert cleared.exit_code == 0, cleared.output
        assert "1 analyses" in cleared.output

        history = runner.invoke(app, ["history", str(sample_repo), "total", "--json"])
        assert json.loads(history.stdout) == []
