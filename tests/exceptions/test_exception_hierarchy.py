"""Tests for the exception hierarchy and error rendering."""

import pytest

from function_insight.exceptions import (
    AnalysisCancelledError,
    AnalysisError,
    AnalysisUnavailableError,
    CacheError,
    ConfigurationError,
    FunctionInsightError,
    FunctionNotFoundError,
    GraphConstructionError,
    InvalidConfigError,
    ParseError,
    PermanentLLMError,
    ReplyFormatError,
    RepositoryAccessError,
    StageTimeoutError,
    StorageError,
    SynthesisError,
    TransientLLMError,
    UnsupportedLanguageError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error,parent",
        [
            (RepositoryAccessError("/repo", "not a git repository"), AnalysisError),
            (ParseError("a.py", "python", "invalid syntax", (3, 7)), AnalysisError),
            (UnsupportedLanguageError(".go", [".py"]), AnalysisError),
            (GraphConstructionError("a.py::f", [("x",), ("y",)]), AnalysisError),
            (FunctionNotFoundError("a.py", "f"), AnalysisError),
            (StageTimeoutError("history", 120), AnalysisError),
            (AnalysisUnavailableError("boom"), AnalysisError),
            (AnalysisCancelledError("synthesis"), AnalysisError),
            (CacheError("open", "disk full"), StorageError),
            (TransientLLMError("rate limited", 429), SynthesisError),
            (PermanentLLMError("bad request", 400), SynthesisError),
            (ReplyFormatError("empty reply"), SynthesisError),
            (InvalidConfigError("token_budget", 1, "too small"), ConfigurationError),
        ],
    )
    def test_parents(self, error, parent):
        """Each error sits under its family and the package base."""
        assert isinstance(error, parent)
        assert isinstance(error, FunctionInsightError)


class TestRendering:
    def test_details_are_rendered(self):
        """Details are appended to the message."""
        err = ParseError("a.py", "python", "invalid syntax", (3, 7))
        text = str(err)
        assert text.startswith("Failed to parse python file: a.py (")
        assert "location=3:7" in text
        assert err.details["reason"] == "invalid syntax"

    def test_message_without_details(self):
        """A bare message renders unchanged."""
        assert str(FunctionInsightError("plain")) == "plain"

    def test_graph_error_lists_signatures(self):
        """Conflicting signatures are listed side by side."""
        err = GraphConstructionError("a.py::f", [("x",), ("y", "z")])
        assert err.details["signatures"] == "(x) vs (y, z)"

    def test_unavailable_records_cause(self):
        """The fatal error keeps its cause and names its type."""
        cause = FunctionNotFoundError("a.py", "f", ["g", "h"])
        err = AnalysisUnavailableError(str(cause), cause)
        assert err.cause is cause
        assert err.details["cause"] == "FunctionNotFoundError"
        assert "candidates=g, h" in str(cause)
