"""Public API for Function Insight.

Example:
    >>> from function_insight import analyze, history
    >>>
    >>> result = analyze("/path/to/repo", "pkg/service.py", "Service.run")
    >>> result.risk_level
    <RiskLevel.STABLE: 'Stable'>
    >>>
    >>> # Every stored analysis of the function, oldest first
    >>> [r.fingerprint for r in history("/path/to/repo", "Service.run")]
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

from .config import load_config
from .core import FunctionIntelligencePipeline
from .logging_config import get_logger, setup_logging
from .models import FunctionIntelligence
from .synthesis import LLMService

logger = get_logger(__name__)


def analyze(
    repository_root: str | Path,
    file_path: str,
    function_name: str,
    commit_hash: Optional[str] = None,
    config_file: Optional[Path] = None,
    llm: Optional[LLMService] = None,
    cancel_event: Optional[threading.Event] = None,
    **overrides,
) -> FunctionIntelligence:
    """Analyze one function and return its FunctionIntelligence.

    This is the main entry point. It:
    1. Loads configuration (auto-discover TOML + apply overrides)
    2. Serves a stored analysis if it is still valid
    3. Otherwise runs history and structure concurrently, scores,
       synthesizes and persists

    Args:
        repository_root: Repository root directory
        file_path: Target file, relative to the root (or absolute inside it)
        function_name: ``func`` or ``Class.method``
        commit_hash: Revision to analyze history at (default: HEAD, with a
            content fingerprint of the working tree file)
        config_file: Optional explicit config file path
        llm: LLM service override (default: built from configuration)
        cancel_event: Set to cancel the analysis cooperatively
        **overrides: Configuration overrides (e.g., verbose=True, token_budget=2000)

    Returns:
        FunctionIntelligence; check ``is_partial`` / ``degradations`` to tell a
        full analysis from a degraded one

    Raises:
        ConfigurationError: If configuration is invalid
        AnalysisUnavailableError: If the structural stage fails
        AnalysisCancelledError: If ``cancel_event`` is set mid-analysis
    """
    _configure_logging(overrides)
    config = load_config(config_file=config_file, **overrides)
    logger.debug(f"Configuration loaded: {config.verbosity} mode")

    pipeline = FunctionIntelligencePipeline(config, llm=llm)
    return pipeline.analyze(
        repository_root, file_path, function_name, commit_hash, cancel_event=cancel_event
    )


def history(
    repository_root: str | Path,
    function_name: str,
    file_path: Optional[str] = None,
    config_file: Optional[Path] = None,
    **overrides,
) -> list[FunctionIntelligence]:
    """Stored analyses of a function across fingerprints, oldest first.

    Read-only: never runs an analysis stage.
    """
    _configure_logging(overrides)
    config = load_config(config_file=config_file, **overrides)
    return FunctionIntelligencePipeline(config).history(repository_root, function_name, file_path)


def _configure_logging(overrides: dict) -> None:
    if "verbose" in overrides or "quiet" in overrides:
        setup_logging(
            verbose=bool(overrides.get("verbose")),
            quiet=bool(overrides.get("quiet")),
        )
