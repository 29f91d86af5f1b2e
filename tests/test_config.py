"""Tests for configuration loading."""

import os

import pytest

from function_insight.config import AnalysisConfig, NormalizationRanges, load_config
from function_insight.exceptions import ConfigurationError, InvalidConfigError


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep the user's global/project config and environment out of tests."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("FUNCTION_INSIGHT_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults(self):
        """Without files or environment the defaults apply."""
        config = load_config()
        assert config.cache_ttl_hours == 24
        assert config.cache_ttl_seconds == 86400
        assert config.token_budget == 4000
        assert config.llm_max_attempts == 4
        assert config.llm_backoff_initial_seconds == 1.0
        assert config.verbosity == "normal"
        assert config.ranges == NormalizationRanges()


class TestSources:
    def test_project_file(self, tmp_path):
        """A project file in the working directory is read, ranges included."""
        (tmp_path / "function-insight.toml").write_text(
            "token_budget = 2000\n\n[ranges]\ncomplexity = [1, 20]\n"
        )
        config = load_config()
        assert config.token_budget == 2000
        assert config.ranges.complexity == (1.0, 20.0)
        assert config.ranges.lines_of_code == (1.0, 1000.0)

    def test_explicit_file_overrides_project_file(self, tmp_path):
        """An explicit config file beats the project file."""
        (tmp_path / "function-insight.toml").write_text("token_budget = 2000\n")
        explicit = tmp_path / "custom.toml"
        explicit.write_text("token_budget = 3000\n")
        assert load_config(explicit).token_budget == 3000

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        """Environment variables beat config files."""
        (tmp_path / "function-insight.toml").write_text("token_budget = 2000\n")
        monkeypatch.setenv("FUNCTION_INSIGHT_TOKEN_BUDGET", "2500")
        monkeypatch.setenv("FUNCTION_INSIGHT_PARSE_CACHE_ENABLED", "off")
        config = load_config()
        assert config.token_budget == 2500
        assert config.parse_cache_enabled is False

    def test_overrides_win(self, monkeypatch):
        """Keyword overrides beat everything else."""
        monkeypatch.setenv("FUNCTION_INSIGHT_TOKEN_BUDGET", "2500")
        config = load_config(token_budget=1500, workers=None, verbose=True, quiet=False)
        assert config.token_budget == 1500
        assert config.workers is None
        assert config.verbosity == "verbose"


class TestErrors:
    def test_missing_explicit_file(self, tmp_path):
        """A named config file that does not exist is an error."""
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "nope.toml")

    def test_malformed_toml(self, tmp_path):
        """Invalid TOML is an error."""
        bad = tmp_path / "bad.toml"
        bad.write_text("token_budget = = 1\n")
        with pytest.raises(ConfigurationError):
            load_config(bad)

    def test_unknown_key(self, tmp_path):
        """Unknown keys are rejected."""
        bad = tmp_path / "bad.toml"
        bad.write_text("no_such_option = 1\n")
        with pytest.raises(ConfigurationError):
            load_config(bad)

    def test_bad_env_value(self, monkeypatch):
        """An environment value of the wrong type is rejected."""
        monkeypatch.setenv("FUNCTION_INSIGHT_TOKEN_BUDGET", "lots")
        with pytest.raises(InvalidConfigError):
            load_config()

    @pytest.mark.parametrize(
        "changes",
        [
            {"cache_ttl_hours": -1},
            {"token_budget": 10},
            {"llm_max_attempts": 0},
            {"llm_backoff_initial_seconds": 4.0, "llm_backoff_max_seconds": 2.0},
            {"verbosity": "loud"},
        ],
    )
    def test_validation(self, changes):
        """Out-of-range values are rejected."""
        with pytest.raises(InvalidConfigError):
            AnalysisConfig(**changes)

    def test_inverted_range(self):
        """A range whose low end exceeds its high end is rejected."""
        with pytest.raises(InvalidConfigError):
            NormalizationRanges(complexity=(10, 1))


class TestStoreDir:
    def test_relative_store_dir_resolves_under_root(self, tmp_path):
        """A relative store directory lives under the repository root."""
        assert AnalysisConfig().resolve_store_dir(tmp_path) == tmp_path.resolve() / ".function-insight"

    def test_absolute_store_dir(self, tmp_path):
        """An absolute store directory is used as-is."""
        config = AnalysisConfig(store_dir=str(tmp_path / "elsewhere"))
        assert config.resolve_store_dir("/any/root") == tmp_path / "elsewhere"
