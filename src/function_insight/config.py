"""Configuration loading and management for Function Insight.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.function-insight.toml)
    3. Project config (./function-insight.toml)
    4. Explicit config file
    5. Environment variables (FUNCTION_INSIGHT_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(verbose=True, token_budget=2000)
    >>> config.verbosity
    'verbose'
    >>> config.token_budget
    2000
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

_ENV_PREFIX = "FUNCTION_INSIGHT_"


@dataclass(frozen=True)
class NormalizationRanges:
    """(min, max) ranges used to normalize raw metrics into [0, 1].

    A value at or below ``min`` normalizes to 0, at or above ``max`` to 1.
    A degenerate range (``min == max``) always normalizes to 0.
    """

    complexity: tuple[float, float] = (1.0, 50.0)
    modification_frequency: tuple[float, float] = (0.0, 100.0)
    call_site_count: tuple[float, float] = (0.0, 500.0)
    lines_of_code: tuple[float, float] = (1.0, 1000.0)

    def __post_init__(self) -> None:
        for name in ("complexity", "modification_frequency", "call_site_count", "lines_of_code"):
            value = getattr(self, name)
            if len(value) != 2:
                raise InvalidConfigError(f"ranges.{name}", value, "expected [min, max]")
            low, high = value
            if low > high:
                raise InvalidConfigError(f"ranges.{name}", value, "min must not exceed max")
            # TOML arrays arrive as lists
            object.__setattr__(self, name, (float(low), float(high)))


DEFAULT_RANGES = NormalizationRanges()


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for a function analysis run.

    Attributes:
        Caching:
            cache_ttl_hours: Validity window for stored analyses
            parse_cache_enabled: Memoize parsed source files on disk
            store_dir: Directory for the metadata DB, blobs and parse cache
                (relative paths resolve against the repository root)

        Pipeline:
            stage_timeout_seconds: Per-stage time limit for concurrent stages
            workers: Parallel parse workers (None = auto-detect)
            max_files: Maximum number of source files to parse
            git_max_commits: Maximum commits collected per function

        Synthesis:
            token_budget: Prompt cap in estimated tokens
            llm_max_attempts: Total attempts including the first call
            llm_backoff_initial_seconds: Delay before the first retry
            llm_backoff_max_seconds: Upper bound on any single delay
            llm_model / llm_base_url / llm_api_key_env / llm_timeout_seconds /
            llm_temperature: LLM service settings

        Output control:
            verbosity: Logging verbosity level

        Scoring:
            ranges: Normalization ranges for the stability score
    """

    # Caching
    cache_ttl_hours: int = 24
    parse_cache_enabled: bool = True
    store_dir: str = ".function-insight"

    # Pipeline
    stage_timeout_seconds: int = 120
    workers: Optional[int] = None
    max_files: int = 10000
    git_max_commits: int = 500

    # Synthesis
    token_budget: int = 4000
    llm_max_attempts: int = 4
    llm_backoff_initial_seconds: float = 1.0
    llm_backoff_max_seconds: float = 8.0
    llm_model: str = "gpt-4o-mini"
    llm_base_url: Optional[str] = None
    llm_api_key_env: str = "OPENAI_API_KEY"
    llm_timeout_seconds: int = 60
    llm_temperature: float = 0.2

    # Output control
    verbosity: Verbosity = "normal"

    # Scoring (nested config)
    ranges: NormalizationRanges = field(default_factory=NormalizationRanges)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.cache_ttl_hours < 0:
            raise InvalidConfigError("cache_ttl_hours", self.cache_ttl_hours, "must be non-negative")
        if self.stage_timeout_seconds < 1:
            raise InvalidConfigError(
                "stage_timeout_seconds", self.stage_timeout_seconds, "must be at least 1"
            )
        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")
        if self.max_files < 1:
            raise InvalidConfigError("max_files", self.max_files, "must be at least 1")
        if self.git_max_commits < 1:
            raise InvalidConfigError("git_max_commits", self.git_max_commits, "must be at least 1")
        if self.token_budget < 100:
            raise InvalidConfigError("token_budget", self.token_budget, "must be at least 100")
        if self.llm_max_attempts < 1:
            raise InvalidConfigError("llm_max_attempts", self.llm_max_attempts, "must be at least 1")
        if self.llm_backoff_initial_seconds < 0:
            raise InvalidConfigError(
                "llm_backoff_initial_seconds",
                self.llm_backoff_initial_seconds,
                "must be non-negative",
            )
        if self.llm_backoff_max_seconds < self.llm_backoff_initial_seconds:
            raise InvalidConfigError(
                "llm_backoff_max_seconds",
                self.llm_backoff_max_seconds,
                "must be at least llm_backoff_initial_seconds",
            )
        if not 0.0 <= self.llm_temperature <= 2.0:
            raise InvalidConfigError("llm_temperature", self.llm_temperature, "must be in [0, 2]")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "expected quiet/normal/verbose")

    @property
    def cache_ttl_seconds(self) -> int:
        """Get cache TTL in seconds."""
        return self.cache_ttl_hours * 3600

    def resolve_store_dir(self, repository_root: str | Path) -> Path:
        """Absolute store directory for a repository."""
        path = Path(self.store_dir).expanduser()
        if path.is_absolute():
            return path
        return Path(repository_root).resolve() / path


def load_config(config_file: Optional[Path] = None, **overrides) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated AnalysisConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
        InvalidConfigError: If a value fails validation
    """
    merged: dict = {}

    global_config = Path.home() / ".function-insight.toml"
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / "function-insight.toml"
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        if not Path(config_file).exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_file(Path(config_file)))

    merged.update(_load_env_vars())

    # Verbosity flags arrive as booleans from the CLI
    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    ranges = merged.pop("ranges", None)
    if ranges is not None:
        if isinstance(ranges, dict):
            try:
                merged["ranges"] = NormalizationRanges(
                    **{k: tuple(v) for k, v in ranges.items()}
                )
            except TypeError as e:
                raise ConfigurationError(f"Invalid [ranges] config: {e}")
        elif isinstance(ranges, NormalizationRanges):
            merged["ranges"] = ranges
        else:
            raise InvalidConfigError("ranges", ranges, "expected a table of [min, max] pairs")

    try:
        return AnalysisConfig(**merged)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from FUNCTION_INSIGHT_* environment variables.

    Only scalar fields are read, e.g. FUNCTION_INSIGHT_TOKEN_BUDGET=3000 or
    FUNCTION_INSIGHT_PARSE_CACHE_ENABLED=false.
    """
    type_hints = get_type_hints(AnalysisConfig)
    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"{_ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Returns None for types that cannot be expressed as a single env value.
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load a TOML file and return the parsed dict."""
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}")
