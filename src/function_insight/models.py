"""Data models for Function Insight.

FunctionIntelligence is the aggregate result of one analysis. It is an
immutable record: a new analysis produces a new record, it never patches an
old one. ``to_dict``/``from_dict`` give a lossless round-trip through JSON.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

ANALYSIS_FORMAT_VERSION = "1.0"

SYNTHESIS_UNAVAILABLE = "synthesis unavailable"


class RiskLevel(Enum):
    STABLE = "Stable"
    MODERATE_RISK = "ModerateRisk"
    HIGH_RISK = "HighRisk"


@dataclass(frozen=True)
class FunctionRef:
    """Identifies one function at one version.

    Attributes:
        repository_id: Stable identifier of the repository
        file_path: Path relative to the repository root (POSIX separators)
        function_name: Name as requested (``func`` or ``Class.method``)
        fingerprint: Commit or content hash the analysis ran against
    """

    repository_id: str
    file_path: str
    function_name: str
    fingerprint: str

    @property
    def function_key(self) -> str:
        return f"{self.file_path}#{self.function_name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "repository_id": self.repository_id,
            "file_path": self.file_path,
            "function_name": self.function_name,
            "fingerprint": self.fingerprint,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FunctionRef:
        return cls(
            repository_id=d["repository_id"],
            file_path=d["file_path"],
            function_name=d["function_name"],
            fingerprint=d["fingerprint"],
        )


@dataclass(frozen=True)
class ComplexityMetrics:
    """Raw metrics for one function. All non-negative; complexity >= 1."""

    cyclomatic_complexity: int
    lines_of_code: int
    parameter_count: int
    modification_frequency: int
    call_site_count: int

    def __post_init__(self) -> None:
        if self.cyclomatic_complexity < 1:
            raise ValueError("cyclomatic_complexity must be at least 1")
        for name in ("lines_of_code", "parameter_count", "modification_frequency", "call_site_count"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    def to_dict(self) -> dict[str, int]:
        return {
            "cyclomatic_complexity": self.cyclomatic_complexity,
            "lines_of_code": self.lines_of_code,
            "parameter_count": self.parameter_count,
            "modification_frequency": self.modification_frequency,
            "call_site_count": self.call_site_count,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ComplexityMetrics:
        return cls(
            cyclomatic_complexity=int(d["cyclomatic_complexity"]),
            lines_of_code=int(d["lines_of_code"]),
            parameter_count=int(d["parameter_count"]),
            modification_frequency=int(d["modification_frequency"]),
            call_site_count=int(d["call_site_count"]),
        )


@dataclass(frozen=True)
class StabilityScore:
    """Risk score in [0, 1] and its classification."""

    score: float
    risk_level: RiskLevel
    normalized: dict[str, float] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "risk_level": self.risk_level.value,
            "normalized": dict(self.normalized),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> StabilityScore:
        return cls(
            score=float(d["score"]),
            risk_level=RiskLevel(d["risk_level"]),
            normalized={k: float(v) for k, v in d.get("normalized", {}).items()},
        )


@dataclass(frozen=True)
class IntentNarrative:
    """Synthesized prose about the function."""

    intent_summary: str
    dependency_overview: str
    risk_assessment: str

    @classmethod
    def unavailable(cls) -> IntentNarrative:
        return cls(SYNTHESIS_UNAVAILABLE, SYNTHESIS_UNAVAILABLE, SYNTHESIS_UNAVAILABLE)

    def to_dict(self) -> dict[str, str]:
        return {
            "intent_summary": self.intent_summary,
            "dependency_overview": self.dependency_overview,
            "risk_assessment": self.risk_assessment,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> IntentNarrative:
        return cls(
            intent_summary=d["intent_summary"],
            dependency_overview=d["dependency_overview"],
            risk_assessment=d["risk_assessment"],
        )


@dataclass(frozen=True)
class DependencySummary:
    """Direct callers/callees (sorted) and the size of the impact radius."""

    upstream: tuple[str, ...] = ()
    downstream: tuple[str, ...] = ()
    impact_radius_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "upstream": list(self.upstream),
            "downstream": list(self.downstream),
            "impact_radius_size": self.impact_radius_size,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DependencySummary:
        return cls(
            upstream=tuple(d.get("upstream", ())),
            downstream=tuple(d.get("downstream", ())),
            impact_radius_size=int(d.get("impact_radius_size", 0)),
        )


@dataclass(frozen=True)
class DegradationNote:
    """One absorbed failure: which stage, what went wrong."""

    stage: str
    error_type: str
    reason: str

    @classmethod
    def from_exception(cls, stage: str, exc: BaseException) -> DegradationNote:
        return cls(stage=stage, error_type=type(exc).__name__, reason=str(exc))

    def to_dict(self) -> dict[str, str]:
        return {"stage": self.stage, "error_type": self.error_type, "reason": self.reason}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DegradationNote:
        return cls(stage=d["stage"], error_type=d["error_type"], reason=d["reason"])


@dataclass(frozen=True)
class FunctionIntelligence:
    """Aggregate analysis result for one function at one fingerprint."""

    ref: FunctionRef
    narrative: IntentNarrative
    dependencies: DependencySummary
    metrics: ComplexityMetrics
    stability: StabilityScore
    recommendations: tuple[str, ...]
    created_at: datetime
    format_version: str = ANALYSIS_FORMAT_VERSION
    degradations: tuple[DegradationNote, ...] = ()
    synthesis_failure: Optional[str] = None
    artifact_keys: tuple[str, ...] = ()

    @property
    def fingerprint(self) -> str:
        return self.ref.fingerprint

    @property
    def risk_level(self) -> RiskLevel:
        return self.stability.risk_level

    @property
    def is_partial(self) -> bool:
        """True when synthesis failed and narrative fields carry the marker."""
        return self.synthesis_failure is not None

    @property
    def fully_analyzed(self) -> bool:
        """True when no stage failure was absorbed."""
        return not self.degradations and not self.is_partial

    def with_degradations(self, notes: tuple[DegradationNote, ...]) -> FunctionIntelligence:
        """Copy with additional degradation notes appended."""
        return replace(self, degradations=self.degradations + tuple(notes))

    def to_dict(self) -> dict[str, Any]:
        return {
            "ref": self.ref.to_dict(),
            "narrative": self.narrative.to_dict(),
            "dependencies": self.dependencies.to_dict(),
            "metrics": self.metrics.to_dict(),
            "stability": self.stability.to_dict(),
            "recommendations": list(self.recommendations),
            "created_at": self.created_at.isoformat(),
            "format_version": self.format_version,
            "degradations": [n.to_dict() for n in self.degradations],
            "synthesis_failure": self.synthesis_failure,
            "artifact_keys": list(self.artifact_keys),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FunctionIntelligence:
        return cls(
            ref=FunctionRef.from_dict(d["ref"]),
            narrative=IntentNarrative.from_dict(d["narrative"]),
            dependencies=DependencySummary.from_dict(d["dependencies"]),
            metrics=ComplexityMetrics.from_dict(d["metrics"]),
            stability=StabilityScore.from_dict(d["stability"]),
            recommendations=tuple(d.get("recommendations", ())),
            created_at=datetime.fromisoformat(d["created_at"]),
            format_version=d.get("format_version", ANALYSIS_FORMAT_VERSION),
            degradations=tuple(DegradationNote.from_dict(n) for n in d.get("degradations", ())),
            synthesis_failure=d.get("synthesis_failure"),
            artifact_keys=tuple(d.get("artifact_keys", ())),
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Deterministic JSON (sorted keys)."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    @classmethod
    def from_json(cls, text: str) -> FunctionIntelligence:
        return cls.from_dict(json.loads(text))
