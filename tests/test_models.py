"""Tests for FunctionIntelligence and its parts."""

from datetime import datetime, timezone

from function_insight.models import (
    SYNTHESIS_UNAVAILABLE,
    ComplexityMetrics,
    DegradationNote,
    DependencySummary,
    FunctionIntelligence,
    FunctionRef,
    IntentNarrative,
    RiskLevel,
    StabilityScore,
)


def full_record(**changes):
    fields = dict(
        ref=FunctionRef("shop-0badc0de", "shop/orders.py", "total", "f" * 40),
        narrative=IntentNarrative("Sums items.", "Called by checkout.", "Low."),
        dependencies=DependencySummary(
            upstream=("shop/orders.py::checkout",),
            downstream=("shop/orders.py::round_money",),
            impact_radius_size=3,
        ),
        metrics=ComplexityMetrics(3, 5, 2, 2, 1),
        stability=StabilityScore(
            0.0312, RiskLevel.STABLE, {"complexity": 0.04, "lines_of_code": 0.004}
        ),
        recommendations=("Extract rounding",),
        created_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        degradations=(DegradationNote("history", "RepositoryAccessError", "not a repo"),),
        artifact_keys=("shop-0badc0de/diffs/x/abc",),
    )
    fields.update(changes)
    return FunctionIntelligence(**fields)


class TestFunctionRef:
    def test_function_key(self):
        """The function key joins path and local name."""
        ref = FunctionRef("r", "a/b.py", "Cart.add", "fp")
        assert ref.function_key == "a/b.py#Cart.add"


class TestFunctionIntelligence:
    def test_dict_round_trip(self):
        """to_dict and from_dict are inverses."""
        record = full_record()
        assert FunctionIntelligence.from_dict(record.to_dict()) == record

    def test_json_round_trip_preserves_timezone(self):
        """JSON keeps the aware creation timestamp."""
        record = full_record()
        restored = FunctionIntelligence.from_json(record.to_json())
        assert restored == record
        assert restored.created_at.tzinfo is not None

    def test_to_json_is_deterministic(self):
        """Serializing the same record twice gives the same bytes."""
        assert full_record().to_json() == full_record().to_json()

    def test_status_properties(self):
        """Convenience properties reflect the record's contents."""
        record = full_record()
        assert record.fingerprint == "f" * 40
        assert record.risk_level is RiskLevel.STABLE
        assert not record.is_partial
        assert not record.fully_analyzed
        assert full_record(degradations=()).fully_analyzed

    def test_partial_record(self):
        """A partial record carries the placeholder and the failure reason."""
        record = full_record(
            narrative=IntentNarrative.unavailable(),
            recommendations=(SYNTHESIS_UNAVAILABLE,),
            synthesis_failure="LLM unavailable",
        )
        assert record.is_partial
        assert record.narrative.intent_summary == SYNTHESIS_UNAVAILABLE
        assert FunctionIntelligence.from_json(record.to_json()).synthesis_failure == "LLM unavailable"

    def test_with_degradations_returns_new_record(self):
        """Adding degradations leaves the original untouched."""
        record = full_record(degradations=())
        note = DegradationNote("persist", "CacheError", "disk full")
        updated = record.with_degradations((note,))
        assert updated.degradations == (note,)
        assert record.degradations == ()


class TestDegradationNote:
    def test_from_exception(self):
        """A note takes the exception's type name and message."""
        note = DegradationNote.from_exception("history", RuntimeError("boom"))
        assert note == DegradationNote("history", "RuntimeError", "boom")
