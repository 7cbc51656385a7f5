"""Tests for run-scoped cost telemetry aggregation."""

from study_kg.config.pricing import estimate_llm_cost_usd, lookup_price
from study_kg.types.results import CostUsageRecord
from study_kg.utils.cost_telemetry import (
    CostCollector,
    current_stage,
    record_usage,
    telemetry_collector,
    telemetry_stage,
)


def _record(stage: str, cost: float, **overrides) -> CostUsageRecord:
    data = {
        "provider": "openai",
        "model": "gpt-4o-mini",
        "operation": "generate",
        "stage": stage,
        "input_tokens": 100,
        "output_tokens": 20,
        "total_tokens": 120,
        "estimated_cost_usd": cost,
        "latency_ms": 15,
    }
    data.update(overrides)
    return CostUsageRecord(**data)


def test_cost_collector_aggregates_by_stage() -> None:
    """Collector should aggregate totals and per-stage metrics."""
    collector = CostCollector()
    collector.add(_record("structuring", 0.0001))
    collector.add(_record("extraction", 0.001, model="gpt-4o", input_tokens=50, output_tokens=0, total_tokens=50))

    report = collector.summary()
    assert report.enabled is True
    assert report.breakdown.total_calls == 2
    assert report.breakdown.total_tokens == 170
    assert report.breakdown.total_input_tokens == 150
    assert report.breakdown.total_output_tokens == 20
    assert len(report.breakdown.by_stage) == 2
    assert report.breakdown.failed_calls == 0
    # Most expensive stage first
    assert report.breakdown.by_stage[0].stage == "extraction"


def test_cost_collector_warns_on_threshold() -> None:
    """Collector should include warning when threshold is exceeded."""
    collector = CostCollector(warn_threshold_usd=0.0005)
    collector.add(_record("extraction", 0.001))

    report = collector.summary()
    assert any("exceeded threshold" in w for w in report.warnings)


def test_cost_collector_warns_on_missing_pricing_and_failures() -> None:
    """Unpriced models are reported once; failed calls are counted per stage."""
    collector = CostCollector()
    collector.add(_record("structuring", 0.0, model="mystery-model", metadata={"pricing_found": False}))
    collector.add(_record("extraction", 0.0, model="mystery-model", metadata={"pricing_found": False}))
    collector.add(_record("extraction", 0.0, metadata={"failed": True}, estimated=True))
    collector.add(_record("extraction", 0.0, metadata={"failed": True}, estimated=True))

    report = collector.summary()
    assert report.warnings == [
        "Missing pricing for model 'mystery-model' in stage(s) extraction, structuring. "
        "Cost shown as 0.0 for those calls.",
        "2 failed completion call(s) in stage 'extraction'.",
    ]
    assert report.breakdown.failed_calls == 2
    assert report.breakdown.estimated_calls == 2
    extraction = next(s for s in report.breakdown.by_stage if s.stage == "extraction")
    assert extraction.calls == 3
    assert extraction.failed_calls == 2


def test_record_usage_without_collector_is_noop() -> None:
    """Usage outside an active collector is dropped silently."""
    record_usage(_record("extraction", 0.001))


def test_stage_and_collector_context() -> None:
    """Records reach the active collector; stage labels nest and reset."""
    collector = CostCollector()
    assert current_stage() == "unknown"

    with telemetry_collector(collector):
        with telemetry_stage("structuring"):
            assert current_stage() == "structuring"
            with telemetry_stage("relations"):
                assert current_stage() == "relations"
            assert current_stage() == "structuring"
            record_usage(_record(current_stage(), 0.0))

    assert current_stage() == "unknown"
    record_usage(_record("extraction", 0.0))
    assert [r.stage for r in collector.records] == ["structuring"]


def test_lookup_price_resolves_dated_snapshots() -> None:
    """Dated model names resolve to the longest priced prefix."""
    assert lookup_price("gpt-4o-mini-2024-07-18") == lookup_price("gpt-4o-mini")
    assert lookup_price("gpt-4o-2024-08-06") == lookup_price("gpt-4o")
    assert lookup_price("claude-unknown") is None


def test_estimate_llm_cost_usd() -> None:
    """Cost is computed per million tokens; unknown models cost zero."""
    cost, priced = estimate_llm_cost_usd("gpt-4o-mini", input_tokens=1_000_000, output_tokens=1_000_000)
    assert priced is True
    assert abs(cost - 0.75) < 1e-9

    cost, priced = estimate_llm_cost_usd("mystery", input_tokens=10, output_tokens=10)
    assert (cost, priced) == (0.0, False)
