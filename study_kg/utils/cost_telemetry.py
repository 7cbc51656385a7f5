"""
Run-scoped cost telemetry helpers.

Telemetry is enabled by attaching a CostCollector via contextvars.
Providers read the active collector and stage label and emit usage
records automatically; pipeline stages only set the label.

Example:
    >>> collector = CostCollector()
    >>> with telemetry_collector(collector), telemetry_stage("extraction"):
    ...     await llm.generate(prompt)
    >>> collector.summary().breakdown.total_calls
    1
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar

from study_kg.config.pricing import PRICING_VERSION
from study_kg.types.results import (
    CostBreakdown,
    CostDebugReport,
    CostUsageRecord,
    StageCostBreakdown,
)

_COLLECTOR: ContextVar[CostCollector | None] = ContextVar(
    "studykg_cost_collector",
    default=None,
)
_STAGE: ContextVar[str] = ContextVar("studykg_cost_stage", default="unknown")


class CostCollector:
    """
    Accumulates provider usage records for one pipeline run.

    Failed calls and calls whose token usage had to be estimated locally
    are counted per stage, so a report shows where a run lost batches as
    well as where it spent money.
    """

    def __init__(self, *, warn_threshold_usd: float | None = None) -> None:
        self._records: list[CostUsageRecord] = []
        self._warn_threshold_usd = warn_threshold_usd

    def add(self, record: CostUsageRecord) -> None:
        """Add one usage record."""
        self._records.append(record)

    @property
    def records(self) -> list[CostUsageRecord]:
        """Records collected so far, in call-completion order."""
        return list(self._records)

    def summary(self) -> CostDebugReport:
        """Build the run report: totals, per-stage breakdown and warnings."""
        stages: dict[str, StageCostBreakdown] = {}
        unpriced: dict[str, set[str]] = {}

        for record in self._records:
            stage = stages.setdefault(record.stage, StageCostBreakdown(stage=record.stage))
            _accumulate(stage, record)
            if record.metadata.get("pricing_found") is False:
                unpriced.setdefault(record.model, set()).add(record.stage)

        by_stage = sorted(stages.values(), key=lambda s: s.estimated_cost_usd, reverse=True)
        totals = CostBreakdown(
            total_calls=sum(s.calls for s in by_stage),
            total_input_tokens=sum(s.input_tokens for s in by_stage),
            total_output_tokens=sum(s.output_tokens for s in by_stage),
            total_tokens=sum(s.total_tokens for s in by_stage),
            total_estimated_cost_usd=sum(s.estimated_cost_usd for s in by_stage),
            total_latency_ms=sum(s.total_latency_ms for s in by_stage),
            failed_calls=sum(s.failed_calls for s in by_stage),
            estimated_calls=sum(s.estimated_calls for s in by_stage),
            by_stage=by_stage,
        )

        return CostDebugReport(
            enabled=True,
            pricing_version=PRICING_VERSION,
            breakdown=totals,
            warnings=self._warnings(totals, unpriced),
        )

    def _warnings(self, totals: CostBreakdown, unpriced: dict[str, set[str]]) -> list[str]:
        warnings = [
            f"Missing pricing for model '{model}' in stage(s) {', '.join(sorted(stages))}. "
            "Cost shown as 0.0 for those calls."
            for model, stages in sorted(unpriced.items())
        ]
        warnings.extend(
            f"{stage.failed_calls} failed completion call(s) in stage '{stage.stage}'."
            for stage in sorted(totals.by_stage, key=lambda s: s.stage)
            if stage.failed_calls
        )

        cost = totals.total_estimated_cost_usd
        if self._warn_threshold_usd is not None and cost >= self._warn_threshold_usd:
            warnings.append(
                f"Estimated run cost ${cost:.6f} exceeded threshold "
                f"${self._warn_threshold_usd:.6f}."
            )
        return warnings


def _accumulate(stage: StageCostBreakdown, record: CostUsageRecord) -> None:
    stage.calls += 1
    stage.input_tokens += record.input_tokens
    stage.output_tokens += record.output_tokens
    stage.total_tokens += record.total_tokens
    stage.estimated_cost_usd += record.estimated_cost_usd
    stage.total_latency_ms += record.latency_ms
    if record.metadata.get("failed"):
        stage.failed_calls += 1
    if record.estimated:
        stage.estimated_calls += 1


@contextmanager
def telemetry_collector(collector: CostCollector | None):
    """Set active run collector for provider instrumentation."""
    token = _COLLECTOR.set(collector)
    try:
        yield
    finally:
        _COLLECTOR.reset(token)


@contextmanager
def telemetry_stage(stage: str):
    """Set pipeline stage label for provider instrumentation."""
    token = _STAGE.set(stage)
    try:
        yield
    finally:
        _STAGE.reset(token)


def current_stage() -> str:
    """Return currently active telemetry stage label."""
    return _STAGE.get()


def record_usage(record: CostUsageRecord) -> None:
    """Add record to active collector if telemetry is enabled."""
    collector = _COLLECTOR.get()
    if collector is not None:
        collector.add(record)
