"""
Batch reporting helpers.

Summaries are computed from the results of a batch after the fact; nothing
here feeds back into classification.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from common.config import Settings

from .models import ClassificationResult

HIGH = "high"
MEDIUM = "medium"
LOW = "low"


def confidence_band(confidence: float, settings: Settings) -> str:
    if confidence >= settings.CONFIDENCE_HIGH:
        return HIGH
    if confidence >= settings.CONFIDENCE_MEDIUM:
        return MEDIUM
    return LOW


def needs_review(result: ClassificationResult, settings: Settings) -> bool:
    """Sentinel results and low-confidence answers need a human look."""
    return result.is_error or result.confidence < settings.REVIEW_THRESHOLD


@dataclass(frozen=True)
class BatchSummary:
    total: int
    succeeded: int
    failed: int
    average_confidence: float
    needs_review: int
    elapsed_seconds: float = 0.0
    code_distribution: dict[str, int] = field(default_factory=dict)
    confidence_distribution: dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        return self.succeeded / self.total if self.total else 0.0


def summarize_batch(
    results: Iterable[ClassificationResult],
    settings: Settings,
    elapsed_seconds: float = 0.0,
) -> BatchSummary:
    """Aggregate a batch: outcome counts, confidence bands and code distribution."""
    results = list(results)
    successes = [result for result in results if not result.is_error]
    bands = Counter({HIGH: 0, MEDIUM: 0, LOW: 0})
    bands.update(confidence_band(result.confidence, settings) for result in successes)
    average = (
        sum(result.confidence for result in successes) / len(successes)
        if successes
        else 0.0
    )
    return BatchSummary(
        total=len(results),
        succeeded=len(successes),
        failed=len(results) - len(successes),
        average_confidence=average,
        needs_review=sum(1 for result in results if needs_review(result, settings)),
        elapsed_seconds=elapsed_seconds,
        code_distribution=dict(Counter(result.code for result in successes)),
        confidence_distribution=dict(bands),
    )
