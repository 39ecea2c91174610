"""
Batch Classification Worker
===========================

This module defines the BatchOrchestrator, which classifies an ordered list
of items with a hard upper bound on concurrently in-flight requests.

Items are split into groups no larger than the concurrency ceiling. Groups
run one after another; the items of a group run concurrently in a thread
pool. Results are written back by input index, so the output is aligned with
the input whatever order the calls complete in.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Sequence

import structlog

from common.config import Settings

from .models import ClassificationResult, error_result

log = structlog.get_logger(__name__)

ClassifyItem = Callable[[str, str], ClassificationResult]
ProgressCallback = Callable[[float], None]


def chunk(items: Sequence[str], size: int) -> list[list[tuple[int, str]]]:
    """Split ``items`` into groups of at most ``size``, keeping input indices."""
    size = max(1, size)
    indexed = list(enumerate(items))
    return [indexed[start : start + size] for start in range(0, len(indexed), size)]


class BatchOrchestrator:
    """
    Runs a per-item classifier over many items.

    ``classify_item(item_text, taxonomy_context)`` does the cache lookup,
    the provider call and validation for one item. Any exception it raises is
    turned into a sentinel error result for that item only.
    """

    def __init__(self, classify_item: ClassifyItem, settings: Settings):
        self.classify_item = classify_item
        self.settings = settings
        self.max_workers = max(1, settings.MAX_CONCURRENT_REQUESTS)
        self.group_size = max(1, min(settings.BATCH_GROUP_SIZE, self.max_workers))

    def run_batch(
        self,
        items: Sequence[str],
        taxonomy_context: str,
        on_progress: ProgressCallback | None = None,
    ) -> list[ClassificationResult]:
        """
        Classify ``items`` and return one result per item, in input order.

        Progress is reported after every item as a percentage of items
        completed. If ``on_progress`` raises, the items already in flight are
        allowed to finish before the exception propagates.
        """
        total = len(items)
        results: list[ClassificationResult | None] = [None] * total
        completed = 0

        for group in chunk(items, self.group_size):
            with ThreadPoolExecutor(
                max_workers=min(self.max_workers, len(group))
            ) as executor:
                future_to_index = {
                    executor.submit(
                        self._classify_safely, index, item, taxonomy_context
                    ): index
                    for index, item in group
                }
                for future in as_completed(future_to_index):
                    results[future_to_index[future]] = future.result()
                    completed += 1
                    if on_progress is not None:
                        on_progress(completed / total * 100)

        missing = [index for index, result in enumerate(results) if result is None]
        if missing:
            raise RuntimeError(f"Batch left items without a result: {missing}")
        return results

    def _classify_safely(
        self, index: int, item: str, taxonomy_context: str
    ) -> ClassificationResult:
        """Classify one item, converting any failure into a sentinel result."""
        try:
            return self.classify_item(item, taxonomy_context)
        except Exception as e:
            log.warning(
                "Item classification failed",
                index=index,
                item=item,
                error=str(e),
            )
            return error_result(str(e))
