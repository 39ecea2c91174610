"""
Classification Service
======================

The public surface of the classification engine. ``ClassificationService``
combines the cache, the provider, the validator and the batch orchestrator;
``create_service`` is the composition root that builds one from settings.
"""

from __future__ import annotations

import time
from typing import Sequence

import structlog

from common.config import Settings
from common.logging_config import configure_logging

from .cache import CacheStats, ResultCache
from .llm import ChatTransport, OpenAIChatTransport
from .metrics import summarize_batch
from .models import ClassificationRequest, ClassificationResult
from .normalizer import cache_key
from .provider import ClassificationProvider
from .validator import validate_result
from .worker import BatchOrchestrator, ProgressCallback

log = structlog.get_logger(__name__)


class ClassificationService:
    """
    Classifies items against a taxonomy with caching, retries and validation.
    """

    def __init__(
        self,
        settings: Settings,
        provider: ClassificationProvider,
        cache: ResultCache,
    ):
        self.settings = settings
        self.provider = provider
        self.cache = cache
        self.orchestrator = BatchOrchestrator(self.classify_one, settings)

    def classify_one(self, item_text: str, taxonomy_context: str) -> ClassificationResult:
        """
        Classify one item.

        Served from cache when possible. Raises the provider's last error once
        its retries are exhausted.
        """
        request = ClassificationRequest(item_text, taxonomy_context)
        key = cache_key(item_text, self.settings.CACHE_KEY_KEYWORDS)

        cached = self.cache.get(key)
        if cached is not None:
            log.debug("Cache hit", cache_key=key)
            return cached

        log.debug("Cache miss; calling provider", cache_key=key)
        result = self.provider.classify(request)
        outcome = validate_result(result, taxonomy_context)
        if not outcome.valid:
            log.warning(
                "Classification corrected against taxonomy",
                item=item_text,
                code=result.code,
                issues=outcome.issues,
            )

        self.cache.put(key, outcome.corrected)
        return outcome.corrected

    def classify_batch(
        self,
        items: Sequence[str],
        taxonomy_context: str,
        on_progress: ProgressCallback | None = None,
    ) -> list[ClassificationResult]:
        """Classify many items; failures become sentinel results, never errors."""
        log.info(
            "Processing batch",
            item_count=len(items),
            max_concurrent=self.orchestrator.max_workers,
        )
        started = time.monotonic()
        results = self.orchestrator.run_batch(items, taxonomy_context, on_progress)

        summary = summarize_batch(results, self.settings, time.monotonic() - started)
        log.info(
            "Batch classification finished",
            total=summary.total,
            succeeded=summary.succeeded,
            failed=summary.failed,
            needs_review=summary.needs_review,
            average_confidence=round(summary.average_confidence, 3),
            elapsed_seconds=round(summary.elapsed_seconds, 2),
        )
        return results

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()
        log.info("Classification cache cleared")


def create_service(
    settings: Settings | None = None,
    transport: ChatTransport | None = None,
) -> ClassificationService:
    """
    Build a ready-to-use service.

    Loads ``Settings`` from the environment when none is given and configures
    logging in that case. ``transport`` defaults to the OpenAI-compatible
    transport described by the settings.
    """
    if settings is None:
        try:
            settings = Settings()
        except ValueError as e:
            log.error("Configuration error", error=str(e))
            raise
        configure_logging(settings)

    transport = transport or OpenAIChatTransport(settings)
    log.info(
        "Creating classification service",
        llm_provider=settings.LLM_PROVIDER,
        ai_model=settings.AI_MODEL,
        max_concurrent=settings.MAX_CONCURRENT_REQUESTS,
        retry_attempts=settings.RETRY_ATTEMPTS,
        cache_ttl_seconds=settings.CACHE_TTL_SECONDS,
    )
    return ClassificationService(
        settings,
        ClassificationProvider(settings, transport),
        ResultCache(settings.CACHE_TTL_SECONDS, settings.CACHE_MAX_ENTRIES),
    )
