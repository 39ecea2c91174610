"""
Classification domain package.

This package contains:

- the item normalizer and cache-key derivation
- the TTL result cache
- the classification provider (prompt + parsing + retried LLM calls)
- the result validator that reconciles answers with the taxonomy
- the batch worker and the service that ties everything together
"""

from .cache import CacheStats, ResultCache
from .errors import (
    ClassificationError,
    EmptyResponseError,
    ResponseParseError,
    TransportError,
)
from .llm import ChatTransport, OpenAIChatTransport, SamplingParameters
from .models import ClassificationRequest, ClassificationResult
from .provider import ClassificationProvider, parse_classification_response
from .service import ClassificationService, create_service
from .validator import ValidationOutcome, validate_result
from .worker import BatchOrchestrator

__all__ = [
    "BatchOrchestrator",
    "CacheStats",
    "ChatTransport",
    "ClassificationError",
    "ClassificationProvider",
    "ClassificationRequest",
    "ClassificationResult",
    "ClassificationService",
    "EmptyResponseError",
    "OpenAIChatTransport",
    "ResponseParseError",
    "ResultCache",
    "SamplingParameters",
    "TransportError",
    "ValidationOutcome",
    "create_service",
    "parse_classification_response",
    "validate_result",
]
