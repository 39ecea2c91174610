"""
Value types shared by the classification engine.
"""

from __future__ import annotations

from dataclasses import dataclass

ERROR_CODE = "ERROR"
ERROR_LABEL = "PROCESSING ERROR"
DEFAULT_RATIONALE = "No rationale provided"


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class ClassificationRequest:
    item_text: str
    taxonomy_context: str

    def __post_init__(self):
        if not self.taxonomy_context or not self.taxonomy_context.strip():
            raise ValueError("taxonomy_context must not be empty")


@dataclass(frozen=True)
class ClassificationResult:
    code: str
    label: str
    confidence: float
    rationale: str

    @property
    def is_error(self) -> bool:
        return self.code == ERROR_CODE


def error_result(message: str) -> ClassificationResult:
    """Build the sentinel result standing in for an item that failed."""
    return ClassificationResult(
        code=ERROR_CODE,
        label=ERROR_LABEL,
        confidence=0.0,
        rationale=message or "Unknown error",
    )
