"""
Result Validator
================

Reconciles a model answer with the authoritative taxonomy text. The model is
free-text and may invent a label for a real code; the taxonomy is the ground
truth for every code/label pair.

Taxonomy text is one node per line, the code first and the label after it:

    101 FRUITS LOCAUX
    202 LAIT ENTIER
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field

from .models import ClassificationResult, clamp_confidence

UNKNOWN_CODE = "unknown code"
LABEL_MISMATCH = "label mismatch"
INVALID_CONFIDENCE = "invalid confidence"

CONFIDENCE_PENALTY = 0.9
CONFIDENCE_FLOOR = 0.5
CORRECTION_NOTE = "(label corrected automatically)"


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    corrected: ClassificationResult
    issues: list[str] = field(default_factory=list)


def find_taxonomy_labels(code: str, taxonomy_context: str) -> list[str]:
    """
    Return every label written after ``code``, in taxonomy order.

    Codes repeat across levels ("101 STAND TRADITIONNEL", "101 BOEUF LOCAL"),
    so one code may carry several labels. The first whitespace-separated
    token of a line must equal the code, so "10" does not match a "101 ..."
    line. Lines holding only the code are skipped.
    """
    labels = []
    for line in taxonomy_context.splitlines():
        parts = line.strip().split(None, 1)
        if len(parts) == 2 and parts[0] == code and parts[1].strip():
            labels.append(parts[1].strip())
    return labels


def find_taxonomy_label(code: str, taxonomy_context: str) -> str | None:
    """Return the first label written after ``code``, or None."""
    labels = find_taxonomy_labels(code, taxonomy_context)
    return labels[0] if labels else None


def _penalize(confidence: float) -> float:
    """Lower confidence by the fixed penalty, floored, never above the input."""
    return min(confidence, max(CONFIDENCE_FLOOR, confidence * CONFIDENCE_PENALTY))


def validate_result(
    result: ClassificationResult, taxonomy_context: str
) -> ValidationOutcome:
    """
    Check ``result`` against the taxonomy and correct it when needed.

    Each issue is detected independently. When any issue is found and the
    taxonomy has a labelled line for the code, the corrected result carries
    the taxonomy label, a penalized confidence and a note in the rationale.
    Otherwise only the confidence is clamped.
    """
    issues: list[str] = []

    if result.code not in taxonomy_context:
        issues.append(UNKNOWN_CODE)

    labels = find_taxonomy_labels(result.code, taxonomy_context)
    label = result.label.strip()
    if labels and label not in labels:
        issues.append(LABEL_MISMATCH)

    confidence = result.confidence
    if not 0.0 <= confidence <= 1.0:
        issues.append(INVALID_CONFIDENCE)
        confidence = clamp_confidence(confidence)

    clamped = (
        result
        if confidence == result.confidence
        else dataclasses.replace(result, confidence=confidence)
    )
    if not issues:
        return ValidationOutcome(valid=True, corrected=clamped)

    if not labels:
        return ValidationOutcome(valid=False, corrected=clamped, issues=issues)

    corrected = dataclasses.replace(
        clamped,
        label=label if label in labels else labels[0],
        confidence=_penalize(confidence),
        rationale=f"{clamped.rationale} {CORRECTION_NOTE}".strip(),
    )
    return ValidationOutcome(valid=False, corrected=corrected, issues=issues)
