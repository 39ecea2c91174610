"""
Classification Provider
=======================

This module performs one classification request against the external
generation service. It owns the prompt, the parsing of the model's reply
into a ``ClassificationResult`` and the retry policy around the call.

The provider knows nothing about caching or batching.
"""

from __future__ import annotations

import json
import math

import structlog

from common.config import Settings
from common.utils import retry

from .errors import ResponseParseError, TransportError
from .llm import ChatTransport, SamplingParameters
from .models import (
    DEFAULT_RATIONALE,
    ClassificationRequest,
    ClassificationResult,
    clamp_confidence,
)
from .normalizer import describe_item

log = structlog.get_logger(__name__)

CLASSIFICATION_PROMPT = """
You are an expert in product classification for hypermarket catalogues.

CONTEXT: the reference taxonomy is a 4-level hierarchy
- Level 1: Sector (e.g. 01 MARKET)
- Level 2: Aisle (e.g. 010 BUTCHERY)
- Level 3: Family (e.g. 101 TRADITIONAL COUNTER)
- Level 4: Sub-family (e.g. 101 LOCAL BEEF)

Each line of the taxonomy starts with a code followed by its label.

CLASSIFICATION EXAMPLES:
- "Lait entier 1L" -> 202 LAIT DE CONSOMMATION > 203 LAIT ENTIER
- "Pommes Golden" -> 111 FRUITS > 101 FRUITS LOCAUX
- "Steak hache 5%" -> 102 LIBRE SERVICE > 201 BOEUF LOCAL
- "Yaourt nature Bio" -> 201 PRODUIT FR.LAITIER LS BIO > 109 YAOURTS BIOLOGIQUES
- "Saucisson sec" -> 215 SAUCISSONS SECS > 501 SAUCISSONS SECS

RULES:
1. Analyse the main keywords of the item description.
2. Prefer the most precise level (level 4 when possible).
3. For organic (BIO) products, look for the dedicated organic sections first.
4. For HALAL products, use the dedicated HALAL sections.
5. Use ONLY codes that appear in the taxonomy, with their EXACT label.
6. Base the confidence score on how precise the match is:
   - 0.9-1.0: exact match on specific keywords
   - 0.7-0.9: probable match with a clear category
   - 0.5-0.7: possible match that needs validation
   - below 0.5: uncertain, needs manual review

Reply only with a single, valid JSON object. Do not wrap it in markdown or
add explanations outside the JSON.

{
  "code": "XXX",
  "label": "EXACT LABEL FROM THE TAXONOMY",
  "confidence": 0.95,
  "rationale": "Keywords found: [X, Y, Z] -> level N classification"
}
""".strip()

# Field names older prompts asked for.
FIELD_ALIASES = {
    "code": ("code", "secteurCode"),
    "label": ("label", "secteurLibelle"),
    "confidence": ("confidence",),
    "rationale": ("rationale", "reasoning"),
}


def build_user_prompt(request: ClassificationRequest) -> str:
    """Combine the item description and the taxonomy into the user message."""
    return (
        f"{describe_item(request.item_text)}\n\n"
        "Available taxonomy:\n"
        f"{request.taxonomy_context}\n\n"
        "Classify this item into the most appropriate taxonomy node and reply "
        "ONLY with JSON in the requested format."
    )


def _extract_json(text: str) -> dict:
    """
    Return the first JSON object embedded in ``text``.

    Models often wrap the payload in prose or code fences, so every ``{`` is
    tried as a starting point until one decodes to an object.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        pass
    else:
        if isinstance(data, dict):
            return data

    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            data, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            pass
        else:
            if isinstance(data, dict):
                return data
        start = text.find("{", start + 1)
    raise ResponseParseError("No JSON object found in the classification response.")


def _lookup(data: dict, field: str):
    for name in FIELD_ALIASES[field]:
        if name in data:
            return data[name]
    return None


def _required_text(data: dict, field: str) -> str:
    value = _lookup(data, field)
    # Codes are sometimes emitted as numbers.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise ResponseParseError(f"Classification response is missing '{field}'.")
    return value.strip()


def parse_classification_response(text: str) -> ClassificationResult:
    """
    Parse and sanitize the classification response.

    Raises ``ResponseParseError`` when no JSON object is present or when
    ``code``, ``label`` or a numeric ``confidence`` is missing.
    """
    raw = text.strip()
    if not raw:
        raise ResponseParseError("Classification response is empty.")

    data = _extract_json(raw)
    code = _required_text(data, "code")
    label = _required_text(data, "label")

    confidence = _lookup(data, "confidence")
    if (
        isinstance(confidence, bool)
        or not isinstance(confidence, (int, float))
        or not math.isfinite(confidence)
    ):
        raise ResponseParseError("Classification response has no numeric 'confidence'.")

    rationale = _lookup(data, "rationale")
    rationale = str(rationale).strip() if rationale is not None else ""

    return ClassificationResult(
        code=code,
        label=label,
        confidence=clamp_confidence(confidence),
        rationale=rationale or DEFAULT_RATIONALE,
    )


class ClassificationProvider:
    """
    Classifies a single item through a ``ChatTransport``.

    Transport failures and unusable replies both consume a retry attempt; the
    last error is re-raised once ``settings.RETRY_ATTEMPTS`` is exhausted.
    """

    def __init__(self, settings: Settings, transport: ChatTransport):
        self.settings = settings
        self.transport = transport
        self.sampling = SamplingParameters.from_settings(settings)

    @retry(retryable_exceptions=(TransportError, ResponseParseError))
    def classify(self, request: ClassificationRequest) -> ClassificationResult:
        """Classify one item, returning the parsed (confidence-clamped) result."""
        content = self.transport.complete(
            CLASSIFICATION_PROMPT,
            build_user_prompt(request),
            self.sampling,
        )
        try:
            return parse_classification_response(content)
        except ResponseParseError as e:
            log.warning(
                "Classification response invalid",
                model=self.settings.AI_MODEL,
                error=str(e),
            )
            raise
