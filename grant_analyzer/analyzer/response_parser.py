"""Grant Analyzer — Verdict Parser.

Decodes the evaluation service's text reply into a Verdict. The reply
must be a JSON object with a YES/NO "recommendation" and a non-empty
"reason"; "confidence" is coerced to an int and clamped to 1-10, and
dropped when it is not numeric.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from grant_analyzer.errors import ClassificationParseError
from grant_analyzer.models import Recommendation, Verdict
from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)

_FENCE_START = re.compile(r"^```(?:json)?\s*\n?")
_FENCE_END = re.compile(r"\n?```\s*$")


def _clean_json_text(text: str) -> str:
    """Strip markdown fences and surrounding prose from a reply.

    Models occasionally wrap the object in ```json fences or add a
    sentence before it. This returns the first brace-balanced object
    when the text does not already start with one.

    Args:
        text: Raw reply text.

    Returns:
        Text ready for json.loads.
    """
    text = _FENCE_END.sub("", _FENCE_START.sub("", text.strip())).strip()
    if text.startswith("{"):
        return text

    start = text.find("{")
    if start == -1:
        return text

    depth = 0
    for i in range(start, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return text[start:]


def _to_confidence(value: Any) -> Optional[int]:
    """Coerce a confidence value to an int in 1-10, or None.

    Handles: int, float, numeric str ("7", "7.5"). Booleans and anything
    else give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = int(float(value))
    except (ValueError, OverflowError):
        return None
    return max(1, min(10, number))


class ResponseParser:
    """Validates evaluator replies and converts them to Verdicts."""

    @staticmethod
    def parse_verdict(raw_text: Optional[str]) -> Verdict:
        """Decode a reply into a Verdict.

        Args:
            raw_text: The service's text output.

        Returns:
            A YES or NO Verdict.

        Raises:
            ClassificationParseError: If the text is not a JSON object or
                the recommendation/reason fields are missing or invalid.
        """
        if not raw_text or not raw_text.strip():
            raise ClassificationParseError("Empty evaluator reply")

        try:
            data = json.loads(_clean_json_text(raw_text))
        except json.JSONDecodeError as e:
            raise ClassificationParseError(f"Reply is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ClassificationParseError(
                f"Reply is a {type(data).__name__}, expected an object"
            )

        recommendation = data.get("recommendation")
        if not isinstance(recommendation, str):
            raise ClassificationParseError("Missing 'recommendation'")
        recommendation = recommendation.strip().upper()
        if recommendation not in Recommendation.DECISIVE:
            raise ClassificationParseError(f"Invalid recommendation {recommendation!r}")

        reason = data.get("reason")
        if not isinstance(reason, str) or not reason.strip():
            raise ClassificationParseError("Missing 'reason'")

        confidence = _to_confidence(data.get("confidence"))
        if confidence is None and "confidence" in data:
            logger.debug("Dropping non-numeric confidence: %r", data["confidence"])

        return Verdict(
            recommendation=recommendation,
            reason=reason.strip(),
            confidence=confidence,
        )
