"""Grant Analyzer — Grant Classifier.

Ties together the prompt builders, the evaluation client and the verdict
parser. classify() always returns a Verdict: a failed request or an
undecodable reply becomes an UNKNOWN verdict so one bad record never
stops the run.
"""

from __future__ import annotations

from typing import Optional, Protocol

from grant_analyzer.analyzer.prompts import build_system_prompt, build_user_prompt
from grant_analyzer.analyzer.response_parser import ResponseParser
from grant_analyzer.errors import ClassificationParseError
from grant_analyzer.models import DetailAttributes, SummaryRecord, Verdict
from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)

PARSE_FAILURE_REASON = "Failed to parse analysis result"
REQUEST_FAILURE_REASON = "Analysis request failed"


class CompletionClient(Protocol):
    """What the classifier needs from an evaluation service client."""

    async def complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        ...


class GrantClassifier:
    """Scores grants against caller requirements.

    Attributes:
        context: Evaluation-context text placed in every system prompt.
    """

    def __init__(self, client: CompletionClient, context: str) -> None:
        """Initialize the classifier.

        Args:
            client: An open evaluation client (e.g. EvaluationClient).
            context: Evaluation-context description from the config.
        """
        self.context = context
        self._client = client
        self._system_prompt = build_system_prompt(context)
        self._parser = ResponseParser()

    async def classify(
        self,
        record: SummaryRecord,
        details: DetailAttributes,
        requirements: str,
    ) -> Verdict:
        """Evaluate one grant.

        Pipeline: build prompt → send to the service → parse the reply.

        Args:
            record: Summary record from the listing page.
            details: Detail attributes (may be empty).
            requirements: Caller's free-text requirements.

        Returns:
            The parsed Verdict, or an UNKNOWN fallback.
        """
        title = record.title[:50] or "?"
        user_prompt = build_user_prompt(record, details, requirements)

        try:
            raw = await self._client.complete(self._system_prompt, user_prompt)
        except Exception as e:
            logger.error("Evaluation call raised for '%s': %s", title, e)
            raw = None

        if raw is None:
            logger.warning("No evaluation reply for '%s'", title)
            return Verdict.unknown(REQUEST_FAILURE_REASON)

        try:
            verdict = self._parser.parse_verdict(raw)
        except ClassificationParseError as e:
            logger.warning(
                "Unparseable evaluation for '%s': %s. Raw (first 300): %s",
                title, e, raw[:300],
            )
            return Verdict.unknown(PARSE_FAILURE_REASON)

        logger.info(
            "Classified '%s': %s (confidence %s)",
            title, verdict.recommendation,
            verdict.confidence if verdict.confidence is not None else "n/a",
        )
        return verdict
