"""Grant Analyzer — Data Models.

Dataclasses for everything that flows through one pipeline run: the
session credential, listing summary records, evaluator verdicts and the
enriched records delivered to the consumer.

All records are frozen. A record is created, enriched and emitted within
one iteration of the pipeline and is not retained afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

# Label → text pairs scraped from a detail page.
DetailAttributes = dict[str, str]


class Recommendation:
    """Allowed verdict recommendations."""

    YES = "YES"
    NO = "NO"
    UNKNOWN = "UNKNOWN"

    #: Values the evaluator itself may return.
    DECISIVE = (YES, NO)


# ═══════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Credential:
    """Session cookies captured after login.

    Attributes:
        cookies: Ordered (name, value) pairs from the browser cookie jar.
    """

    cookies: tuple[tuple[str, str], ...]

    @classmethod
    def from_cookie_jar(cls, cookies: list[dict[str, Any]]) -> "Credential":
        """Build a Credential from browser cookie dicts.

        Args:
            cookies: Cookie dicts with at least 'name' and 'value' keys,
                as returned by a browser context.

        Returns:
            A Credential with one pair per named cookie.
        """
        return cls(cookies=tuple(
            (str(c["name"]), str(c.get("value", "")))
            for c in cookies
            if c.get("name")
        ))

    def cookie_header(self) -> str:
        """Render the Cookie request header value.

        Returns:
            "name=value" pairs joined with "; ".
        """
        return "; ".join(f"{name}={value}" for name, value in self.cookies)

    @property
    def names(self) -> list[str]:
        """Cookie names only, safe for logging."""
        return [name for name, _ in self.cookies]

    def __len__(self) -> int:
        return len(self.cookies)

    def __repr__(self) -> str:
        # Cookie values are session secrets
        return f"Credential(names={self.names!r})"


# ═══════════════════════════════════════════════════════════
# Scraper Models
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SummaryRecord:
    """One grant card as seen on a listing page.

    Attributes:
        title: Grant title.
        detail_url: Absolute URL of the detail page, or "" if the card
            had no resolvable link.
        summary_text: Short description shown on the card.
        deadline_text: Deadline as displayed (free text).
    """

    title: str
    detail_url: str = ""
    summary_text: str = ""
    deadline_text: str = ""


# ═══════════════════════════════════════════════════════════
# Analyzer Models
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Verdict:
    """Structured recommendation produced for one record.

    Attributes:
        recommendation: "YES", "NO" or "UNKNOWN".
        reason: Short explanation.
        confidence: 1-10, or None when the evaluator gave none.
    """

    recommendation: str
    reason: str
    confidence: Optional[int] = None

    @classmethod
    def unknown(cls, reason: str) -> "Verdict":
        """Build the fallback verdict used when no real verdict exists.

        Args:
            reason: Why the verdict could not be produced.

        Returns:
            An UNKNOWN verdict without confidence.
        """
        return cls(recommendation=Recommendation.UNKNOWN, reason=reason)

    @property
    def is_unknown(self) -> bool:
        return self.recommendation == Recommendation.UNKNOWN


@dataclass(frozen=True)
class EnrichedGrant:
    """A summary record combined with its verdict; the unit of output."""

    record: SummaryRecord
    verdict: Verdict

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape delivered to consumers.

        Returns:
            Dict with title, url, summary, deadline, recommendation,
            reason and, when present, confidence.
        """
        data: dict[str, Any] = {
            "title": self.record.title,
            "url": self.record.detail_url,
            "summary": self.record.summary_text,
            "deadline": self.record.deadline_text,
            "recommendation": self.verdict.recommendation,
            "reason": self.verdict.reason,
        }
        if self.verdict.confidence is not None:
            data["confidence"] = self.verdict.confidence
        return data
