"""Grant Analyzer — Evaluation Prompts.

Builds the system and user messages sent to the evaluation service for
one grant. The system message carries the fixed criteria and evaluation
context; the user message carries the grant's fields, its detail
attributes and the caller's requirements verbatim.
"""

from __future__ import annotations

from grant_analyzer.models import DetailAttributes, SummaryRecord

# Detail values can be long free text; cap each one to save tokens
_MAX_ATTRIBUTE_CHARS = 800


def build_system_prompt(context: str) -> str:
    """Build the system message with criteria and output contract.

    Args:
        context: Description of who the evaluation is performed for.

    Returns:
        Complete system prompt.
    """
    return f"""You are a grant evaluation assistant. Analyze the grant opportunity and give a clear YES/NO recommendation based on these criteria:

1. Relevance: the grant must fit the applicant's focus and the additional requirements provided by the user (technology or software development work counts as relevant).
2. Funding adequacy: the grant amount must be sufficient for meaningful work.
3. Feasibility: the eligibility rules and application process must be reasonable and achievable for the applicant.
4. Timeline: the deadline and grant schedule must allow a proper application and implementation.

=== EVALUATION CONTEXT ===
{context}

=== OUTPUT FORMAT ===
Return ONLY a single JSON object with exactly these keys:
- "recommendation": "YES" or "NO"
- "reason": a brief 1-2 sentence explanation
- "confidence": an integer from 1 (guess) to 10 (certain)
No markdown, no explanation outside the JSON object."""


def format_detail_attributes(details: DetailAttributes) -> str:
    """Render detail attributes as "Label: value" lines.

    Args:
        details: Attribute mapping from the detail page.

    Returns:
        One line per attribute, or "Not available" when empty.
    """
    if not details:
        return "Not available"

    lines = []
    for label, value in details.items():
        if len(value) > _MAX_ATTRIBUTE_CHARS:
            value = value[:_MAX_ATTRIBUTE_CHARS] + "..."
        lines.append(f"{label}: {value}")
    return "\n".join(lines)


def build_user_prompt(
    record: SummaryRecord,
    details: DetailAttributes,
    requirements: str,
) -> str:
    """Build the user message for one grant.

    Args:
        record: Summary record from the listing page.
        details: Attributes from the detail page (may be empty).
        requirements: Caller's free-text requirements, forwarded as-is.

    Returns:
        Complete user prompt.
    """
    return f"""Please analyze this grant opportunity:

=== GRANT ===
Title: {record.title or "N/A"}
Summary: {record.summary_text or "N/A"}
Deadline: {record.deadline_text or "N/A"}

=== GRANT DETAILS ===
{format_detail_attributes(details)}

=== ADDITIONAL REQUIREMENTS ===
{requirements}"""
