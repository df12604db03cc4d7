"""Grant Analyzer — Listing Page Scraper.

Parses one catalog listing page into SummaryRecord cards plus the URL of
the next page, if any.

Card extraction is best-effort: every card element yields exactly one
record, with empty strings for anything that cannot be found.

Pagination is resolved by walking forward from the active page entry
rather than trusting the last link in the bar, whose "next/last" target
can point back at the current page.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urljoin, urldefrag

from selectolax.parser import HTMLParser, Node

from grant_analyzer.config import CatalogConfig
from grant_analyzer.errors import ListingParseError
from grant_analyzer.models import SummaryRecord
from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)

# ── Selectors ─────────────────────────────────────────────
CARD_SELECTOR = ".grnhomegbox"
TITLE_SELECTOR = "h4"
DEADLINE_SELECTOR = ".ddlinedtgwhm span em"
SUMMARY_SELECTOR = ".grnhomegboxtext p"
PAGINATION_SELECTOR = ".pagination"
ACTIVE_PAGE_SELECTOR = "li.active"

_ELLIPSIS_TEXTS = {"...", "…", "..", "⋯"}
_PLACEHOLDER_HREFS = {"", "#", "javascript:void(0)", "javascript:void(0);", "javascript:;"}
_PAGE_NUMBER = re.compile(r"^\d+$")


def _text(node: Optional[Node]) -> str:
    """Safely extract stripped text from a selectolax node.

    Args:
        node: A selectolax Node, or None.

    Returns:
        Stripped text content, or empty string if node is None.
    """
    if node is None:
        return ""
    return node.text(strip=True)


def _attr(node: Optional[Node], name: str) -> str:
    """Safely extract an attribute from a selectolax node.

    Args:
        node: A selectolax Node, or None.
        name: Attribute name to extract.

    Returns:
        Attribute value, or empty string if node/attr is None.
    """
    if node is None:
        return ""
    val = node.attributes.get(name)
    return val.strip() if val else ""


def _direct_child_link(card: Node) -> Optional[Node]:
    """Return the first <a> that is a direct child of the card."""
    for child in card.iter():
        if child.tag == "a":
            return child
    return None


def _is_ellipsis(item: Node) -> bool:
    """Whether a pagination entry only renders an ellipsis placeholder."""
    return _text(item) in _ELLIPSIS_TEXTS


def _is_placeholder_href(href: str) -> bool:
    """Whether an href is a no-op link rather than real navigation."""
    return href.lower() in _PLACEHOLDER_HREFS or href.lower().startswith("javascript:")


def _same_page(a: str, b: str) -> bool:
    """Compare two absolute URLs ignoring fragments and trailing slashes."""
    return urldefrag(a)[0].rstrip("/") == urldefrag(b)[0].rstrip("/")


class ListScraper:
    """Parses listing page markup into summary records and a next-page URL.

    Attributes:
        config: Catalog configuration; base_url resolves relative links.
    """

    def __init__(self, config: CatalogConfig) -> None:
        """Initialize the list scraper.

        Args:
            config: CatalogConfig from the app configuration.
        """
        self.config = config

    def resolve_url(self, href: str) -> str:
        """Resolve a site-relative href against the catalog origin.

        Args:
            href: Raw href attribute value.

        Returns:
            Absolute URL, or "" for an empty href.
        """
        if not href:
            return ""
        return urljoin(self.config.base_url + "/", href)

    def parse_listing_page(
        self, html: str, current_url: Optional[str] = None
    ) -> tuple[list[SummaryRecord], Optional[str]]:
        """Parse a listing page into records and the next page URL.

        Args:
            html: Raw listing page HTML.
            current_url: URL the page was fetched from. A next link that
                resolves back to it is refused.

        Returns:
            Tuple of (records in DOM order, next page URL or None).

        Raises:
            ListingParseError: If the markup is empty or cannot be parsed.
        """
        if not html or not html.strip():
            raise ListingParseError("Listing page is empty")

        try:
            tree = HTMLParser(html)
        except Exception as e:
            raise ListingParseError(f"Failed to parse listing HTML: {e}") from e

        records = [self._parse_card(card) for card in tree.css(CARD_SELECTOR)]
        next_url = self._resolve_next_page(tree, current_url)

        logger.info(
            "Parsed listing page: %d records, next page: %s",
            len(records), next_url or "none",
        )
        return records, next_url

    def _parse_card(self, card: Node) -> SummaryRecord:
        """Parse a single grant card into a SummaryRecord.

        Args:
            card: The card element.

        Returns:
            A SummaryRecord; missing parts become empty strings.
        """
        link = _direct_child_link(card)
        href = _attr(link, "href")
        detail_url = ""
        if not _is_placeholder_href(href):
            try:
                detail_url = self.resolve_url(href)
            except ValueError as e:
                logger.debug("Unresolvable card link %r: %s", href, e)

        record = SummaryRecord(
            title=_text(card.css_first(TITLE_SELECTOR)),
            detail_url=detail_url,
            summary_text=_text(card.css_first(SUMMARY_SELECTOR)),
            deadline_text=_text(card.css_first(DEADLINE_SELECTOR)),
        )
        if not record.detail_url:
            logger.debug("Card without detail link: %s", record.title[:60])
        return record

    def _resolve_next_page(
        self, tree: HTMLParser, current_url: Optional[str]
    ) -> Optional[str]:
        """Find the next listing page by walking from the active entry.

        Steps:
          1. Locate the active entry in the pagination bar.
          2. Step to its following siblings, skipping ellipsis entries.
          3. Accept the sibling only if it carries a real link and is not
             the trailing "jump to last" control.
          4. Refuse a target equal to the active page or current URL.

        Args:
            tree: Parsed listing page.
            current_url: URL the page was fetched from, if known.

        Returns:
            Absolute URL of the next page, or None to stop paginating.
        """
        pagination = tree.css_first(PAGINATION_SELECTOR)
        if pagination is None:
            return None

        items = pagination.css("li")
        active = pagination.css_first(ACTIVE_PAGE_SELECTOR)
        if active is None or not items:
            logger.debug("Pagination has no active entry")
            return None

        try:
            index = next(i for i, item in enumerate(items) if item.mem_id == active.mem_id)
        except StopIteration:
            return None

        candidate_index = index + 1
        while candidate_index < len(items) and _is_ellipsis(items[candidate_index]):
            candidate_index += 1
        if candidate_index >= len(items):
            return None

        candidate = items[candidate_index]
        is_last = candidate_index == len(items) - 1
        if is_last and not _PAGE_NUMBER.match(_text(candidate)):
            logger.debug("Next entry is the trailing jump control, stopping")
            return None

        if "disabled" in _attr(candidate, "class").split():
            return None

        href = _attr(candidate.css_first("a"), "href")
        if _is_placeholder_href(href):
            return None

        try:
            next_url = self.resolve_url(href)
            active_url = self.resolve_url(_attr(active.css_first("a"), "href"))
        except ValueError as e:
            logger.warning("Unresolvable pagination link %r: %s", href, e)
            return None
        if (active_url and _same_page(next_url, active_url)) or (
            current_url and _same_page(next_url, current_url)
        ):
            logger.warning("Next page link points back to the current page: %s", next_url)
            return None

        return next_url
