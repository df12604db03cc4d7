"""Grant Analyzer — Detail Page Scraper.

Fetches a grant's detail page and extracts its label → text attribute
pairs. Detail data only enriches the classifier prompt, so every failure
here is logged and turned into an empty mapping.
"""

from __future__ import annotations

from typing import Optional

from selectolax.parser import HTMLParser, Node

from grant_analyzer.errors import DetailFetchError
from grant_analyzer.models import Credential, DetailAttributes
from grant_analyzer.scraper.client import CatalogClient
from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)

# ── Selectors (first match wins) ──────────────────────────
CONTAINER_SELECTORS = ("#grant-details", ".grant-details", ".grntdetails")
SECTION_SELECTOR = ".row"
LABEL_SELECTORS = (".gdlabel", ".col-md-3", ".col-sm-3")
CONTENT_SELECTORS = (".gdcontent", ".col-md-9", ".col-sm-9")
HIGHLIGHT_SELECTOR = ".highlight, strong"


def _text(node: Optional[Node]) -> str:
    """Text of a node with whitespace runs collapsed, or ""."""
    if node is None:
        return ""
    return " ".join(node.text(separator=" ").split())


def _first(node: Node, selectors: tuple[str, ...]) -> Optional[Node]:
    """Return the first element matching any selector, in selector order."""
    for selector in selectors:
        found = node.css_first(selector)
        if found is not None:
            return found
    return None


class DetailScraper:
    """Extracts attribute pairs from grant detail pages."""

    def parse_detail_page(self, html: str) -> DetailAttributes:
        """Parse detail page HTML into a label → text mapping.

        Each section inside the details container pairs a label cell
        with a content cell. The content cell's highlighted sub-element
        is preferred when present. Pairs with an empty side are skipped.

        Args:
            html: Raw detail page HTML.

        Returns:
            Attribute mapping; empty when the container is missing.
        """
        tree = HTMLParser(html)
        container = None
        for selector in CONTAINER_SELECTORS:
            container = tree.css_first(selector)
            if container is not None:
                break
        if container is None:
            logger.debug("No details container found")
            return {}

        attributes: DetailAttributes = {}
        for section in container.css(SECTION_SELECTOR):
            label = _text(_first(section, LABEL_SELECTORS)).rstrip(":").strip()
            content_cell = _first(section, CONTENT_SELECTORS)
            if content_cell is None:
                continue

            highlighted = content_cell.css_first(HIGHLIGHT_SELECTOR)
            content = _text(highlighted) or _text(content_cell)

            if label and content:
                attributes[label] = content

        return attributes

    async def fetch_details(
        self,
        client: CatalogClient,
        url: str,
        credential: Credential,
    ) -> DetailAttributes:
        """Fetch and parse a grant's detail page.

        Never raises: fetch errors and unparseable markup both yield {}.

        Args:
            client: Active CatalogClient.
            url: Absolute detail page URL ("" skips the fetch).
            credential: Session cookies from login.

        Returns:
            The detail attribute mapping, possibly empty.
        """
        if not url:
            return {}

        try:
            html = await client.get_detail_page(url, credential)
        except DetailFetchError as e:
            logger.warning("Failed to fetch detail page %s: %s", url, e)
            return {}
        except Exception as e:
            logger.error("Unexpected error fetching detail page %r: %s", url, e)
            return {}

        try:
            attributes = self.parse_detail_page(html)
        except Exception as e:
            logger.warning("Failed to parse detail page %s: %s", url, e)
            return {}

        logger.debug("Parsed %d detail attributes from %s", len(attributes), url)
        return attributes
