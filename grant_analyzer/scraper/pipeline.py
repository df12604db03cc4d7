"""Grant Analyzer — Grant Pipeline.

Orchestrates one run: authenticate once, then walk the listing chain
page by page; for every card fetch its details, classify it and emit
the enriched record before touching the next card.

States:
  AUTHENTICATING → PAGING → ENRICHING → EMITTING → PAGING ... → DONE
Authentication and listing failures end the run (FAILED) after the
sink is closed; detail and classification failures degrade per record.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

from grant_analyzer.analyzer.classifier import GrantClassifier
from grant_analyzer.config import AppConfig
from grant_analyzer.models import Credential, EnrichedGrant, SummaryRecord
from grant_analyzer.scraper.auth import Authenticator, BrowserAuthenticator
from grant_analyzer.scraper.client import CatalogClient
from grant_analyzer.scraper.detail_scraper import DetailScraper
from grant_analyzer.scraper.list_scraper import ListScraper
from grant_analyzer.streaming import GrantSink
from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)


class GrantPipeline:
    """Scrape → enrich → classify → stream pipeline for one catalog chain.

    A pipeline instance can be reused; every run() builds its own HTTP
    client and credential.

    Attributes:
        state: Current state name (see the module docstring).
    """

    IDLE = "IDLE"
    AUTHENTICATING = "AUTHENTICATING"
    PAGING = "PAGING"
    ENRICHING = "ENRICHING"
    EMITTING = "EMITTING"
    DONE = "DONE"
    FAILED = "FAILED"

    def __init__(
        self,
        config: AppConfig,
        authenticator: Authenticator,
        classifier: GrantClassifier,
        client_factory: Optional[Callable[[], CatalogClient]] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Full AppConfig instance.
            authenticator: Produces the run's Credential.
            classifier: Classifier backed by an open evaluation client.
            client_factory: Callable returning a CatalogClient; defaults
                to CatalogClient(config.catalog).
        """
        self.config = config
        self.state = self.IDLE
        self._authenticator = authenticator
        self._classifier = classifier
        self._client_factory = client_factory or (lambda: CatalogClient(config.catalog))
        self._list_scraper = ListScraper(config.catalog)
        self._detail_scraper = DetailScraper()

    @classmethod
    def from_config(cls, config: AppConfig, classifier: GrantClassifier) -> "GrantPipeline":
        """Build a pipeline that logs in with a headless browser.

        Args:
            config: Full AppConfig instance.
            classifier: Classifier backed by an open evaluation client.

        Returns:
            A ready GrantPipeline.
        """
        return cls(config, BrowserAuthenticator(config.auth), classifier)

    def _transition(self, state: str, detail: str = "") -> None:
        logger.debug("Pipeline %s → %s %s", self.state, state, detail)
        self.state = state

    async def run(
        self,
        listing_url: str,
        requirements: str,
        sink: GrantSink,
    ) -> dict[str, Any]:
        """Run the pipeline and stream every enriched record to the sink.

        The sink is closed exactly once on every exit path. Fatal errors
        are re-raised after closing; records already emitted stand.

        Args:
            listing_url: First listing page URL.
            requirements: Caller's free-text requirements.
            sink: Output channel for EnrichedGrant records.

        Returns:
            Dict with run statistics: pages, records, emitted,
            detail_failures (linked detail pages that yielded no
            attributes), unknown_verdicts, duration_seconds.

        Raises:
            AuthenticationError: If login fails (nothing is emitted).
            ListingFetchError: If a listing page cannot be fetched.
            ListingParseError: If a listing page cannot be parsed.
            SinkClosedError: If the consumer disconnected.
        """
        start_time = time.monotonic()
        stats: dict[str, Any] = {
            "pages": 0,
            "records": 0,
            "emitted": 0,
            "detail_failures": 0,
            "unknown_verdicts": 0,
            "duration_seconds": 0.0,
        }

        logger.info("═══ Grant Run Starting: %s ═══", listing_url)

        try:
            self._transition(self.AUTHENTICATING)
            credential = await self._authenticator.authenticate()

            async with self._client_factory() as client:
                await self._walk(client, credential, listing_url, requirements, sink, stats)

            self._transition(self.DONE)

        except BaseException as e:
            self._transition(self.FAILED, type(e).__name__)
            logger.error("Grant run aborted: %s: %s", type(e).__name__, e)
            raise

        finally:
            await sink.close()
            elapsed = time.monotonic() - start_time
            stats["duration_seconds"] = round(elapsed, 1)
            stats["emitted"] = sink.emitted
            outcome = "Complete" if self.state == self.DONE else "Aborted"
            logger.info("═══ Grant Run %s ═══", outcome)
            logger.info(
                "  Pages: %d | Records: %d | Emitted: %d | Detail failures: %d | "
                "Unknown verdicts: %d | Time: %.1fs",
                stats["pages"], stats["records"], stats["emitted"],
                stats["detail_failures"], stats["unknown_verdicts"], elapsed,
            )

        return stats

    async def _walk(
        self,
        client: CatalogClient,
        credential: Credential,
        listing_url: str,
        requirements: str,
        sink: GrantSink,
        stats: dict[str, Any],
    ) -> None:
        """Follow the pagination chain until it ends."""
        max_pages = self.config.catalog.max_pages
        visited: set[str] = set()
        current_url: Optional[str] = listing_url

        while current_url:
            self._transition(self.PAGING, current_url)
            visited.add(current_url)

            html = await client.get_listing_page(current_url, credential)
            records, next_url = self._list_scraper.parse_listing_page(html, current_url)
            stats["pages"] += 1

            for index, record in enumerate(records, 1):
                logger.info(
                    "  [p%d %d/%d] %s",
                    stats["pages"], index, len(records), record.title[:60],
                )
                await self._process_record(
                    client, credential, record, requirements, sink, stats,
                )

            if next_url and next_url in visited:
                logger.warning("Pagination loops back to %s, stopping", next_url)
                next_url = None
            if next_url and max_pages and stats["pages"] >= max_pages:
                logger.info("Reached max_pages=%d, stopping", max_pages)
                next_url = None

            current_url = next_url

    async def _process_record(
        self,
        client: CatalogClient,
        credential: Credential,
        record: SummaryRecord,
        requirements: str,
        sink: GrantSink,
        stats: dict[str, Any],
    ) -> None:
        """Enrich, classify and emit a single record."""
        stats["records"] += 1

        self._transition(self.ENRICHING, record.detail_url)
        details = await self._detail_scraper.fetch_details(
            client, record.detail_url, credential,
        )
        if record.detail_url and not details:
            stats["detail_failures"] += 1

        verdict = await self._classifier.classify(record, details, requirements)
        if verdict.is_unknown:
            stats["unknown_verdicts"] += 1

        self._transition(self.EMITTING)
        await sink.emit(EnrichedGrant(record=record, verdict=verdict))
