"""Grant Analyzer — Async Catalog HTTP Client.

Rate-limited, retrying async HTTP client for the grant catalog. Built on
httpx.AsyncClient with:
  - User-agent rotation from config
  - Retry with backoff on 429, 5xx, timeouts and connection errors
  - Rate limiting via AsyncRateLimiter
  - The session Credential attached as a Cookie header on every request
  - Request counting for run telemetry
"""

from __future__ import annotations

import asyncio
import random
from typing import Optional

import httpx

from grant_analyzer.config import CatalogConfig
from grant_analyzer.errors import DetailFetchError, ListingFetchError, NetworkError
from grant_analyzer.models import Credential
from grant_analyzer.utils.logger import get_logger
from grant_analyzer.utils.rate_limiter import AsyncRateLimiter

logger = get_logger(__name__)

# ── Browser-like headers common to all requests ──────────
_COMMON_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "same-origin",
}


class CatalogClient:
    """Async HTTP client for the catalog's listing and detail pages.

    Attributes:
        config: Catalog configuration.
        total_requests: Running count of successful requests this run.
    """

    def __init__(
        self,
        config: CatalogConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the client from a CatalogConfig.

        Args:
            config: CatalogConfig loaded from settings.yaml.
            transport: Optional httpx transport (used to inject a mock).
        """
        self.config = config
        self.total_requests: int = 0
        self._transport = transport
        self._rate_limiter = AsyncRateLimiter(
            max_calls=1,
            period_seconds=float(config.request_delay_seconds),
        )
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily create the httpx.AsyncClient."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    **_COMMON_HEADERS,
                    "User-Agent": random.choice(self.config.user_agents),
                },
                follow_redirects=True,
                timeout=httpx.Timeout(self.config.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    def _rotate_ua(self) -> None:
        """Rotate the User-Agent header to a random one from config."""
        if self._client is not None:
            self._client.headers["User-Agent"] = random.choice(self.config.user_agents)

    async def get_listing_page(self, url: str, credential: Credential) -> str:
        """Fetch one listing page and return its raw HTML.

        Args:
            url: Absolute listing page URL.
            credential: Session cookies from login.

        Returns:
            The response body as text.

        Raises:
            ListingFetchError: On transport failure or non-2xx status.
        """
        logger.info("Fetching listing page: %s", url)
        try:
            response = await self._request(url, credential)
        except NetworkError as e:
            raise ListingFetchError(str(e), url, e.status_code) from e
        return response.text

    async def get_detail_page(self, url: str, credential: Credential) -> str:
        """Fetch a grant detail page and return its raw HTML.

        Args:
            url: Absolute detail page URL.
            credential: Session cookies from login.

        Returns:
            The response body as text.

        Raises:
            DetailFetchError: On transport failure or non-2xx status.
        """
        logger.debug("Fetching detail: %s", url)
        try:
            response = await self._request(url, credential)
        except NetworkError as e:
            raise DetailFetchError(str(e), url, e.status_code) from e
        return response.text

    async def _request(self, url: str, credential: Credential) -> httpx.Response:
        """Execute a GET with rate limiting and retry logic.

        Retry strategy:
          - 429 Too Many Requests: wait Retry-After (default 30s) then retry
          - 5xx Server Error: wait 5s × attempt then retry
          - Timeout: wait 3s × attempt then retry
          - Connection Error: wait 10s then retry
        Any other non-2xx status, or a URL httpx rejects, fails immediately.

        Args:
            url: Request URL.
            credential: Session cookies attached as the Cookie header.

        Returns:
            The successful httpx Response.

        Raises:
            NetworkError: If the request fails or all retries are exhausted.
        """
        client = self._get_client()
        headers = {"Cookie": credential.cookie_header()} if len(credential) else {}
        max_retries = max(1, self.config.max_retries)
        last_status: Optional[int] = None
        last_error = "no attempt made"

        for attempt in range(1, max_retries + 1):
            await self._rate_limiter.acquire()
            self._rotate_ua()

            try:
                resp = await client.get(url, headers=headers)
            except httpx.InvalidURL as e:
                logger.error("Invalid URL %r: %s", url, e)
                raise NetworkError(f"Invalid URL {url!r}: {e}", url) from e
            except httpx.TimeoutException:
                last_error = "timeout"
                wait = 3 * attempt
                logger.warning(
                    "Timeout on attempt %d/%d for %s", attempt, max_retries, url,
                )
            except httpx.ConnectError as e:
                last_error = f"connection error: {e}"
                wait = 10
                logger.warning(
                    "Connection error on attempt %d/%d for %s: %s",
                    attempt, max_retries, url, e,
                )
            except httpx.HTTPError as e:
                last_error = f"transport error: {e}"
                wait = 3 * attempt
                logger.warning(
                    "HTTP error on attempt %d/%d for %s: %s",
                    attempt, max_retries, url, e,
                )
            else:
                last_status = resp.status_code

                if resp.status_code == 429:
                    last_error = "rate limited (429)"
                    wait = _retry_after(resp, default=30)
                    logger.warning(
                        "Rate limited (429) on attempt %d/%d. Waiting %ds...",
                        attempt, max_retries, wait,
                    )
                elif resp.status_code >= 500:
                    last_error = f"server error {resp.status_code}"
                    wait = 5 * attempt
                    logger.warning(
                        "Server error %d on attempt %d/%d for %s",
                        resp.status_code, attempt, max_retries, url,
                    )
                elif not resp.is_success:
                    logger.error("HTTP error %d for %s", resp.status_code, url)
                    raise NetworkError(
                        f"HTTP {resp.status_code} for {url}", url, resp.status_code,
                    )
                else:
                    self.total_requests += 1
                    return resp

            if attempt < max_retries:
                await asyncio.sleep(wait)

        logger.error("All %d attempts failed for %s (%s)", max_retries, url, last_error)
        raise NetworkError(
            f"All {max_retries} attempts failed for {url}: {last_error}",
            url, last_status,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("HTTP client closed (total requests: %d)", self.total_requests)

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


def _retry_after(resp: httpx.Response, default: int) -> int:
    """Read a Retry-After header in seconds, falling back to default."""
    try:
        return int(resp.headers.get("Retry-After", default))
    except ValueError:
        return default
