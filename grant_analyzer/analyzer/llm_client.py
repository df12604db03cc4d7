"""Grant Analyzer — Evaluation Service Client.

Async client for an OpenAI-compatible chat completions endpoint. Sends
one system + user message pair per grant and returns the model's raw
text reply; decoding the verdict is left to the ResponseParser.

Uses aiohttp for HTTP calls and AsyncRateLimiter for RPM throttling.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import aiohttp

from grant_analyzer.config import EvaluatorConfig
from grant_analyzer.utils.logger import get_logger
from grant_analyzer.utils.rate_limiter import AsyncRateLimiter
from grant_analyzer.utils.resilience import retry_async

logger = get_logger(__name__)


class _TransientServiceError(Exception):
    """A 429/5xx reply worth retrying."""


class EvaluationClient:
    """Async client for the evaluation service.

    Create it once at startup and share it across runs; the aiohttp
    session lives between __aenter__ and __aexit__.

    Attributes:
        config: EvaluatorConfig with endpoint, key, model and sampling.
        total_tokens: Tokens reported by the service since startup.
    """

    def __init__(self, config: EvaluatorConfig) -> None:
        """Initialize the client.

        Args:
            config: EvaluatorConfig from the app configuration.
        """
        self.config = config
        self.total_tokens: int = 0
        self._rate_limiter = AsyncRateLimiter(
            max_calls=config.rpm_limit,
            period_seconds=60.0,
        )
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def endpoint(self) -> str:
        """Chat completions URL derived from the configured base URL."""
        return f"{self.config.base_url}/chat/completions"

    async def __aenter__(self) -> "EvaluationClient":
        """Create the aiohttp session with auth headers."""
        self._session = aiohttp.ClientSession(
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout_seconds),
        )
        logger.debug("Evaluation client session created (%s)", self.config.model)
        return self

    async def __aexit__(self, *args: object) -> None:
        """Close the aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.debug("Evaluation client session closed")

    async def complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        """Send one evaluation request and return the reply text.

        Failures are logged and reported as None so the caller can fall
        back to an UNKNOWN verdict.

        Args:
            system_prompt: Criteria and evaluation context.
            user_prompt: Record fields and caller requirements.

        Returns:
            The assistant message content, or None if the request failed.
        """
        if self._session is None:
            logger.error("Evaluation session not created, use async with")
            return None

        body = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "response_format": {"type": "json_object"},
        }

        try:
            data = await self._post(body)
        except (aiohttp.ClientError, asyncio.TimeoutError, _TransientServiceError) as e:
            logger.error("Evaluation request failed: %s", e)
            return None
        except ValueError as e:
            logger.error("Evaluation response is not JSON: %s", e)
            return None

        if data is None:
            return None

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("Evaluation response structure error: %s", e)
            logger.debug(
                "Evaluation raw response: %s",
                json.dumps(data, ensure_ascii=False)[:500],
            )
            return None

        tokens = (data.get("usage") or {}).get("total_tokens", 0)
        if isinstance(tokens, int):
            self.total_tokens += tokens
        logger.debug("Evaluation response OK: %s tokens used", tokens)

        return content if isinstance(content, str) else None

    @retry_async(
        max_attempts=3,
        base_delay=2.0,
        exceptions=(aiohttp.ClientConnectionError, asyncio.TimeoutError, _TransientServiceError),
    )
    async def _post(self, body: dict[str, Any]) -> Optional[dict[str, Any]]:
        """POST the request body, retrying transient failures.

        Returns:
            Decoded JSON body for a 200 reply, None for a non-retryable
            error status.

        Raises:
            _TransientServiceError: On 429 or 5xx (retried).
        """
        await self._rate_limiter.acquire()

        session = self._session
        if session is None:
            return None
        async with session.post(self.endpoint, json=body) as resp:
            if resp.status == 429 or resp.status >= 500:
                error_body = await resp.text()
                logger.warning("Evaluation service %d: %s", resp.status, error_body[:300])
                raise _TransientServiceError(f"HTTP {resp.status}")

            if resp.status != 200:
                error_body = await resp.text()
                logger.error("Evaluation service %d: %s", resp.status, error_body[:500])
                return None

            return await resp.json(content_type=None)
