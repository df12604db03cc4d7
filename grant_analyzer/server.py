"""Grant Analyzer — HTTP Streaming Endpoint.

aiohttp application exposing the pipeline:
  POST /api/analyze-grants  {"url": ..., "requirements": ...}
      → chunked application/x-ndjson stream of enriched grants
  GET  /health              → {"status": "ok"}

Each request runs its own pipeline. The evaluation client is created
once per application and shared by all runs.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Callable
from urllib.parse import urlparse

from aiohttp import web

from grant_analyzer.analyzer.classifier import GrantClassifier
from grant_analyzer.analyzer.llm_client import EvaluationClient
from grant_analyzer.config import AppConfig
from grant_analyzer.errors import GrantAnalyzerError
from grant_analyzer.scraper.pipeline import GrantPipeline
from grant_analyzer.streaming import NDJSON_CONTENT_TYPE, StreamResponseSink
from grant_analyzer.utils.logger import get_logger

logger = get_logger(__name__)

PipelineFactory = Callable[[], GrantPipeline]
PIPELINE_FACTORY_KEY = web.AppKey("pipeline_factory", PipelineFactory)

_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",  # Disable proxy buffering
}


def _bad_request(message: str) -> web.HTTPBadRequest:
    return web.HTTPBadRequest(
        text=json.dumps({"error": message}),
        content_type="application/json",
    )


def _validate_body(body: Any) -> tuple[str, str]:
    """Check the request body and return (url, requirements).

    Raises:
        web.HTTPBadRequest: If the body is not an object, the URL is
            missing or not http(s), or requirements is not a string.
    """
    if not isinstance(body, dict):
        raise _bad_request("Body must be a JSON object")

    url = body.get("url")
    if not isinstance(url, str) or not url.strip():
        raise _bad_request("'url' is required")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise _bad_request("'url' must be an absolute http(s) URL")

    requirements = body.get("requirements", "")
    if requirements is None:
        requirements = ""
    if not isinstance(requirements, str):
        raise _bad_request("'requirements' must be a string")

    return url, requirements


async def analyze_grants(request: web.Request) -> web.StreamResponse:
    """Run the pipeline for one request and stream its records.

    Validation errors are answered with 400 before streaming starts.
    Once the stream is open, run failures only end it early; they are
    logged, not written into the stream.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise _bad_request("Body must be valid JSON")
    url, requirements = _validate_body(body)

    response = web.StreamResponse(status=200, headers=_STREAM_HEADERS)
    response.content_type = NDJSON_CONTENT_TYPE
    response.charset = "utf-8"
    response.enable_chunked_encoding()
    await response.prepare(request)

    pipeline = request.app[PIPELINE_FACTORY_KEY]()
    sink = StreamResponseSink(response)
    try:
        stats = await pipeline.run(url, requirements, sink)
        logger.info("Streamed %d grants for %s", stats["emitted"], url)
    except GrantAnalyzerError as e:
        logger.error(
            "Run for %s ended early after %d grants: %s: %s",
            url, sink.emitted, type(e).__name__, e,
        )

    return response


async def health(request: web.Request) -> web.Response:
    """Liveness probe."""
    return web.json_response({"status": "ok"})


def _evaluation_context(config: AppConfig) -> Callable[[web.Application], AsyncIterator[None]]:
    """Cleanup context that owns the shared EvaluationClient."""

    async def ctx(app: web.Application) -> AsyncIterator[None]:
        async with EvaluationClient(config.evaluator) as client:
            classifier = GrantClassifier(client, config.evaluator.context)
            app[PIPELINE_FACTORY_KEY] = lambda: GrantPipeline.from_config(config, classifier)
            logger.info("Evaluation client ready (model %s)", config.evaluator.model)
            yield
        logger.info("Evaluation client closed")

    return ctx


def create_app(
    config: AppConfig,
    pipeline_factory: PipelineFactory | None = None,
) -> web.Application:
    """Build the aiohttp application.

    Args:
        config: Full AppConfig instance.
        pipeline_factory: Optional factory returning a GrantPipeline per
            request. When omitted, the app opens an EvaluationClient on
            startup and builds browser-authenticated pipelines.

    Returns:
        The configured web.Application.
    """
    app = web.Application()
    app.router.add_post("/api/analyze-grants", analyze_grants)
    app.router.add_get("/health", health)

    if pipeline_factory is not None:
        app[PIPELINE_FACTORY_KEY] = pipeline_factory
    else:
        app.cleanup_ctx.append(_evaluation_context(config))

    return app
