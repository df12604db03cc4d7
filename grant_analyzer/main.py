"""Grant Analyzer — Application Entry Point.

Loads the configuration and serves the streaming endpoint, or runs a
single pipeline pass that writes NDJSON to stdout.

Usage:
    python -m grant_analyzer.main
    grant-analyzer
    python scripts/run.py
    python scripts/analyze_once.py URL "requirements..."
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, TextIO

from aiohttp import web

from grant_analyzer.analyzer.classifier import GrantClassifier
from grant_analyzer.analyzer.llm_client import EvaluationClient
from grant_analyzer.config import AppConfig, load_config
from grant_analyzer.scraper.pipeline import GrantPipeline
from grant_analyzer.server import create_app
from grant_analyzer.streaming import FileSink
from grant_analyzer.utils.logger import get_logger, set_console_level

logger = get_logger(__name__)


async def run_once(
    config: AppConfig,
    listing_url: str,
    requirements: str,
    stream: TextIO = sys.stdout,
) -> dict[str, Any]:
    """Run one pipeline pass and write records to a text stream.

    Args:
        config: Full AppConfig instance.
        listing_url: First listing page URL.
        requirements: Caller's free-text requirements.
        stream: Destination for NDJSON messages.

    Returns:
        The pipeline's run statistics.
    """
    async with EvaluationClient(config.evaluator) as client:
        classifier = GrantClassifier(client, config.evaluator.context)
        pipeline = GrantPipeline.from_config(config, classifier)
        return await pipeline.run(listing_url, requirements, FileSink(stream))


def main(settings_path: Path | None = None) -> None:
    """Load config and serve the HTTP endpoint until interrupted."""
    config = load_config(settings_path=settings_path)
    set_console_level(config.log_level)

    logger.info(
        "═══ Grant Analyzer listening on http://%s:%d ═══",
        config.server.host, config.server.port,
    )
    web.run_app(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        print=None,
    )


if __name__ == "__main__":
    main()
