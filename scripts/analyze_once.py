#!/usr/bin/env python3
"""Grant Analyzer — One-off Run.

Runs the pipeline once against a live catalog URL and prints one JSON
line per grant to stdout. Logs go to logs/ only, the summary to stderr.

Run: python scripts/analyze_once.py "https://www.grantwatch.com/cat/..." "software, civic tech"
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from grant_analyzer.config import load_config
from grant_analyzer.errors import GrantAnalyzerError
from grant_analyzer.main import run_once
from grant_analyzer.utils.logger import get_logger, set_console_level

logger = get_logger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Analyze one grant listing chain")
    parser.add_argument("url", help="first listing page URL")
    parser.add_argument("requirements", nargs="?", default="", help="free-text requirements")
    parser.add_argument("--max-pages", type=int, default=None, help="override catalog.max_pages")
    args = parser.parse_args()

    set_console_level("CRITICAL")
    config = load_config()
    if args.max_pages is not None:
        config = replace(config, catalog=replace(config.catalog, max_pages=args.max_pages))

    try:
        stats = asyncio.run(run_once(config, args.url, args.requirements))
    except GrantAnalyzerError as e:
        logger.error("Run failed: %s: %s", type(e).__name__, e)
        print(f"Run failed: {type(e).__name__}: {e}", file=sys.stderr)
        return 1

    print(
        f"Done: {stats['emitted']} grants emitted over {stats['pages']} pages",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
