"""Grant Analyzer — Scraper Package.

Session acquisition, catalog fetching and parsing, and the pipeline
that drives them. Components:
  - BrowserAuthenticator: Playwright two-step login → Credential
  - CatalogClient: Async HTTP client with retry and rate limiting
  - ListScraper: Listing page parser with pagination resolution
  - DetailScraper: Detail page attribute extraction
  - GrantPipeline: Scrape → enrich → classify → stream orchestrator
"""

from grant_analyzer.scraper.auth import Authenticator, BrowserAuthenticator
from grant_analyzer.scraper.client import CatalogClient
from grant_analyzer.scraper.list_scraper import ListScraper
from grant_analyzer.scraper.detail_scraper import DetailScraper
from grant_analyzer.scraper.pipeline import GrantPipeline

__all__ = [
    "Authenticator",
    "BrowserAuthenticator",
    "CatalogClient",
    "ListScraper",
    "DetailScraper",
    "GrantPipeline",
]
