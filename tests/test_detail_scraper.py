from __future__ import annotations

import pytest

from grant_analyzer.models import Credential
from grant_analyzer.scraper.client import CatalogClient
from grant_analyzer.scraper.detail_scraper import DetailScraper
from tests.conftest import BASE_URL, detail_html, mock_transport

CREDENTIAL = Credential(cookies=(("PHPSESSID", "abc123"),))
DETAIL_URL = f"{BASE_URL}/grant/1001/community-tech-fund.html"


def test_parse_extracts_label_content_pairs() -> None:
    html = detail_html([
        ("Funding Amount", "$5,000 - $50,000"),
        ("Eligibility", "Nonprofits  in\n  Texas"),
    ])

    attributes = DetailScraper().parse_detail_page(html)

    assert attributes == {
        "Funding Amount": "$5,000 - $50,000",
        "Eligibility": "Nonprofits in Texas",
    }


def test_highlighted_content_is_preferred() -> None:
    html = detail_html(
        [("Deadline", "Rolling, see notes")],
        highlight={"Deadline": "03/15/2027"},
    )

    attributes = DetailScraper().parse_detail_page(html)

    assert attributes == {"Deadline": "03/15/2027"}


def test_pairs_with_an_empty_side_are_skipped() -> None:
    html = detail_html([("Funding Amount", ""), ("", "Orphan content"), ("Region", "USA")])

    attributes = DetailScraper().parse_detail_page(html)

    assert attributes == {"Region": "USA"}


def test_missing_container_yields_empty_mapping() -> None:
    html = "<html><body><div class='row'><div class='col-md-3'>A:</div></div></body></html>"

    assert DetailScraper().parse_detail_page(html) == {}


@pytest.mark.asyncio
async def test_fetch_details_parses_fetched_page(catalog_config) -> None:
    transport = mock_transport({DETAIL_URL: (200, detail_html([("Region", "USA")]))})

    async with CatalogClient(catalog_config, transport=transport) as client:
        attributes = await DetailScraper().fetch_details(client, DETAIL_URL, CREDENTIAL)

    assert attributes == {"Region": "USA"}


@pytest.mark.asyncio
async def test_fetch_details_returns_empty_on_http_error(catalog_config) -> None:
    async with CatalogClient(catalog_config, transport=mock_transport({})) as client:
        attributes = await DetailScraper().fetch_details(client, DETAIL_URL, CREDENTIAL)

    assert attributes == {}


@pytest.mark.asyncio
async def test_fetch_details_skips_empty_url(catalog_config) -> None:
    async with CatalogClient(catalog_config, transport=mock_transport({})) as client:
        attributes = await DetailScraper().fetch_details(client, "", CREDENTIAL)
        assert client.total_requests == 0

    assert attributes == {}


@pytest.mark.asyncio
async def test_fetch_details_returns_empty_when_parsing_fails(catalog_config, monkeypatch) -> None:
    scraper = DetailScraper()

    def broken(html: str) -> dict[str, str]:
        raise RuntimeError("unexpected markup")

    monkeypatch.setattr(scraper, "parse_detail_page", broken)
    transport = mock_transport({DETAIL_URL: (200, "<html></html>")})

    async with CatalogClient(catalog_config, transport=transport) as client:
        attributes = await scraper.fetch_details(client, DETAIL_URL, CREDENTIAL)

    assert attributes == {}


@pytest.mark.asyncio
async def test_fetch_details_returns_empty_for_invalid_url(catalog_config) -> None:
    async with CatalogClient(catalog_config, transport=mock_transport({})) as client:
        attributes = await DetailScraper().fetch_details(
            client, f"{BASE_URL}/g/\x01bad", CREDENTIAL,
        )

    assert attributes == {}


@pytest.mark.asyncio
async def test_fetch_details_returns_empty_on_unexpected_client_error(catalog_config) -> None:
    client = CatalogClient(catalog_config, transport=mock_transport({}))

    async def broken(url: str, credential: Credential) -> str:
        raise RuntimeError("connection pool closed")

    client.get_detail_page = broken  # type: ignore[method-assign]

    assert await DetailScraper().fetch_details(client, DETAIL_URL, CREDENTIAL) == {}
