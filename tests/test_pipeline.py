from __future__ import annotations

import json
from dataclasses import replace

import pytest

from grant_analyzer.analyzer.classifier import PARSE_FAILURE_REASON, GrantClassifier
from grant_analyzer.errors import AuthenticationError, ListingFetchError, SinkClosedError
from grant_analyzer.scraper.client import CatalogClient
from grant_analyzer.scraper.pipeline import GrantPipeline
from tests.conftest import (
    BASE_URL,
    FakeAuthenticator,
    FakeCompletionClient,
    ListSink,
    card_html,
    detail_html,
    grant_titles,
    listing_html,
    mock_transport,
    pagination_html,
)

PAGE_1 = f"{BASE_URL}/grants/tech"
PAGE_2 = f"{BASE_URL}/grants/tech?page=2"
REQUIREMENTS = "Open-source software only"


def _detail_url(n: int) -> str:
    return f"{BASE_URL}/grant/{n}.html"


def _build(app_config, pages, replies=None, authenticator=None):
    completion = FakeCompletionClient(replies)
    pipeline = GrantPipeline(
        app_config,
        authenticator or FakeAuthenticator(),
        GrantClassifier(completion, "ctx"),
        client_factory=lambda: CatalogClient(app_config.catalog, transport=mock_transport(pages)),
    )
    return pipeline, completion


def _single_page_site() -> dict[str, tuple[int, str]]:
    return {
        PAGE_1: (200, listing_html([
            card_html("Alpha Grant", href="/grant/1.html"),
            card_html("Beta Grant", href="/grant/2.html"),
            card_html("Gamma Grant", href="/grant/3.html"),
        ])),
        _detail_url(1): (200, detail_html([("Funding Amount", "$20,000")])),
        _detail_url(2): (200, detail_html([("Region", "Texas")])),
        _detail_url(3): (200, detail_html([("Eligibility", "Nonprofits")])),
    }


def _two_page_site() -> dict[str, tuple[int, str]]:
    return {
        PAGE_1: (200, listing_html(
            [card_html("One", href="/grant/1.html"), card_html("Two", href="/grant/2.html")],
            pagination_html([
                ("1", "/grants/tech", True),
                ("2", "/grants/tech?page=2", False),
                ("»", "/grants/tech?page=2", False),
            ]),
        )),
        PAGE_2: (200, listing_html(
            [card_html("Three", href="/grant/3.html")],
            pagination_html([
                ("1", "/grants/tech", False),
                ("2", "/grants/tech?page=2", True),
                ("…", None, False),
            ]),
        )),
        _detail_url(1): (200, detail_html([("Region", "USA")])),
        _detail_url(2): (200, detail_html([("Region", "USA")])),
        _detail_url(3): (200, detail_html([("Region", "USA")])),
    }


@pytest.mark.asyncio
async def test_single_page_run_streams_every_card(app_config) -> None:
    pipeline, completion = _build(app_config, _single_page_site())
    sink = ListSink()

    stats = await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    assert grant_titles(sink) == ["Alpha Grant", "Beta Grant", "Gamma Grant"]
    assert sink.close_calls == 1
    assert pipeline.state == GrantPipeline.DONE
    assert stats["pages"] == 1
    assert stats["records"] == 3
    assert stats["emitted"] == 3
    assert stats["detail_failures"] == 0
    assert len(completion.calls) == 3
    assert "Funding Amount: $20,000" in completion.calls[0][1]
    assert all(REQUIREMENTS in user for _, user in completion.calls)


@pytest.mark.asyncio
async def test_each_message_is_one_record_array(app_config) -> None:
    pipeline, _ = _build(app_config, _single_page_site())
    sink = ListSink()

    await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    for message in sink.messages:
        assert message.endswith(b"\n")
        payload = json.loads(message)
        assert isinstance(payload, list) and len(payload) == 1
    first = json.loads(sink.messages[0])[0]
    assert first["url"] == _detail_url(1)
    assert first["recommendation"] == "YES"
    assert first["confidence"] == 8


@pytest.mark.asyncio
async def test_pagination_chain_is_followed_in_order(app_config) -> None:
    pipeline, _ = _build(app_config, _two_page_site())
    sink = ListSink()

    stats = await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    assert grant_titles(sink) == ["One", "Two", "Three"]
    assert stats["pages"] == 2
    assert sink.close_calls == 1


@pytest.mark.asyncio
async def test_max_pages_stops_the_chain(app_config) -> None:
    config = replace(app_config, catalog=replace(app_config.catalog, max_pages=1))
    pipeline, _ = _build(config, _two_page_site())
    sink = ListSink()

    stats = await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    assert grant_titles(sink) == ["One", "Two"]
    assert stats["pages"] == 1


@pytest.mark.asyncio
async def test_pagination_loop_is_not_revisited(app_config) -> None:
    pages = {
        PAGE_1: (200, listing_html(
            [card_html("One")],
            pagination_html([("1", None, True), ("2", "/grants/tech?page=2", False)]),
        )),
        PAGE_2: (200, listing_html(
            [card_html("Two")],
            pagination_html([("2", None, True), ("3", "/grants/tech", False)]),
        )),
    }
    pipeline, _ = _build(app_config, pages)
    sink = ListSink()

    stats = await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    assert grant_titles(sink) == ["One", "Two"]
    assert stats["pages"] == 2


@pytest.mark.asyncio
async def test_authentication_failure_emits_nothing(app_config) -> None:
    authenticator = FakeAuthenticator(fail=True)
    pipeline, completion = _build(app_config, _single_page_site(), authenticator=authenticator)
    sink = ListSink()

    with pytest.raises(AuthenticationError):
        await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    assert sink.messages == []
    assert sink.close_calls == 1
    assert completion.calls == []
    assert pipeline.state == GrantPipeline.FAILED


@pytest.mark.asyncio
async def test_listing_failure_mid_run_keeps_emitted_records(app_config) -> None:
    pages = _two_page_site()
    del pages[PAGE_2]
    pipeline, _ = _build(app_config, pages)
    sink = ListSink()

    with pytest.raises(ListingFetchError) as exc_info:
        await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    assert exc_info.value.status_code == 404
    assert grant_titles(sink) == ["One", "Two"]
    assert sink.close_calls == 1


@pytest.mark.asyncio
async def test_missing_detail_page_degrades_to_summary_only(app_config) -> None:
    pages = _single_page_site()
    del pages[_detail_url(2)]
    pipeline, completion = _build(app_config, pages)
    sink = ListSink()

    stats = await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    assert stats["emitted"] == 3
    assert stats["detail_failures"] == 1
    assert "Not available" in completion.calls[1][1]


@pytest.mark.asyncio
async def test_unparseable_verdicts_are_emitted_as_unknown(app_config) -> None:
    pipeline, _ = _build(app_config, _single_page_site(), replies=["not json at all"])
    sink = ListSink()

    stats = await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    records = [json.loads(m)[0] for m in sink.messages]
    assert {r["recommendation"] for r in records} == {"UNKNOWN"}
    assert {r["reason"] for r in records} == {PARSE_FAILURE_REASON}
    assert stats["unknown_verdicts"] == 3


@pytest.mark.asyncio
async def test_consumer_disconnect_stops_the_run(app_config) -> None:
    pipeline, completion = _build(app_config, _single_page_site())
    sink = ListSink(fail_after=1)

    with pytest.raises(SinkClosedError):
        await pipeline.run(PAGE_1, REQUIREMENTS, sink)

    assert grant_titles(sink) == ["Alpha Grant"]
    assert len(completion.calls) == 2
    assert sink.close_calls == 1


@pytest.mark.asyncio
async def test_repeated_runs_yield_identical_records(app_config) -> None:
    pipeline, _ = _build(app_config, _single_page_site())
    first, second = ListSink(), ListSink()

    await pipeline.run(PAGE_1, REQUIREMENTS, first)
    await pipeline.run(PAGE_1, REQUIREMENTS, second)

    assert first.messages == second.messages
