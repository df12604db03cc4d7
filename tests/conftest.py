"""Shared fixtures: catalog HTML builders, fake collaborators, configs."""

from __future__ import annotations

import json
from typing import Optional

import httpx
import pytest

from grant_analyzer.config import (
    AppConfig,
    AuthConfig,
    CatalogConfig,
    EvaluatorConfig,
    ServerConfig,
)
from grant_analyzer.errors import AuthenticationError
from grant_analyzer.models import Credential
from grant_analyzer.streaming import GrantSink

BASE_URL = "https://www.grantwatch.com"


# ═══════════════════════════════════════════════════════════
# HTML builders
# ═══════════════════════════════════════════════════════════


def card_html(
    title: str,
    href: Optional[str] = None,
    summary: Optional[str] = "A grant summary.",
    deadline: Optional[str] = "12/31/2026",
) -> str:
    link = f'<a href="{href}">Read more</a>' if href is not None else ""
    summary_html = f'<div class="grnhomegboxtext"><p>{summary}</p></div>' if summary is not None else ""
    deadline_html = (
        f'<div class="ddlinedtgwhm">Deadline: <span><em>{deadline}</em></span></div>'
        if deadline is not None else ""
    )
    return (
        f'<div class="grnhomegbox">{link}<h4>{title}</h4>'
        f"{summary_html}{deadline_html}</div>"
    )


def pagination_html(entries: list[tuple[str, Optional[str], bool]]) -> str:
    """entries: (label, href or None, is_active)."""
    items = []
    for label, href, active in entries:
        cls = ' class="active"' if active else ""
        inner = f'<a href="{href}">{label}</a>' if href is not None else f"<span>{label}</span>"
        items.append(f"<li{cls}>{inner}</li>")
    return f'<ul class="pagination">{"".join(items)}</ul>'


def listing_html(cards: list[str], pagination: str = "") -> str:
    return (
        "<html><body><div id='results'>"
        + "".join(cards)
        + "</div>"
        + pagination
        + "</body></html>"
    )


def detail_html(rows: list[tuple[str, str]], highlight: Optional[dict[str, str]] = None) -> str:
    highlight = highlight or {}
    sections = []
    for label, content in rows:
        extra = f'<span class="highlight">{highlight[label]}</span>' if label in highlight else ""
        sections.append(
            f'<div class="row"><div class="col-md-3">{label}:</div>'
            f'<div class="col-md-9">{content} {extra}</div></div>'
        )
    return f'<html><body><div class="grant-details">{"".join(sections)}</div></body></html>'


# ═══════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════


class FakeAuthenticator:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = 0

    async def authenticate(self) -> Credential:
        self.calls += 1
        if self.fail:
            raise AuthenticationError("Credentials rejected by the login form")
        return Credential(cookies=(("PHPSESSID", "abc123"), ("gw_auth", "xyz")))


class FakeCompletionClient:
    """Returns canned replies in order; the last one repeats."""

    def __init__(self, replies: Optional[list[Optional[str]]] = None) -> None:
        self.replies = replies or ['{"recommendation": "YES", "reason": "Fits.", "confidence": 8}']
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        self.calls.append((system_prompt, user_prompt))
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        return self.replies[index]


class ListSink(GrantSink):
    """Collects emitted messages in memory."""

    def __init__(self, fail_after: Optional[int] = None) -> None:
        super().__init__()
        self.messages: list[bytes] = []
        self.close_calls = 0
        self.fail_after = fail_after

    async def _write(self, data: bytes) -> None:
        if self.fail_after is not None and len(self.messages) >= self.fail_after:
            raise ConnectionResetError("consumer went away")
        self.messages.append(data)

    async def _close(self) -> None:
        self.close_calls += 1


def grant_titles(sink: ListSink) -> list[str]:
    return [json.loads(m)[0]["title"] for m in sink.messages]


# ═══════════════════════════════════════════════════════════
# Config fixtures
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def catalog_config() -> CatalogConfig:
    return CatalogConfig(base_url=BASE_URL, request_delay_seconds=0, max_retries=1)


@pytest.fixture
def app_config(catalog_config: CatalogConfig) -> AppConfig:
    return AppConfig(
        catalog=catalog_config,
        auth=AuthConfig(
            login_url=f"{BASE_URL}/join-login.php?vw=login",
            username="user@example.com",
            password="s3cret",
            timeout_seconds=1,
        ),
        evaluator=EvaluatorConfig(
            base_url="https://llm.example.com/v1",
            api_key="sk-test",
            model="test-model",
        ),
        server=ServerConfig(),
    )


def mock_transport(pages: dict[str, tuple[int, str]]) -> httpx.MockTransport:
    """Serve fixed (status, body) pairs by URL; anything else is 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        status, body = pages.get(str(request.url), (404, "not found"))
        return httpx.Response(status, text=body)

    return httpx.MockTransport(handler)

