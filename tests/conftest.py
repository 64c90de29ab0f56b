# tests/conftest.py
from typing import Dict, Optional, Sequence

import pytest

from wsg_check.auditor.model import PageSnapshot, RuleOutcome
from wsg_check.crawler.model import FetchOutcome, RedirectHop
from wsg_check.parser.services.page_parse_service import parse_html
from wsg_check.parser.services.resource_analyzer_service import analyze_page_weight

PAGE_URL = "https://example.com/"


@pytest.fixture
def make_fetch_outcome():
    """Builds a FetchOutcome as the HTTP client would return it."""
    def _make(
            body: str = "",
            url: str = PAGE_URL,
            status_code: int = 200,
            headers: Optional[Dict[str, str]] = None,
            redirect_chain: Sequence[RedirectHop] = (),
            content_length: Optional[int] = None,
    ) -> FetchOutcome:
        headers = {k.lower(): v for k, v in (headers or {}).items()}
        body_bytes = len(body.encode("utf-8"))
        return FetchOutcome(
            url=url,
            original_url=redirect_chain[0].url if redirect_chain else url,
            status_code=status_code,
            headers=headers,
            body=body,
            redirect_chain=tuple(redirect_chain),
            body_bytes=body_bytes,
            content_length=body_bytes if content_length is None else content_length,
            content_encoding=headers.get("content-encoding"),
            content_type=headers.get("content-type"),
        )
    return _make


@pytest.fixture
def make_page(make_fetch_outcome):
    """Builds a PageSnapshot the way the check controller does."""
    def _make(body: str = "", url: str = PAGE_URL, **fetch_kwargs) -> PageSnapshot:
        outcome = make_fetch_outcome(body=body, url=url, **fetch_kwargs)
        document = parse_html(outcome.body, outcome.url)
        return PageSnapshot(
            url=url,
            fetch_outcome=outcome,
            document=document,
            page_weight=analyze_page_weight(outcome, document),
        )
    return _make


@pytest.fixture
def make_outcome():
    def _make(
            status: str = "pass",
            impact: str = "medium",
            category: str = "web-dev",
            score: Optional[int] = None,
            guideline_id: str = "0.0",
    ) -> RuleOutcome:
        if score is None:
            score = {"pass": 100, "warn": 50}.get(status, 0)
        return RuleOutcome(
            guideline_id=guideline_id,
            guideline_name=f"Guideline {guideline_id}",
            status=status,
            score=score,
            message=f"{status} outcome",
            impact=impact,
            category=category,
        )
    return _make


@pytest.fixture
def good_html() -> str:
    return """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Example page</title>
  <meta name="description" content="An example page">
  <meta property="og:title" content="Example">
  <meta property="og:description" content="An example page">
  <link rel="stylesheet" href="/static/site.css">
  <script type="application/ld+json">{"@context": "https://schema.org", "@type": "WebPage"}</script>
  <script src="/static/app.js" defer></script>
</head>
<body>
  <a href="#main" class="skip">Skip to content</a>
  <header><nav><a href="/about">About</a></nav></header>
  <main id="main">
    <h1>Welcome</h1>
    <img src="/img/hero.jpg" alt="Hero">
    <h2>Section</h2>
    <img src="/img/second.jpg" alt="" loading="lazy">
  </main>
  <footer>Footer</footer>
</body>
</html>"""
