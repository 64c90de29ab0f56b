# tests/crawler/test_http_client.py
import asyncio

import aiohttp
import pytest
from aioresponses import aioresponses

from wsg_check.core.errors import RetrievalErrorKind
from wsg_check.crawler.model import RedirectHop
from wsg_check.crawler.services.http_client_service import HttpClientService

PAGE = "https://example.com/page"
ROBOTS = "https://example.com/robots.txt"
HTML = "<html><head><title>Hi</title></head><body></body></html>"


def _calls(m, url):
    return sum(len(calls) for (method, u), calls in m.requests.items() if str(u) == url)


@pytest.fixture
async def client():
    service = HttpClientService(
        timeout=5, user_agent="wsg-check-tests/1.0", max_redirects=3, max_retries=0, retry_delay=0
    )
    yield service
    await service.close()


async def test_fetch_returns_outcome_with_lowercase_headers(client):
    with aioresponses() as m:
        m.get(PAGE, status=200, body=HTML, content_type="text/html", headers={"X-Custom": "A"})
        result = await client.fetch(PAGE)

    assert result.ok
    outcome = result.value
    assert outcome.url == PAGE
    assert outcome.original_url == PAGE
    assert outcome.status_code == 200
    assert outcome.body == HTML
    assert outcome.headers["x-custom"] == "A"
    assert outcome.redirect_chain == ()
    assert outcome.from_cache is False
    assert outcome.body_bytes == len(HTML.encode("utf-8"))


async def test_second_fetch_is_served_from_cache(client):
    with aioresponses() as m:
        m.get(PAGE, status=200, body=HTML, content_type="text/html")
        first = await client.fetch(PAGE)
        second = await client.fetch(PAGE)

        assert _calls(m, PAGE) == 1
        robots_calls = _calls(m, ROBOTS)

    assert first.value.from_cache is False
    assert second.value.from_cache is True
    assert second.value.body == first.value.body
    assert robots_calls <= 1


async def test_concurrent_fetches_hit_network_once(client):
    with aioresponses() as m:
        m.get(PAGE, status=200, body=HTML, content_type="text/html")
        results = await asyncio.gather(client.fetch(PAGE), client.fetch(PAGE))

        assert _calls(m, PAGE) == 1

    assert all(r.ok for r in results)
    assert sorted(r.value.from_cache for r in results) == [False, True]


async def test_clear_cache_forces_refetch(client):
    with aioresponses() as m:
        m.get(PAGE, status=200, body=HTML, repeat=True)
        await client.fetch(PAGE)
        client.clear_cache()
        result = await client.fetch(PAGE)

        assert _calls(m, PAGE) == 2
    assert result.value.from_cache is False
    assert client.cached_urls == [PAGE]


async def test_redirect_chain_is_recorded_in_order(client):
    with aioresponses() as m:
        m.get("https://example.com/a", status=301, headers={"Location": "/b"})
        m.get("https://example.com/b", status=302, headers={"Location": "https://www.example.com/c"})
        m.get("https://www.example.com/c", status=200, body=HTML, content_type="text/html")
        result = await client.fetch("https://example.com/a")

    assert result.ok
    outcome = result.value
    assert outcome.url == "https://www.example.com/c"
    assert outcome.original_url == "https://example.com/a"
    assert outcome.redirect_chain == (
        RedirectHop(url="https://example.com/a", status_code=301, location="/b"),
        RedirectHop(url="https://example.com/b", status_code=302, location="https://www.example.com/c"),
    )


async def test_too_many_redirects(client):
    with aioresponses() as m:
        for i in range(5):
            m.get(f"https://example.com/r{i}", status=301, headers={"Location": f"/r{i + 1}"})
        result = await client.fetch("https://example.com/r0")

    assert not result.ok
    assert result.error.kind == RetrievalErrorKind.TOO_MANY_REDIRECTS
    assert result.error.url == "https://example.com/r0"


async def test_redirect_limit_is_inclusive(client):
    with aioresponses() as m:
        for i in range(3):
            m.get(f"https://example.com/r{i}", status=308, headers={"Location": f"/r{i + 1}"})
        m.get("https://example.com/r3", status=200, body=HTML)
        result = await client.fetch("https://example.com/r0")

    assert result.ok
    assert len(result.value.redirect_chain) == 3


async def test_redirect_without_location_is_protocol_error(client):
    with aioresponses() as m:
        m.get(PAGE, status=302)
        result = await client.fetch(PAGE)

    assert result.error.kind == RetrievalErrorKind.PROTOCOL


async def test_redirects_not_followed_when_disabled():
    service = HttpClientService(user_agent="t", follow_redirects=False, max_retries=0)
    try:
        with aioresponses() as m:
            m.get(PAGE, status=301, headers={"Location": "/elsewhere"})
            result = await service.fetch(PAGE)
    finally:
        await service.close()

    assert result.ok
    assert result.value.status_code == 301
    assert result.value.redirect_chain == ()


async def test_robots_disallowed_url_is_blocked_without_fetching(client):
    with aioresponses() as m:
        m.get(ROBOTS, status=200, body="User-agent: *\nDisallow: /page")
        result = await client.fetch(PAGE)

        assert _calls(m, PAGE) == 0

    assert not result.ok
    assert result.error.kind == RetrievalErrorKind.BLOCKED


async def test_ignore_robots_skips_the_check(client):
    with aioresponses() as m:
        m.get(ROBOTS, status=200, body="User-agent: *\nDisallow: /")
        m.get(PAGE, status=200, body=HTML)
        result = await client.fetch(PAGE, ignore_robots=True)

        assert _calls(m, ROBOTS) == 0
    assert result.ok


async def test_http_error_status_is_a_valid_outcome(client):
    with aioresponses() as m:
        m.get(PAGE, status=404, body="Not found")
        result = await client.fetch(PAGE)

    assert result.ok
    assert result.value.status_code == 404
    assert not result.value.is_success


async def test_empty_body(client):
    with aioresponses() as m:
        m.get(PAGE, status=200, body="")
        result = await client.fetch(PAGE)

    assert result.value.body == ""
    assert result.value.body_bytes == 0


async def test_content_length_header_wins_over_body_size(client):
    with aioresponses() as m:
        m.get(PAGE, status=200, body=HTML, headers={"Content-Length": "42", "Content-Encoding": "gzip"})
        result = await client.fetch(PAGE)

    assert result.value.content_length == 42
    assert result.value.content_encoding == "gzip"


@pytest.mark.parametrize("exception,kind", [
    (aiohttp.ClientConnectionError("refused"), RetrievalErrorKind.NETWORK),
    (asyncio.TimeoutError(), RetrievalErrorKind.TIMEOUT),
])
async def test_transport_failures_map_to_error_kinds(client, exception, kind):
    with aioresponses() as m:
        m.get(PAGE, exception=exception)
        result = await client.fetch(PAGE)

    assert not result.ok
    assert result.error.kind == kind
    assert result.error.cause is exception


async def test_transient_failure_is_retried():
    service = HttpClientService(user_agent="t", max_retries=2, retry_delay=0)
    try:
        with aioresponses() as m:
            m.get(PAGE, exception=aiohttp.ClientConnectionError("reset"))
            m.get(PAGE, status=200, body=HTML)
            result = await service.fetch(PAGE)

            assert _calls(m, PAGE) == 2
    finally:
        await service.close()

    assert result.ok


async def test_failures_are_not_cached(client):
    with aioresponses() as m:
        m.get(PAGE, exception=aiohttp.ClientConnectionError("down"))
        m.get(PAGE, status=200, body=HTML)
        first = await client.fetch(PAGE)
        second = await client.fetch(PAGE)

    assert not first.ok
    assert second.ok and second.value.from_cache is False


@pytest.mark.parametrize("url", ["ftp://example.com/file", "example.com/page", ""])
async def test_invalid_url(client, url):
    result = await client.fetch(url)
    assert result.error.kind == RetrievalErrorKind.INVALID_URL


async def test_fetch_locks_are_released_after_each_fetch(client):
    urls = [f"https://example.com/p{i}" for i in range(5)]
    with aioresponses() as m:
        for url in urls:
            m.get(url, status=200, body=HTML)
        m.get("https://example.com/down", exception=aiohttp.ClientConnectionError("refused"))

        await asyncio.gather(*(client.fetch(url) for url in urls + urls))
        failed = await client.fetch("https://example.com/down")

    assert not failed.ok
    assert client._fetch_locks == {}
