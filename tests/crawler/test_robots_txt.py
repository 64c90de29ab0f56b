# tests/crawler/test_robots_txt.py
import aiohttp
import pytest
from aioresponses import aioresponses

from wsg_check.crawler.model import RobotsPolicy, RobotsRule
from wsg_check.crawler.services.robots_txt_service import RobotsTxtService, parse_robots_txt

UA = "Mozilla/5.0 (compatible; wsg-check/0.1.0)"

ROBOTS = """
User-agent: *
Disallow: /private
Allow: /private/public

User-agent: wsg-check
Disallow: /no-checks
"""


def _robots_calls(m, url):
    return sum(len(calls) for (method, u), calls in m.requests.items() if str(u) == url)


def test_specific_group_wins_over_wildcard():
    """The group whose token appears in our user agent replaces the '*' group."""
    policy = parse_robots_txt(ROBOTS, UA, origin="https://example.com")
    assert not policy.is_allowed("/no-checks/page")
    assert policy.is_allowed("/private")


def test_wildcard_group_used_when_no_token_matches():
    policy = parse_robots_txt(ROBOTS, "SomeOtherBot/1.0")
    assert not policy.is_allowed("/private/data")
    assert policy.is_allowed("/private/public/page")
    assert policy.is_allowed("/no-checks")


def test_longest_match_and_allow_wins_tie():
    policy = RobotsPolicy(origin="https://example.com", rules=(
        RobotsRule(path="/a", allow=False),
        RobotsRule(path="/a", allow=True),
        RobotsRule(path="/a/b/c", allow=False),
    ))
    assert policy.is_allowed("/a/x")
    assert not policy.is_allowed("/a/b/c/d")


def test_no_match_is_allowed_and_root_disallow_blocks_everything():
    assert RobotsPolicy.allow_all("https://example.com").is_allowed("/anything")
    policy = parse_robots_txt("User-agent: *\nDisallow: /", UA)
    assert not policy.is_allowed("/")
    assert not policy.is_allowed("/deep/path?q=1")


def test_wildcard_and_anchor_patterns():
    policy = parse_robots_txt("User-agent: *\nDisallow: /*.pdf$\nDisallow: /tmp*/cache", UA)
    assert not policy.is_allowed("/docs/report.pdf")
    assert policy.is_allowed("/docs/report.pdf?download=1")
    assert not policy.is_allowed("/tmp-1/cache/x")


def test_empty_disallow_allows_everything():
    policy = parse_robots_txt("User-agent: *\nDisallow:", UA)
    assert policy.rules == ()
    assert policy.is_allowed("/")


async def test_policy_fetched_once_per_origin():
    with aioresponses() as m:
        m.get("https://example.com/robots.txt", status=200, body="User-agent: *\nDisallow: /private")
        async with aiohttp.ClientSession() as session:
            service = RobotsTxtService(session, UA)
            assert await service.can_fetch("https://example.com/page")
            assert not await service.can_fetch("https://example.com/private/x")
            assert service.cached_origins == ["https://example.com"]

        assert _robots_calls(m, "https://example.com/robots.txt") == 1


@pytest.mark.parametrize("mock_kwargs", [
    {"status": 404, "body": "Not found"},
    {"status": 500, "body": "Server error"},
    {"exception": aiohttp.ClientConnectionError("refused")},
])
async def test_unavailable_robots_allows_all(mock_kwargs):
    with aioresponses() as m:
        m.get("https://example.com/robots.txt", **mock_kwargs)
        async with aiohttp.ClientSession() as session:
            service = RobotsTxtService(session, UA)
            assert await service.can_fetch("https://example.com/private")


async def test_clear_cache_refetches():
    with aioresponses() as m:
        m.get("https://example.com/robots.txt", status=200, body="User-agent: *\nDisallow: /x", repeat=True)
        async with aiohttp.ClientSession() as session:
            service = RobotsTxtService(session, UA)
            await service.can_fetch("https://example.com/")
            service.clear_cache()
            assert service.cached_origins == []
            await service.can_fetch("https://example.com/")

        assert _robots_calls(m, "https://example.com/robots.txt") == 2
