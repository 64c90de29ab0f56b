# src/wsg_check/crawler/services/robots_txt_service.py
import asyncio
import logging
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin

import aiohttp

from wsg_check.crawler.model import RobotsPolicy, RobotsRule
from wsg_check.crawler.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)


def parse_robots_txt(content: str, user_agent: str, origin: str = "") -> RobotsPolicy:
    """
    Parses robots.txt content into the policy that applies to `user_agent`.

    The group whose User-agent token is the longest case-insensitive substring
    of our user agent is selected; the '*' group is the fallback. Empty
    'Disallow:' lines allow everything and are skipped.
    """
    groups: List[Tuple[List[str], List[RobotsRule]]] = []
    agents: List[str] = []
    rules: List[RobotsRule] = []
    in_rules = False

    for raw_line in content.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        field, value = line.split(":", 1)
        field = field.strip().lower()
        value = value.strip()

        if field == "user-agent":
            if in_rules:
                groups.append((agents, rules))
                agents, rules, in_rules = [], [], False
            agents.append(value.lower())
        elif field in ("allow", "disallow"):
            if not agents:
                continue
            in_rules = True
            if value:
                rules.append(RobotsRule(path=value, allow=field == "allow"))

    if agents:
        groups.append((agents, rules))

    ua = user_agent.lower()
    selected: Optional[List[RobotsRule]] = None
    selected_len = -1
    wildcard: List[RobotsRule] = []
    for group_agents, group_rules in groups:
        for agent in group_agents:
            if agent == "*":
                wildcard.extend(group_rules)
            elif agent and agent in ua and len(agent) > selected_len:
                selected, selected_len = group_rules, len(agent)

    chosen = selected if selected is not None else wildcard
    return RobotsPolicy(origin=origin, rules=tuple(chosen))


class RobotsTxtService:
    """
    Manages fetching, parsing, and caching of robots.txt files.

    Policies are cached per origin for the lifetime of the instance; only
    `clear_cache` evicts them.
    """

    def __init__(self, session: aiohttp.ClientSession, user_agent: str, timeout: float = 5):
        """
        Args:
            session: The shared aiohttp.ClientSession for requests.
            user_agent: The User-Agent string for fetching and group matching.
            timeout: Total timeout in seconds for the robots.txt request.
        """
        self._session = session
        self._user_agent = user_agent
        self._timeout = timeout
        self._policy_cache: Dict[str, RobotsPolicy] = {}
        self._fetch_locks: Dict[str, asyncio.Lock] = {}

    @property
    def cached_origins(self) -> List[str]:
        return list(self._policy_cache)

    def clear_cache(self) -> None:
        self._policy_cache.clear()
        self._fetch_locks.clear()

    async def get_policy(self, base_url: str) -> RobotsPolicy:
        """
        Retrieves the policy for an origin, fetching robots.txt if not cached.
        This method ensures an origin's robots.txt is fetched only once.
        """
        if base_url in self._policy_cache:
            return self._policy_cache[base_url]

        lock = self._fetch_locks.setdefault(base_url, asyncio.Lock())
        async with lock:
            if base_url in self._policy_cache:
                return self._policy_cache[base_url]

            policy = await self._fetch_policy(base_url)
            self._policy_cache[base_url] = policy
            return policy

    async def _fetch_policy(self, base_url: str) -> RobotsPolicy:
        robots_url = urljoin(base_url, "/robots.txt")
        try:
            async with self._session.get(
                    robots_url,
                    allow_redirects=True,
                    timeout=aiohttp.ClientTimeout(total=self._timeout)
            ) as response:
                if 200 <= response.status < 300:
                    content = await response.text(errors="replace")
                    policy = parse_robots_txt(content, self._user_agent, origin=base_url)
                    logger.debug(
                        "Fetched robots.txt for %s (%d rules apply).", base_url, len(policy.rules)
                    )
                    return policy
                logger.debug(
                    "robots.txt not found for %s (status: %d). Allowing all.",
                    base_url, response.status
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Could not fetch robots.txt for %s: %s. Allowing all.", base_url, e)

        return RobotsPolicy.allow_all(base_url)

    async def can_fetch(self, url: str) -> bool:
        """
        Checks if the client is allowed to fetch a URL based on robots.txt rules.
        """
        base_url = UrlUtils.get_base_url(url)
        if base_url is None:
            return False

        policy = await self.get_policy(base_url)
        allowed = policy.is_allowed(UrlUtils.get_path_with_query(url))
        if not allowed:
            logger.debug("robots.txt disallows %s", url)
        return allowed
