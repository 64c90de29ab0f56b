# src/wsg_check/core/services/green_hosting_service.py
import asyncio
import logging
from typing import Optional
from urllib.parse import quote

import aiohttp

from wsg_check.core.managers.config_manager import config_manager

logger = logging.getLogger(__name__)


class GreenHostingService:
    """
    Looks a domain up in the Green Web Foundation greencheck API.

    Uses the given session when one is passed, otherwise opens a short-lived
    one per lookup. Every failure is reported as "not green".
    """

    def __init__(
            self,
            session: Optional[aiohttp.ClientSession] = None,
            api_url: Optional[str] = None,
            timeout: Optional[float] = None
    ):
        self.session = session
        self.api_url = api_url or config_manager.get_nested(
            "green_hosting.api_url", "https://api.thegreenwebfoundation.org/api/v3/greencheck/"
        )
        self.timeout = float(timeout if timeout is not None else config_manager.get_nested("green_hosting.time_out", 5))

    def build_url(self, domain: str) -> str:
        return f"{self.api_url.rstrip('/')}/{quote(domain, safe='')}"

    async def is_green(self, domain: str) -> bool:
        if not domain:
            return False
        url = self.build_url(domain)
        try:
            if self.session and not self.session.closed:
                return await self._lookup(self.session, url)
            async with aiohttp.ClientSession() as session:
                return await self._lookup(session, url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Green hosting lookup failed for %s: %s", domain, e)
            return False

    async def _lookup(self, session: aiohttp.ClientSession, url: str) -> bool:
        async with session.get(url, timeout=aiohttp.ClientTimeout(total=self.timeout)) as response:
            if response.status != 200:
                logger.debug("Greencheck returned HTTP %s for %s", response.status, url)
                return False
            data = await response.json(content_type=None)
        return isinstance(data, dict) and data.get("green") is True
