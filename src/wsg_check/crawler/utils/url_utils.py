# src/wsg_check/crawler/utils/url_utils.py
import logging
from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

import tldextract

logger = logging.getLogger(__name__)

# Bundled Public Suffix List snapshot; never fetched at runtime
_extract = tldextract.TLDExtract(cache_dir=None, suffix_list_urls=())


class UrlUtils:
    """A collection of static methods for URL parsing and manipulation."""

    @staticmethod
    def is_http_url(url: str) -> bool:
        """Checks that a URL is absolute and uses the http or https scheme."""
        if not isinstance(url, str):
            return False
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    @staticmethod
    def get_base_url(url: str) -> Optional[str]:
        """
        Extracts and returns the origin (scheme + netloc) from a given URL.
        """
        try:
            parsed_url = urlparse(url)
            if not parsed_url.scheme or not parsed_url.netloc:
                logger.debug("Invalid URL format: %s", url)
                return None
            return f"{parsed_url.scheme}://{parsed_url.netloc}"
        except ValueError:
            logger.debug("Could not parse invalid URL: %s", url)
            return None

    @staticmethod
    def get_hostname(url: str) -> str:
        try:
            return (urlparse(url).hostname or "").lower()
        except ValueError:
            return ""

    @staticmethod
    def get_path_with_query(url: str) -> str:
        """Returns the part of a URL that robots.txt rules are matched against."""
        parsed = urlparse(url)
        path = parsed.path or "/"
        return f"{path}?{parsed.query}" if parsed.query else path

    @staticmethod
    def resolve(base_url: str, href: Optional[str]) -> str:
        """
        Resolves a potentially relative reference against the page URL.
        Fragments are dropped, as they are client-side only.
        """
        if not href:
            return ""
        href = href.strip()
        if not base_url:
            return href
        try:
            absolute = urlparse(urljoin(base_url, href))
        except ValueError:
            return href
        return urlunparse(absolute._replace(fragment=""))

    @staticmethod
    def get_site(url: str) -> str:
        """
        Returns the registrable domain of a URL according to the Public Suffix
        List (e.g. 'cdn.example.co.uk' -> 'example.co.uk'). Hosts without a
        public suffix, such as IP addresses or 'localhost', are returned as is.
        """
        hostname = UrlUtils.get_hostname(url)
        if not hostname:
            return url
        ext = _extract(hostname)
        if ext.domain and ext.suffix:
            return f"{ext.domain}.{ext.suffix}"
        return hostname

    @staticmethod
    def is_third_party(url: str, origin_url: str) -> bool:
        return UrlUtils.get_site(url) != UrlUtils.get_site(origin_url)
