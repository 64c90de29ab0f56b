from __future__ import annotations

from typing import Dict, List, Optional

from wsg_check.crawler.model import FetchOutcome
from wsg_check.crawler.utils.url_utils import UrlUtils
from wsg_check.parser.model import (
    RESOURCE_TYPES,
    ClassifiedResource,
    CompressionInfo,
    PageWeight,
    ParsedDocument,
    ResourceReference,
)

KNOWN_ENCODINGS = {"gzip": "gzip", "x-gzip": "gzip", "br": "br", "zstd": "zstd", "deflate": "deflate"}


def classify_resources(resources: List[ResourceReference], origin_url: str) -> List[ClassifiedResource]:
    """Marks each resource as first- or third-party relative to the page's site."""
    return [
        ClassifiedResource(
            url=ref.url,
            type=ref.type,
            is_third_party=UrlUtils.is_third_party(ref.url, origin_url),
        )
        for ref in resources
    ]


def analyze_compression(headers: Dict[str, str]) -> CompressionInfo:
    encoding = (headers.get("content-encoding") or "").lower().strip()
    if not encoding:
        return CompressionInfo(is_compressed=False)
    return CompressionInfo(is_compressed=True, type=KNOWN_ENCODINGS.get(encoding, encoding))


def analyze_page_weight(
        fetch_outcome: FetchOutcome,
        document: ParsedDocument,
        origin_url: Optional[str] = None
) -> PageWeight:
    """
    Derives page weight metrics from the fetch and parsed document.
    Third-party classification is done against `origin_url`, defaulting to the
    final URL of the fetch.
    """
    classified = classify_resources(document.resources, origin_url or fetch_outcome.url)

    by_type = {t: 0 for t in RESOURCE_TYPES}
    third_party = 0
    for resource in classified:
        by_type[resource.type] = by_type.get(resource.type, 0) + 1
        if resource.is_third_party:
            third_party += 1

    return PageWeight(
        html_size=fetch_outcome.content_length,
        resource_count=len(classified),
        first_party_count=len(classified) - third_party,
        third_party_count=third_party,
        compression=analyze_compression(fetch_outcome.headers),
        by_type=by_type,
    )
