# src/wsg_check/auditor/rules/hosting.py
import re

from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.model import PageSnapshot, RuleOutcome
from wsg_check.core.services.green_hosting_service import GreenHostingService
from wsg_check.crawler.utils.url_utils import UrlUtils

WSG_BASE = "https://www.w3.org/TR/web-sustainability-guidelines/"

MAX_AGE_RE = re.compile(r"(?:^|,)\s*(?:max-age|s-maxage)\s*=\s*\d+", re.I)

COMPRESSION_ENCODINGS = {"gzip", "x-gzip", "br", "zstd", "deflate"}

REDIRECT_CHAIN_THRESHOLD = 3
PERMANENT_REDIRECT_CODES = {301, 308}

# Response headers that only a CDN or edge cache sets, with a readable label
CDN_HEADERS = (
    ("cf-ray", "Cloudflare"),
    ("x-amz-cf-id", "Amazon CloudFront"),
    ("x-amz-cf-pop", "Amazon CloudFront"),
    ("x-fastly-request-id", "Fastly"),
    ("x-served-by", "Fastly"),
    ("x-cache", "edge cache"),
    ("x-cache-hits", "edge cache"),
    ("fly-request-id", "Fly.io"),
    ("age", "shared cache (Age)"),
    ("via", "proxy or CDN (Via)"),
)

SUSTAINABLE_HOSTING = RuleDefinition(
    guideline_id="4.1",
    name="Choose a Sustainable Hosting Provider",
    success_criterion="The domain should be served from infrastructure powered by verified renewable energy",
    category="hosting",
    impact="high",
    resources=[
        WSG_BASE + "#choose-a-sustainable-hosting-provider",
        "https://www.thegreenwebfoundation.org/",
    ],
)

CACHING = RuleDefinition(
    guideline_id="4.2",
    name="Optimise Browser Caching",
    success_criterion="Pages should be served with effective caching headers (Cache-Control with max-age, ETag, or Expires)",
    category="hosting",
    impact="high",
    resources=[WSG_BASE + "#optimise-browser-caching"],
)

COMPRESSION = RuleDefinition(
    guideline_id="4.3",
    name="Compress Your Files",
    success_criterion="HTML responses should be delivered with gzip or Brotli content encoding to reduce transfer size",
    category="hosting",
    impact="high",
    resources=[WSG_BASE + "#compress-your-files"],
)

REDIRECTS = RuleDefinition(
    guideline_id="4.4",
    name="Avoid Unnecessary or Excessive Redirects",
    success_criterion="Pages should be accessible without redirect chains; permanent redirects are preferred",
    category="hosting",
    impact="medium",
    resources=[WSG_BASE + "#avoid-unnecessary-or-excessive-redirects"],
)

CDN_USAGE = RuleDefinition(
    guideline_id="4.10",
    name="Use a Content Delivery Network",
    success_criterion="Pages should be delivered through a CDN or edge cache close to the visitor",
    category="hosting",
    impact="medium",
    resources=[WSG_BASE + "#use-a-content-delivery-network"],
)


@CACHING.implementation
def check_caching(page: PageSnapshot) -> RuleOutcome:
    headers = page.fetch_outcome.headers
    cache_control = headers.get("cache-control", "")
    etag = headers.get("etag", "")
    expires = headers.get("expires", "")

    if MAX_AGE_RE.search(cache_control):
        return CACHING.outcome("pass", "Cache-Control header with max-age is present.")

    found = []
    if cache_control:
        found.append(f"Cache-Control: {cache_control}")
    if etag:
        found.append("ETag")
    if expires:
        found.append(f"Expires: {expires}")

    if found:
        return CACHING.outcome(
            "warn",
            "Some caching headers present but no explicit max-age directive found.",
            details=f"Found: {'; '.join(found)}.",
            recommendation='Add a max-age directive, e.g. "Cache-Control: max-age=3600".',
        )

    return CACHING.outcome(
        "fail",
        "No caching headers found (Cache-Control, ETag, or Expires are all absent).",
        recommendation=(
            'Send Cache-Control on every response: "no-cache" for HTML and '
            '"max-age=31536000, immutable" for versioned assets.'
        ),
    )


@COMPRESSION.implementation
def check_compression(page: PageSnapshot) -> RuleOutcome:
    encoding = (page.fetch_outcome.headers.get("content-encoding") or "").strip().lower()

    if encoding in COMPRESSION_ENCODINGS:
        is_brotli = encoding == "br"
        return COMPRESSION.outcome(
            "pass",
            f"Response is compressed with {'Brotli (br)' if is_brotli else encoding} encoding.",
            details=f"Content-Encoding: {encoding}",
            recommendation=None if is_brotli else "Brotli typically compresses 15-25% better than gzip.",
        )

    return COMPRESSION.outcome(
        "fail",
        "Response does not appear to use content encoding (no Content-Encoding header found).",
        recommendation="Enable gzip or Brotli compression for all text-based responses on your server or CDN.",
    )


@REDIRECTS.implementation
def check_redirects(page: PageSnapshot) -> RuleOutcome:
    chain = page.fetch_outcome.redirect_chain

    if not chain:
        return REDIRECTS.outcome("pass", "No redirects detected; the URL resolves directly.")

    if len(chain) >= REDIRECT_CHAIN_THRESHOLD:
        hops = "\n".join(f"{hop.status_code} {hop.url} -> {hop.location}" for hop in chain)
        return REDIRECTS.outcome(
            "fail",
            f"Redirect chain of {len(chain)} hops detected.",
            details=f"Redirect chain:\n{hops}",
            recommendation="Collapse the chain into a single permanent redirect and link to the final URL directly.",
        )

    temporary = [hop for hop in chain if hop.status_code not in PERMANENT_REDIRECT_CODES]
    if temporary:
        return REDIRECTS.outcome(
            "warn",
            f"{len(chain)} redirect(s) detected, including temporary redirect(s) that cannot be cached.",
            details="Temporary redirects: " + ", ".join(f"{hop.status_code} {hop.url}" for hop in temporary),
            recommendation="Use 301/308 instead of 302/307 when the destination URL is stable.",
        )

    return REDIRECTS.outcome("pass", f"{len(chain)} permanent redirect(s) detected; these are cached by browsers.")



@SUSTAINABLE_HOSTING.implementation
async def check_sustainable_hosting(page: PageSnapshot) -> RuleOutcome:
    domain = UrlUtils.get_hostname(page.fetch_outcome.url or page.url)
    is_green = page.is_green_hosted
    if is_green is None:
        is_green = await GreenHostingService().is_green(domain)

    if is_green:
        return SUSTAINABLE_HOSTING.outcome(
            "pass", f"{domain} is hosted on verified renewable-energy infrastructure (Green Web Foundation)."
        )
    return SUSTAINABLE_HOSTING.outcome(
        "fail",
        f"{domain} is not listed in the Green Web Foundation dataset as a green hosting provider.",
        details="The Green Web Foundation dataset lists hosting providers that run on renewable energy.",
        recommendation=(
            "Move to a hosting provider that runs on 100% renewable energy and is verified by the "
            "Green Web Foundation (https://www.thegreenwebfoundation.org/green-web-check/)."
        ),
    )


@CDN_USAGE.implementation
def check_cdn_usage(page: PageSnapshot) -> RuleOutcome:
    headers = page.fetch_outcome.headers
    labels = []
    for header, label in CDN_HEADERS:
        if header in headers and label not in labels:
            labels.append(label)

    if labels:
        return CDN_USAGE.outcome("pass", f"CDN delivery detected via response headers: {', '.join(labels)}.")

    return CDN_USAGE.outcome(
        "warn",
        "No CDN or edge cache headers detected in the response.",
        details="Looked for: " + ", ".join(header for header, _ in CDN_HEADERS) + ".",
        recommendation=(
            "Serve pages and static assets through a CDN so they travel a shorter distance. Many static "
            "hosts (Netlify, Vercel, Cloudflare Pages) include one by default."
        ),
    )


DEFINITIONS = [SUSTAINABLE_HOSTING, CACHING, COMPRESSION, REDIRECTS, CDN_USAGE]
