# src/wsg_check/auditor/rules/security.py
from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.model import PageSnapshot, RuleOutcome

SECURITY_HEADERS = (
    ("content-security-policy", "Content-Security-Policy"),
    ("strict-transport-security", "Strict-Transport-Security"),
    ("x-frame-options", "X-Frame-Options"),
    ("x-content-type-options", "X-Content-Type-Options"),
    ("referrer-policy", "Referrer-Policy"),
)

# Missing this many headers or more fails
FAIL_THRESHOLD = 3

SECURITY = RuleDefinition(
    guideline_id="3.15",
    name="Code Security",
    success_criterion="Pages should be served with key HTTP security headers (CSP, HSTS, X-Frame-Options, etc.)",
    category="web-dev",
    impact="high",
    resources=["https://www.w3.org/TR/web-sustainability-guidelines/#code-security"],
)


@SECURITY.implementation
def check_security_headers(page: PageSnapshot) -> RuleOutcome:
    headers = page.fetch_outcome.headers
    missing = [label for header, label in SECURITY_HEADERS if not headers.get(header)]

    if not missing:
        return SECURITY.outcome("pass", "All recommended security headers are present.")

    missing_list = ", ".join(missing)
    return SECURITY.outcome(
        "fail" if len(missing) >= FAIL_THRESHOLD else "warn",
        f"{len(missing)} security header(s) missing: {missing_list}.",
        details=f"Missing headers: {missing_list}",
        recommendation="Add the missing security headers to your server or CDN configuration.",
    )


DEFINITIONS = [SECURITY]
