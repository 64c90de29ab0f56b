# src/wsg_check/auditor/rules/navigation.py
from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.model import PageSnapshot, RuleOutcome

WSG_BASE = "https://www.w3.org/TR/web-sustainability-guidelines/"

BREADCRUMB_SCHEMA_TYPE = "BreadcrumbList"

NAVIGATION = RuleDefinition(
    guideline_id="2.8",
    name="Ensure Navigation and Way-Finding Are Well-Structured",
    success_criterion="Pages should have navigation landmarks and breadcrumbs for efficient way-finding",
    category="ux",
    impact="medium",
    resources=[WSG_BASE + "#ensure-navigation-and-way-finding-are-well-structured"],
)

ACCESSIBILITY_AIDS = RuleDefinition(
    guideline_id="3.9",
    name="Provide Code-Based Way-Finding Mechanisms",
    success_criterion="Pages should offer a skip link and a <main> landmark so assistive technology can jump to content",
    category="web-dev",
    impact="medium",
    resources=[WSG_BASE + "#provide-code-based-way-finding"],
)


def _has_nav(page: PageSnapshot) -> bool:
    landmarks = page.document.landmarks
    return "nav" in landmarks or "navigation" in landmarks


@NAVIGATION.implementation
def check_navigation(page: PageSnapshot) -> RuleOutcome:
    doc = page.document
    has_nav = _has_nav(page)
    has_breadcrumb = doc.has_breadcrumb_nav or any(
        sd.type == BREADCRUMB_SCHEMA_TYPE for sd in doc.structured_data
    )

    issues = []
    if not has_nav:
        issues.append('No navigation landmark (<nav> element or role="navigation") detected')
    if not has_breadcrumb:
        issues.append("No breadcrumb navigation detected; consider breadcrumbs for hierarchical content")

    if not issues:
        return NAVIGATION.outcome("pass", "Navigation landmarks and breadcrumb navigation are present.")

    return NAVIGATION.outcome(
        "fail" if not has_nav else "warn",
        f"{len(issues)} navigation structure issue(s) detected.",
        details="; ".join(issues),
        recommendation=(
            'Mark navigation sections with <nav> (or role="navigation"). For multi-level content add '
            'breadcrumbs with aria-label="breadcrumb" or Schema.org BreadcrumbList structured data.'
        ),
    )


@ACCESSIBILITY_AIDS.implementation
def check_accessibility_aids(page: PageSnapshot) -> RuleOutcome:
    doc = page.document
    has_nav = _has_nav(page)
    has_main = "main" in doc.landmarks

    if not has_nav and not has_main and not doc.has_skip_link:
        return ACCESSIBILITY_AIDS.outcome(
            "not-applicable", "No navigation landmarks detected, way-finding check not applicable.", score=0
        )

    issues = []
    if not has_main:
        issues.append("No <main> landmark found; primary content is not programmatically identified")
    if has_nav and not doc.has_skip_link:
        issues.append("Navigation present but no skip link lets keyboard users bypass it")

    if not issues:
        return ACCESSIBILITY_AIDS.outcome("pass", "Page has a skip navigation link and a <main> landmark.")

    return ACCESSIBILITY_AIDS.outcome(
        "fail" if has_nav and not doc.has_skip_link else "warn",
        f"{len(issues)} way-finding issue(s) found.",
        details="; ".join(issues),
        recommendation=(
            'Add a "Skip to main content" link as the first focusable element and wrap the primary '
            "content in a <main> element."
        ),
    )


DEFINITIONS = [NAVIGATION, ACCESSIBILITY_AIDS]
