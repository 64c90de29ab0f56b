# src/wsg_check/auditor/rules/metadata.py
from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.model import PageSnapshot, RuleOutcome

METADATA = RuleDefinition(
    guideline_id="3.4",
    name="Use Metadata Correctly",
    success_criterion="Pages should have a <title>, meta description, and Open Graph metadata",
    category="web-dev",
    impact="low",
    resources=["https://www.w3.org/TR/web-sustainability-guidelines/#use-metadata-correctly"],
)

STRUCTURED_DATA = RuleDefinition(
    guideline_id="3.13",
    name="Use Metadata, Microdata, and Schema.org",
    success_criterion="Pages should include Schema.org JSON-LD structured data to enable rich search results",
    category="web-dev",
    impact="low",
    resources=["https://www.w3.org/TR/web-sustainability-guidelines/#use-metadata-microdata-and-schema-org"],
)


@METADATA.implementation
def check_metadata(page: PageSnapshot) -> RuleOutcome:
    doc = page.document
    issues = []

    if not doc.title:
        issues.append("Missing <title> element")

    description = doc.find_meta(name="description")
    has_description = bool(description and (description.content or "").strip())
    if not has_description:
        issues.append('Missing <meta name="description">')

    if not doc.find_meta(prop="og:title") or not doc.find_meta(prop="og:description"):
        issues.append("Missing Open Graph tags (og:title and/or og:description)")

    if not issues:
        return METADATA.outcome(
            "pass", "Page metadata is complete (title, description, and Open Graph tags present)."
        )

    # Without a title or description search engines cannot build an accurate preview
    critical = not doc.title or not has_description
    return METADATA.outcome(
        "fail" if critical else "warn",
        f"{len(issues)} metadata issue(s) found.",
        details="; ".join(issues),
        recommendation=(
            'Add a concise <title> and a <meta name="description"> to every page, plus og:title '
            "and og:description so link previews match the page."
        ),
    )


@STRUCTURED_DATA.implementation
def check_structured_data(page: PageSnapshot) -> RuleOutcome:
    blocks = page.document.structured_data
    if not blocks:
        return STRUCTURED_DATA.outcome(
            "warn",
            "No JSON-LD structured data found.",
            recommendation='Add Schema.org structured data in a <script type="application/ld+json"> block.',
        )
    types = ", ".join(b.type for b in blocks)
    return STRUCTURED_DATA.outcome("pass", f"Found {len(blocks)} JSON-LD structured data block(s): {types}.")


DEFINITIONS = [METADATA, STRUCTURED_DATA]
