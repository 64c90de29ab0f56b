# src/wsg_check/auditor/rules/semantics.py
from typing import List

from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.model import PageSnapshot, RuleOutcome
from wsg_check.parser.model import HeadingNode

WSG_BASE = "https://www.w3.org/TR/web-sustainability-guidelines/"

HTML5_DOCTYPE = "<!doctype html>"

SEMANTIC_HTML = RuleDefinition(
    guideline_id="3.7",
    name="Use HTML Elements Correctly",
    success_criterion="Use semantic HTML elements to structure content and reduce reliance on CSS/JS workarounds",
    category="web-dev",
    impact="medium",
    resources=[WSG_BASE + "#use-html-elements-correctly"],
)

HTML_VERSION = RuleDefinition(
    guideline_id="3.19",
    name="Use the Latest Stable Language Version",
    success_criterion="Pages should use the HTML5 doctype and avoid deprecated HTML elements",
    category="web-dev",
    impact="medium",
    resources=[WSG_BASE + "#use-the-latest-stable-language-version"],
)

ALT_TEXT = RuleDefinition(
    guideline_id="2.17",
    name="Provide Suitable Alternatives to Web Assets",
    success_criterion="All <img> elements must have an alt attribute",
    category="ux",
    impact="high",
    resources=[WSG_BASE + "#provide-suitable-alternatives"],
)


def find_heading_skips(headings: List[HeadingNode]) -> List[str]:
    """Heading level jumps of more than one step, e.g. ['h1 -> h3']."""
    skips = []
    for prev, curr in zip(headings, headings[1:]):
        if curr.level > prev.level + 1:
            skips.append(f"h{prev.level} -> h{curr.level}")
    return skips


@SEMANTIC_HTML.implementation
def check_semantic_html(page: PageSnapshot) -> RuleOutcome:
    doc = page.document
    issues = []

    if not doc.lang:
        issues.append("The <html> element is missing a lang attribute")

    if doc.headings:
        h1_count = sum(1 for h in doc.headings if h.level == 1)
        if h1_count == 0:
            issues.append("No <h1> heading found on the page")
        elif h1_count > 1:
            issues.append(f"{h1_count} <h1> elements found; a page should have exactly one")
        skips = find_heading_skips(doc.headings)
        if skips:
            issues.append(f"Heading levels are skipped: {', '.join(skips)}")

    if "main" not in doc.landmarks:
        issues.append("No <main> landmark element found")

    if doc.role_buttons:
        issues.append(
            f"{doc.role_buttons} custom implementation(s) of native HTML elements detected "
            '(e.g. <div role="button">)'
        )

    if not issues:
        return SEMANTIC_HTML.outcome(
            "pass", "Semantic HTML structure is correct (lang declared, heading hierarchy valid, native elements used)."
        )
    return SEMANTIC_HTML.outcome(
        "warn",
        f"{len(issues)} semantic HTML issue(s) found.",
        details="; ".join(issues),
        recommendation=(
            "Declare a lang attribute on <html>, use a single <h1> without skipped heading levels, "
            'wrap primary content in <main> and replace <div role="button"> with native elements.'
        ),
    )


@HTML_VERSION.implementation
def check_html_version(page: PageSnapshot) -> RuleOutcome:
    doc = page.document
    issues = []

    if not doc.doctype:
        issues.append("No DOCTYPE declaration found; add <!DOCTYPE html> to the document")
    elif doc.doctype.strip().lower() != HTML5_DOCTYPE:
        issues.append(f'Non-HTML5 DOCTYPE detected: "{doc.doctype}"')

    if doc.deprecated_elements:
        names = ", ".join(f"<{name}>" for name in doc.deprecated_elements)
        issues.append(f"Deprecated HTML element(s) found: {names}")

    if not issues:
        return HTML_VERSION.outcome("pass", "HTML5 DOCTYPE declared and no deprecated elements found.")
    return HTML_VERSION.outcome(
        "warn",
        f"{len(issues)} HTML version issue(s) found.",
        details="; ".join(issues),
        recommendation="Use <!DOCTYPE html> and replace deprecated elements such as <font> and <center> with CSS.",
    )


@ALT_TEXT.implementation
def check_alt_text(page: PageSnapshot) -> RuleOutcome:
    images = [r for r in page.document.resources_of_type("image") if "src" in r.attributes]
    if not images:
        return ALT_TEXT.outcome("not-applicable", "No images found, alt text check not applicable.", score=0)

    # alt="" marks a decorative image and counts as present
    missing = [img for img in images if "alt" not in img.attributes]
    if not missing:
        return ALT_TEXT.outcome("pass", f"All {len(images)} image(s) have an alt attribute.")

    return ALT_TEXT.outcome(
        "fail",
        f"{len(missing)} of {len(images)} image(s) are missing an alt attribute.",
        details=", ".join(img.url for img in missing),
        recommendation='Add an alt attribute to every <img>: descriptive text for content images, alt="" for decorative ones.',
    )


DEFINITIONS = [SEMANTIC_HTML, HTML_VERSION, ALT_TEXT]
