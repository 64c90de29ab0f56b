# src/wsg_check/auditor/rules/styles.py
import re
from typing import List

from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.model import PageSnapshot, RuleOutcome

WSG_BASE = "https://www.w3.org/TR/web-sustainability-guidelines/"

FONT_FAMILY_RE = re.compile(r"font-family\s*:\s*([^;}]+)", re.I)

GENERIC_FAMILIES = {"serif", "sans-serif", "monospace", "cursive", "fantasy", "system-ui"}
SYSTEM_FONTS = {
    "-apple-system", "blinkmacsystemfont", "segoe ui", "roboto", "helvetica neue",
    "arial", "helvetica", "georgia", "times new roman", "courier new",
}

PREFERENCE_FEATURES = ("prefers-color-scheme", "prefers-reduced-motion", "prefers-reduced-data")

FONT_FALLBACKS = RuleDefinition(
    guideline_id="2.16",
    name="Ensure Content Is Readable Without Custom Fonts",
    success_criterion="font-family declarations should include system font fallbacks and a generic family",
    category="ux",
    impact="low",
    resources=[WSG_BASE + "#ensure-content-is-readable-without-custom-fonts"],
)

PREFERENCE_QUERIES = RuleDefinition(
    guideline_id="3.12",
    name="Preference Media Queries",
    success_criterion="CSS should adapt to user preferences for colour scheme, motion and data use",
    category="web-dev",
    impact="medium",
    resources=[WSG_BASE + "#preference-media-queries"],
)


def font_family_declarations(styles) -> List[str]:
    return [m.group(1).strip() for css in styles for m in FONT_FAMILY_RE.finditer(css)]


def has_font_fallback(value: str) -> bool:
    """True when a font-family value names a generic family or a common system font."""
    for token in value.split(","):
        name = token.strip().strip("'\"").lower()
        if name in GENERIC_FAMILIES or name in SYSTEM_FONTS:
            return True
    return False


@FONT_FALLBACKS.implementation
def check_font_fallbacks(page: PageSnapshot) -> RuleOutcome:
    # External stylesheets are not fetched, only inline <style> blocks count
    declarations = font_family_declarations(page.document.inline_styles)
    if not declarations:
        return FONT_FALLBACKS.outcome(
            "not-applicable", "No font-family declarations detected in inline CSS.", score=0
        )

    without_fallback = [d for d in declarations if not has_font_fallback(d)]
    if not without_fallback:
        return FONT_FALLBACKS.outcome(
            "pass", f"All {len(declarations)} font-family declaration(s) include system font fallbacks."
        )
    return FONT_FALLBACKS.outcome(
        "warn",
        f"{len(without_fallback)} of {len(declarations)} font-family declaration(s) lack system font fallbacks.",
        details="Without fallback: " + "; ".join(without_fallback) + ". External stylesheets are not analysed.",
        recommendation=(
            "End every font-family with a generic family so text stays readable when the web font "
            'cannot load, e.g. font-family: "MyFont", -apple-system, "Segoe UI", sans-serif.'
        ),
    )


@PREFERENCE_QUERIES.implementation
def check_preference_queries(page: PageSnapshot) -> RuleOutcome:
    css = "\n".join(page.document.inline_styles)
    link_media = " ".join(link.media or "" for link in page.document.links)
    haystack = f"{css} {link_media}"

    found = [f for f in PREFERENCE_FEATURES if f in haystack]
    missing = [f for f in PREFERENCE_FEATURES if f not in found]

    if not missing:
        return PREFERENCE_QUERIES.outcome(
            "pass", "All three preference media queries detected (" + ", ".join(PREFERENCE_FEATURES) + ")."
        )

    details = f"Found: {', '.join(found)}. " if found else ""
    details += f"Missing: {', '.join(missing)}. Only inline CSS and <link media> are inspected."
    recommendation = (
        "Add @media (prefers-reduced-motion: reduce) and @media (prefers-reduced-data: reduce) "
        "rules so the page honours visitors' system settings."
    )
    if "prefers-color-scheme" in missing:
        recommendation = (
            "Offer a dark theme with @media (prefers-color-scheme: dark); it saves energy on OLED "
            "screens. " + recommendation
        )
    return PREFERENCE_QUERIES.outcome(
        "warn",
        f"{len(missing)} preference media query feature(s) not detected in inline CSS.",
        details=details,
        recommendation=recommendation,
    )


DEFINITIONS = [FONT_FALLBACKS, PREFERENCE_QUERIES]
