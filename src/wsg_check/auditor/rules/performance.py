# src/wsg_check/auditor/rules/performance.py
from urllib.parse import urlparse

from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.model import PageSnapshot, RuleOutcome

WSG_BASE = "https://www.w3.org/TR/web-sustainability-guidelines/"

HTML_WARN_BYTES = 100 * 1024
HTML_FAIL_BYTES = 500 * 1024
RESOURCE_WARN = 50
RESOURCE_FAIL = 100

BLANK_LINE_RATIO = 0.1
MIN_LINES_FOR_RATIO = 5
MAX_COMMENTS = 2

MODERN_IMAGE_FORMATS = (".webp", ".avif")

PAGE_WEIGHT = RuleDefinition(
    guideline_id="3.1",
    name="Set Performance Budgets",
    success_criterion="HTML document size and resource count should be within performance budgets",
    category="web-dev",
    impact="medium",
    resources=[WSG_BASE + "#performance-goals"],
)

RENDER_BLOCKING = RuleDefinition(
    guideline_id="3.8",
    name="Resolve Render Blocking Content",
    success_criterion='Scripts should use async or defer; images should use loading="lazy"',
    category="web-dev",
    impact="high",
    resources=[WSG_BASE + "#resolve-render-blocking-content"],
)

LAZY_LOADING = RuleDefinition(
    guideline_id="2.11",
    name="Avoid Bloated or Unnecessary Content",
    success_criterion='Images below the fold should use loading="lazy" to defer unnecessary downloads',
    category="ux",
    impact="medium",
    resources=[WSG_BASE + "#avoid-bloated-or-unnecessary-content"],
)

MINIFICATION = RuleDefinition(
    guideline_id="3.3",
    name="Minify Your HTML, CSS, and JavaScript",
    success_criterion="Served assets should be minified to reduce transfer size",
    category="web-dev",
    impact="medium",
    resources=[WSG_BASE + "#minify-your-html-css-and-javascript"],
)

OPTIMIZED_MEDIA = RuleDefinition(
    guideline_id="2.7",
    name="Avoid Unnecessary or an Overabundance of Assets",
    success_criterion="Images should use modern formats (WebP, AVIF) and declare explicit dimensions",
    category="ux",
    impact="high",
    resources=[WSG_BASE + "#avoid-unnecessary-or-an-overabundance-of-assets"],
)


def _is_lazy(attributes) -> bool:
    return (attributes.get("loading") or "").strip().lower() == "lazy"


@PAGE_WEIGHT.implementation
def check_page_weight(page: PageSnapshot) -> RuleOutcome:
    html_size = page.page_weight.html_size
    resource_count = page.page_weight.resource_count
    html_kb = round(html_size / 1024)

    status = "pass"
    issues = []

    if html_size > HTML_FAIL_BYTES:
        status = "fail"
        issues.append(f"HTML document is {html_kb} KB (budget: {HTML_FAIL_BYTES // 1024} KB)")
    elif html_size > HTML_WARN_BYTES:
        status = "warn"
        issues.append(f"HTML document is {html_kb} KB (budget: {HTML_WARN_BYTES // 1024} KB)")

    if resource_count > RESOURCE_FAIL:
        status = "fail"
        issues.append(f"{resource_count} external resources referenced (budget: {RESOURCE_FAIL})")
    elif resource_count > RESOURCE_WARN:
        if status == "pass":
            status = "warn"
        issues.append(f"{resource_count} external resources referenced (budget: {RESOURCE_WARN})")

    if not issues:
        return PAGE_WEIGHT.outcome(
            "pass", f"HTML is {html_kb} KB with {resource_count} external resource(s), within budget."
        )

    return PAGE_WEIGHT.outcome(
        status,
        "Page weight exceeds sustainability budget.",
        details="; ".join(issues),
        recommendation=(
            "Reduce HTML document size by removing unnecessary markup and inlined content. "
            "Bundle assets and remove unused scripts and stylesheets to cut external references."
        ),
    )


@RENDER_BLOCKING.implementation
def check_render_blocking(page: PageSnapshot) -> RuleOutcome:
    scripts = page.document.resources_of_type("script")
    images = page.document.resources_of_type("image")

    if not scripts and not images:
        return RENDER_BLOCKING.outcome("not-applicable", "No external scripts or images found.", score=0)

    # async/defer are boolean attributes, present with an empty value
    blocking = [s for s in scripts if "async" not in s.attributes and "defer" not in s.attributes]
    if blocking:
        return RENDER_BLOCKING.outcome(
            "fail",
            f"{len(blocking)} render-blocking script(s) found (missing async or defer).",
            details=", ".join(s.url for s in blocking),
            recommendation=(
                "Add async or defer to all non-critical <script> tags. Use defer for scripts "
                "that depend on the DOM and async for fully independent scripts."
            ),
        )

    non_lazy = [img for img in images if not _is_lazy(img.attributes)]
    if non_lazy:
        return RENDER_BLOCKING.outcome(
            "warn",
            f'{len(non_lazy)} of {len(images)} image(s) lack loading="lazy".',
            details=", ".join(img.url for img in non_lazy),
            recommendation='Add loading="lazy" to images below the fold so they load when they enter the viewport.',
        )

    return RENDER_BLOCKING.outcome(
        "pass", 'All scripts use async or defer, and all images use loading="lazy".'
    )


@LAZY_LOADING.implementation
def check_lazy_loading(page: PageSnapshot) -> RuleOutcome:
    # srcset candidates are reported separately and carry no loading attribute
    images = [r for r in page.document.resources_of_type("image") if "src" in r.attributes]
    total = len(images)

    if total == 0:
        return LAZY_LOADING.outcome(
            "not-applicable", "No images found, lazy-loading check not applicable.", score=0
        )
    if total == 1:
        return LAZY_LOADING.outcome(
            "pass", "Only one image found; eager loading is appropriate for a likely hero image."
        )

    lazy_count = sum(1 for img in images if _is_lazy(img.attributes))
    if lazy_count == 0:
        return LAZY_LOADING.outcome(
            "fail",
            f'{total} image(s) found but none use loading="lazy".',
            details="All images are downloaded on initial page load, even those that are off-screen.",
            recommendation='Add loading="lazy" to every <img> except the first (hero) image.',
        )

    if all(_is_lazy(img.attributes) for img in images[1:]):
        return LAZY_LOADING.outcome(
            "pass", f'{lazy_count} of {total} image(s) use loading="lazy" (first image may be eager).'
        )

    missing = total - lazy_count
    return LAZY_LOADING.outcome(
        "warn",
        f'{lazy_count} of {total} image(s) use loading="lazy"; {missing} may load eagerly when off-screen.',
        recommendation='Add loading="lazy" to all <img> elements that are not in the initial viewport.',
    )



@MINIFICATION.implementation
def check_minification(page: PageSnapshot) -> RuleOutcome:
    # Only the HTML response is inspected; external CSS and JS are never fetched
    lines = page.fetch_outcome.body.split("\n")
    blank = sum(1 for line in lines if not line.strip())
    blank_ratio = blank / len(lines)
    comments = page.document.comment_count

    issues = []
    if blank_ratio > BLANK_LINE_RATIO and len(lines) >= MIN_LINES_FOR_RATIO:
        issues.append(f"{round(blank_ratio * 100)}% of HTML lines are blank, suggesting unminified HTML")
    if comments > MAX_COMMENTS:
        issues.append(f"{comments} HTML comments found in page source (excluding conditional comments)")

    if not issues:
        return MINIFICATION.outcome(
            "pass", "HTML appears to be minified (low blank-line ratio, no excessive comments)."
        )
    return MINIFICATION.outcome(
        "warn",
        "HTML may not be minified.",
        details=". ".join(issues),
        recommendation=(
            "Minify HTML, CSS and JavaScript at build time, e.g. with html-minifier-terser, "
            "cssnano or esbuild."
        ),
    )


def _is_modern_format(url: str) -> bool:
    return urlparse(url).path.lower().endswith(MODERN_IMAGE_FORMATS)


@OPTIMIZED_MEDIA.implementation
def check_optimized_media(page: PageSnapshot) -> RuleOutcome:
    images = [r for r in page.document.resources_of_type("image") if "src" in r.attributes]
    if not images:
        return OPTIMIZED_MEDIA.outcome(
            "not-applicable", "No images found, optimized media check not applicable.", score=0
        )

    issues = []
    modern = [img for img in images if _is_modern_format(img.url)]
    if not modern:
        issues.append(f"None of the {len(images)} image(s) use a modern format (WebP or AVIF)")

    missing_dimensions = [
        img for img in images if "width" not in img.attributes or "height" not in img.attributes
    ]
    if missing_dimensions:
        issues.append(
            f"{len(missing_dimensions)} image(s) lack explicit width and height attributes; "
            "add these to prevent layout shifts (CLS)"
        )

    if not issues:
        return OPTIMIZED_MEDIA.outcome(
            "pass", f"All {len(images)} image(s) use modern formats and have explicit dimensions."
        )
    return OPTIMIZED_MEDIA.outcome(
        "fail" if not modern else "warn",
        "Image optimisation issues detected.",
        details=". ".join(issues),
        recommendation=(
            "Serve images as WebP or AVIF (with <picture> fallbacks where needed) and set width and "
            "height on every <img> to prevent layout shifts while images load."
        ),
    )


DEFINITIONS = [PAGE_WEIGHT, MINIFICATION, RENDER_BLOCKING, OPTIMIZED_MEDIA, LAZY_LOADING]
