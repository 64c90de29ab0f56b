# src/wsg_check/core/services/report_service.py
import logging
from typing import List

from wsg_check.auditor.model import RunResult
from wsg_check.core.errors import ConfigError

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "pass": "PASS",
    "fail": "FAIL",
    "warn": "WARN",
    "info": "INFO",
    "not-applicable": "N/A",
}

CATEGORY_LABELS = {
    "ux": "UX Design",
    "web-dev": "Web Development",
    "hosting": "Hosting & Infrastructure",
    "business": "Business Strategy",
}


def score_grade(score: int) -> str:
    if score >= 90:
        return "A"
    if score >= 75:
        return "B"
    if score >= 50:
        return "C"
    if score >= 25:
        return "D"
    return "F"


def render_json(result: RunResult) -> str:
    return result.model_dump_json(indent=2)


def render_terminal(result: RunResult) -> str:
    """Plain-text summary: overall score, category table, each outcome and the footprint lines."""
    lines: List[str] = [
        f"WSG check report for {result.url}",
        f"Checked at {result.timestamp.isoformat()} in {result.duration_ms} ms",
        "",
        f"Overall score: {result.overall_score}/100 (grade {score_grade(result.overall_score)})",
        "",
        f"{'Category':<26} {'Score':>5}  {'Pass':>4} {'Warn':>4} {'Fail':>4} {'N/A':>4}",
    ]
    for cat in result.category_scores:
        label = CATEGORY_LABELS.get(cat.category, cat.category)
        lines.append(
            f"{label:<26} {cat.score:>5}  {cat.passed:>4} {cat.warned:>4} {cat.failed:>4} {cat.not_applicable:>4}"
        )

    lines.append("")
    for outcome in result.results:
        status = STATUS_LABELS.get(outcome.status, outcome.status.upper())
        lines.append(f"[{status:<4}] {outcome.guideline_id} {outcome.guideline_name}: {outcome.message}")
        if outcome.details and outcome.status in ("warn", "fail"):
            lines.append(f"       {outcome.details}")
        if outcome.recommendation and outcome.status in ("warn", "fail"):
            lines.append(f"       -> {outcome.recommendation}")

    lines.extend([
        "",
        f"CO2 per page view: {result.co2_per_page_view:.4f} g ({result.co2_model})",
        f"Green hosting: {'yes' if result.is_green_hosted else 'no'}",
    ])
    return "\n".join(lines)



def _md_cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def render_markdown(result: RunResult) -> str:
    """GitHub-flavoured Markdown, suitable for pull request comments."""
    score = result.overall_score
    lines: List[str] = [
        "# WSG Sustainability Report",
        "",
        f"**URL:** {result.url}  ",
        f"**Date:** {result.timestamp.isoformat()}  ",
        f"**Duration:** {result.duration_ms} ms",
        "",
        f"## Overall Score: {score} / 100 (Grade {score_grade(score)})",
        "",
        "## Category Scores",
        "",
        "| Category | Score | Passed | Failed | Warned | N/A |",
        "|----------|------:|-------:|-------:|-------:|----:|",
    ]
    for cat in result.category_scores:
        label = CATEGORY_LABELS.get(cat.category, cat.category)
        lines.append(
            f"| {label} | {cat.score} | {cat.passed} | {cat.failed} | {cat.warned} | {cat.not_applicable} |"
        )

    lines.extend(["", "## Recommendations", ""])
    to_fix = [o for o in result.results if o.status in ("warn", "fail") and o.recommendation]
    if not to_fix:
        lines.append("_No recommendations._")
    for i, outcome in enumerate(to_fix, 1):
        lines.append(
            f"{i}. **{outcome.guideline_id} {_md_cell(outcome.guideline_name)}** "
            f"_({outcome.impact} impact, {outcome.status})_"
        )
        lines.append(f"   {outcome.recommendation}")
        lines.extend(f"   - {link}" for link in outcome.resources)

    lines.extend([
        "",
        "## Check Results",
        "",
        "| ID | Guideline | Status | Score | Impact | Message |",
        "|----|-----------|--------|------:|--------|---------|",
    ])
    for outcome in result.results:
        status = STATUS_LABELS.get(outcome.status, outcome.status.upper())
        lines.append(
            f"| {outcome.guideline_id} | {_md_cell(outcome.guideline_name)} | {status} | {outcome.score} "
            f"| {outcome.impact} | {_md_cell(outcome.message)} |"
        )

    lines.extend([
        "",
        "## Footprint",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| CO2 per page view | {result.co2_per_page_view:.4f} g |",
        f"| CO2 model | {result.co2_model} |",
        f"| Green hosting | {'yes' if result.is_green_hosted else 'no'} |",
        "",
    ])
    return "\n".join(lines)


RENDERERS = {
    "json": render_json,
    "terminal": render_terminal,
    "markdown": render_markdown,
}


def render_report(result: RunResult, fmt: str = "terminal") -> str:
    renderer = RENDERERS.get((fmt or "").lower())
    if renderer is None:
        raise ConfigError(f"Unknown report format '{fmt}'", field="format", value=fmt)
    return renderer(result)
