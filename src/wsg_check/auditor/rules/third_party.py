# src/wsg_check/auditor/rules/third_party.py
from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.model import PageSnapshot, RuleOutcome
from wsg_check.crawler.utils.url_utils import UrlUtils
from wsg_check.parser.services.resource_analyzer_service import classify_resources

# More third-party scripts than this fails
SCRIPT_WARN_THRESHOLD = 5

# More third-party resources of any type than this fails
DEPENDENCY_WARN_THRESHOLD = 9

THIRD_PARTY = RuleDefinition(
    guideline_id="3.6",
    name="Third-Party Assessment",
    success_criterion="Third-party scripts and resources should be kept to a minimum",
    category="web-dev",
    impact="high",
    resources=["https://www.w3.org/TR/web-sustainability-guidelines/#third-party-assessment"],
)

DEPENDENCY_COUNT = RuleDefinition(
    guideline_id="3.16",
    name="Reducing Third-Party Dependencies",
    success_criterion="Pages should minimise third-party resource dependencies",
    category="web-dev",
    impact="high",
    resources=["https://www.w3.org/TR/web-sustainability-guidelines/#reducing-third-party-code"],
)


@THIRD_PARTY.implementation
def check_third_party(page: PageSnapshot) -> RuleOutcome:
    resources = page.document.resources
    third_party = [r for r in resources if UrlUtils.is_third_party(r.url, page.url)]
    scripts = [r for r in third_party if r.type == "script"]

    summary = f"({len(third_party)} third-party resource(s) total)"
    if not scripts:
        return THIRD_PARTY.outcome("pass", f"No third-party scripts found {summary}.")

    message = f"{len(scripts)} third-party script(s) detected {summary}."
    details = ", ".join(s.url for s in scripts)

    if len(scripts) > SCRIPT_WARN_THRESHOLD:
        return THIRD_PARTY.outcome(
            "fail", message, details=details,
            recommendation=(
                "Remove analytics, social widgets and advertising scripts that are not essential, "
                "and self-host fonts and icons instead of loading them from third-party CDNs."
            ),
        )
    return THIRD_PARTY.outcome(
        "warn", message, details=details,
        recommendation=(
            "Review each third-party script and remove those that are not essential. Load embeds "
            "such as videos or chat widgets on interaction."
        ),
    )



@DEPENDENCY_COUNT.implementation
def check_dependency_count(page: PageSnapshot) -> RuleOutcome:
    classified = classify_resources(page.document.resources, page.fetch_outcome.url or page.url)
    external = [r for r in classified if r.is_third_party]
    third_party = len(external)
    if third_party == 0:
        return DEPENDENCY_COUNT.outcome("pass", "No third-party resource dependencies detected.")

    scripts = sum(1 for r in external if r.type == "script")
    stylesheets = sum(1 for r in external if r.type == "stylesheet")
    others = third_party - scripts - stylesheets

    breakdown = []
    if scripts:
        breakdown.append(f"{scripts} script(s)")
    if stylesheets:
        breakdown.append(f"{stylesheets} stylesheet(s)")
    if others:
        breakdown.append(f"{others} other resource(s)")
    message = f"{third_party} third-party resource(s) detected ({', '.join(breakdown)})."

    if third_party > DEPENDENCY_WARN_THRESHOLD:
        return DEPENDENCY_COUNT.outcome(
            "fail", message,
            recommendation=(
                "Audit every external dependency. Self-host what you keep and drop libraries whose "
                "job the platform already does."
            ),
        )
    return DEPENDENCY_COUNT.outcome(
        "warn", message,
        recommendation="Review the remaining third-party resources and self-host or remove the non-essential ones.",
    )


DEFINITIONS = [THIRD_PARTY, DEPENDENCY_COUNT]
