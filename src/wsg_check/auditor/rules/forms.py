# src/wsg_check/auditor/rules/forms.py
from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.model import PageSnapshot, RuleOutcome

WSG_BASE = "https://www.w3.org/TR/web-sustainability-guidelines/"

FIELD_COUNT_WARN = 7
FIELD_COUNT_FAIL = 12

MINIMAL_FORMS = RuleDefinition(
    guideline_id="2.19",
    name="Support Native User Interface Features",
    success_criterion="Forms should be minimal, use autocomplete, and apply inputmode for mobile-friendly input",
    category="ux",
    impact="low",
    resources=[WSG_BASE + "#support-native-user-interface-features"],
)

FORM_VALIDATION = RuleDefinition(
    guideline_id="3.12",
    name="Validate Forms",
    success_criterion="Form inputs must have labels; use autocomplete to reduce user effort",
    category="web-dev",
    impact="medium",
    resources=[WSG_BASE + "#validate-forms"],
)


@MINIMAL_FORMS.implementation
def check_minimal_forms(page: PageSnapshot) -> RuleOutcome:
    inputs = page.document.form_inputs
    total = len(inputs)
    if not total:
        return MINIMAL_FORMS.outcome(
            "not-applicable", "No form inputs found, minimal forms check not applicable.", score=0
        )

    # The first problem found sets the status; later ones only add details
    status = "pass"
    issues = []

    if total > FIELD_COUNT_FAIL:
        status = "fail"
        issues.append(f"{total} form field(s) detected (budget: {FIELD_COUNT_FAIL})")
    elif total > FIELD_COUNT_WARN:
        status = "warn"
        issues.append(f"{total} form field(s) detected (consider reducing to {FIELD_COUNT_WARN} or fewer)")

    if not any(i.has_autocomplete for i in inputs):
        if status == "pass":
            status = "fail"
        issues.append(f"None of the {total} input(s) use the autocomplete attribute")

    if not any(i.has_inputmode for i in inputs):
        if status == "pass":
            status = "warn"
        issues.append(f"None of the {total} input(s) use the inputmode attribute")

    if not issues:
        return MINIMAL_FORMS.outcome(
            "pass", f"Form looks well-optimised: {total} field(s) with autocomplete and inputmode."
        )
    return MINIMAL_FORMS.outcome(
        status,
        "Form optimisation issues detected.",
        details="; ".join(issues),
        recommendation=(
            'Keep only the fields you need. Add autocomplete (e.g. autocomplete="email") so browsers '
            'can pre-fill fields, and inputmode (e.g. inputmode="tel") to bring up the right '
            "keyboard on mobile devices."
        ),
    )


@FORM_VALIDATION.implementation
def check_form_validation(page: PageSnapshot) -> RuleOutcome:
    inputs = page.document.form_inputs
    total = len(inputs)
    if not total:
        return FORM_VALIDATION.outcome("not-applicable", "No form inputs found.", score=0)

    unlabelled = [i for i in inputs if not i.has_label]
    issues = []
    if unlabelled:
        issues.append(f"{len(unlabelled)} of {total} input(s) lack an associated label")
    if not any(i.has_autocomplete for i in inputs):
        issues.append(f"None of the {total} input(s) use the autocomplete attribute")

    if not issues:
        return FORM_VALIDATION.outcome("pass", f"All {total} input(s) are labelled and use autocomplete.")

    return FORM_VALIDATION.outcome(
        "fail" if unlabelled else "warn",
        "Form validation issues found.",
        details="; ".join(issues),
        recommendation=(
            "Associate every input with a <label>, either with for/id or by nesting the input inside "
            "the label, and add autocomplete attributes so browsers and password managers can fill them in."
        ),
    )


DEFINITIONS = [MINIMAL_FORMS, FORM_VALIDATION]
