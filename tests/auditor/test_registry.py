# tests/auditor/test_registry.py
from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.registry import RuleRegistry, select_rules

EXPECTED_IDS = {
    "2.7", "2.8", "2.11", "2.16", "2.17", "2.19",
    "3.1", "3.3", "3.4", "3.6", "3.7", "3.8", "3.9", "3.12", "3.13", "3.15", "3.16", "3.19",
    "4.1", "4.2", "4.3", "4.4", "4.10",
}


def test_discover_finds_all_builtin_rules():
    RuleRegistry.reset()
    definitions = RuleRegistry.discover()

    assert {d.guideline_id for d in definitions} == EXPECTED_IDS
    # 3.12 covers both form validation and preference media queries
    assert len(definitions) == len(EXPECTED_IDS) + 1
    assert [d.name for d in definitions if d.guideline_id == "3.12"] == ["Validate Forms", "Preference Media Queries"]
    assert all(isinstance(d, RuleDefinition) and d.is_bound for d in definitions)


def test_discover_is_stable():
    assert RuleRegistry.get_all_guideline_ids() == RuleRegistry.get_all_guideline_ids()


def test_no_rules_in_business_category():
    assert not [d for d in RuleRegistry.discover() if d.category == "business"]


def _defs():
    return [
        RuleDefinition("1", "one", "", category="ux", impact="low"),
        RuleDefinition("2", "two", "", category="web-dev", impact="low"),
        RuleDefinition("3", "three", "", category="hosting", impact="low"),
        RuleDefinition("4", "four", "", category="web-dev", impact="low"),
    ]


def test_select_rules_without_filters_keeps_everything_in_order():
    assert [d.guideline_id for d in select_rules(_defs())] == ["1", "2", "3", "4"]


def test_select_rules_by_category():
    selected = select_rules(_defs(), categories=["web-dev", "hosting"])
    assert [d.guideline_id for d in selected] == ["2", "3", "4"]


def test_select_rules_by_guideline_and_exclusion():
    assert [d.guideline_id for d in select_rules(_defs(), guidelines=["4", "1"])] == ["1", "4"]
    assert [d.guideline_id for d in select_rules(_defs(), exclude_guidelines=["2"])] == ["1", "3", "4"]
    assert select_rules(_defs(), categories=["business"]) == []


def test_select_rules_does_not_mutate_input():
    defs = _defs()
    select_rules(defs, categories=["ux"])
    assert len(defs) == 4
