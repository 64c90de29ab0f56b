# tests/auditor/test_engine.py
import asyncio
import threading
import time

import pytest
from pydantic import ValidationError

from wsg_check.auditor.core import RuleDefinition
from wsg_check.auditor.engine import RuleEngine, fault_to_outcome, run_rules
from wsg_check.core.errors import RuleExecutionFault


def _outcome_rule(make_outcome, guideline_id, status="pass", delay=0.0):
    async def rule(page):
        await asyncio.sleep(delay)
        return make_outcome(status=status, guideline_id=guideline_id)
    return rule


async def test_one_outcome_per_rule_in_registration_order(make_page, make_outcome):
    # Later rules finish first; order must still follow registration
    rules = [
        _outcome_rule(make_outcome, "r0", delay=0.03),
        _outcome_rule(make_outcome, "r1", delay=0.02),
        _outcome_rule(make_outcome, "r2", delay=0.0),
    ]
    outcomes = await run_rules(rules, make_page())
    assert [o.guideline_id for o in outcomes] == ["r0", "r1", "r2"]


async def test_sync_and_async_rules_run_side_by_side(make_page, make_outcome):
    def sync_rule(page):
        return make_outcome(guideline_id="sync")

    outcomes = await run_rules([sync_rule, _outcome_rule(make_outcome, "async")], make_page())
    assert [o.guideline_id for o in outcomes] == ["sync", "async"]


async def test_sync_rules_run_off_the_event_loop(make_page, make_outcome):
    loop_thread = threading.get_ident()
    seen = []

    def sync_rule(page):
        seen.append(threading.get_ident())
        return make_outcome()

    await run_rules([sync_rule], make_page())
    assert seen and seen[0] != loop_thread


async def test_sync_raise_and_async_reject_give_identical_fallbacks(make_page):
    def sync_rule(page):
        raise ValueError("boom")

    async def async_rule(page):
        raise ValueError("boom")

    sync_outcomes = await run_rules([sync_rule], make_page())
    async_outcomes = await run_rules([async_rule], make_page())

    assert sync_outcomes == async_outcomes
    fallback = sync_outcomes[0]
    assert fallback.status == "fail"
    assert fallback.score == 0
    assert fallback.impact == "high"
    assert fallback.category == "web-dev"
    assert fallback.message == "Check error: boom"
    assert fallback.guideline_id == "check-error-0"


async def test_failing_rule_does_not_affect_others(make_page, make_outcome):
    def broken(page):
        raise RuntimeError("kaput")

    rules = [_outcome_rule(make_outcome, "a"), broken, _outcome_rule(make_outcome, "c")]
    outcomes = await run_rules(rules, make_page())

    assert [o.guideline_id for o in outcomes] == ["a", "check-error-1", "c"]
    assert outcomes[0].status == "pass"
    assert outcomes[2].status == "pass"


async def test_rule_execution_fault_names_the_guideline(make_page):
    def rule(page):
        raise RuleExecutionFault("header table missing", guideline_id="4.2")

    outcomes = await run_rules([rule], make_page())
    assert outcomes[0].guideline_id == "4.2"
    assert outcomes[0].message == "Check error: header table missing"


async def test_non_outcome_return_is_a_fault(make_page):
    def rule(page):
        return {"status": "pass"}

    outcomes = await run_rules([rule], make_page())
    assert outcomes[0].status == "fail"
    assert outcomes[0].message.startswith("Check error:")


async def test_rule_timeout(make_page, make_outcome):
    async def slow(page):
        await asyncio.sleep(1)
        return make_outcome(guideline_id="slow")

    outcomes = await run_rules([slow, _outcome_rule(make_outcome, "fast")], make_page(), rule_timeout=0.05)

    assert outcomes[0].guideline_id == "check-error-0"
    assert "timed out" in outcomes[0].message
    assert outcomes[1].guideline_id == "fast"


async def test_progress_callback_reports_each_completion(make_page, make_outcome):
    calls = []
    rules = [_outcome_rule(make_outcome, f"r{i}") for i in range(3)]

    await run_rules(rules, make_page(), progress_callback=lambda done, total: calls.append((done, total)))

    assert calls == [(1, 3), (2, 3), (3, 3)]


async def test_empty_rule_list(make_page):
    assert await run_rules([], make_page()) == []


async def test_engine_runs_rule_definitions(make_page):
    definition = RuleDefinition("9.9", "Test Rule", "criterion", category="ux", impact="low")

    @definition.implementation
    async def check(page):
        return definition.outcome("warn", "half way")

    outcomes = await RuleEngine([definition]).run(make_page())

    assert outcomes[0].guideline_id == "9.9"
    assert outcomes[0].score == 50
    assert outcomes[0].category == "ux"


def test_fault_to_outcome_uses_exception_type_when_message_is_empty():
    outcome = fault_to_outcome(3, KeyError())
    assert outcome.guideline_id == "check-error-3"
    assert outcome.message == "Check error: KeyError"


async def test_slow_sync_rule_does_not_block_async_rules(make_page, make_outcome):
    def slow_sync(page):
        time.sleep(0.2)
        return make_outcome(guideline_id="slow")

    finished = []

    async def quick(page):
        finished.append(time.perf_counter())
        return make_outcome(guideline_id="quick")

    start = time.perf_counter()
    await run_rules([slow_sync, quick], make_page())
    assert finished[0] - start < 0.2


@pytest.mark.parametrize("status", ["pass", "info", "not-applicable"])
async def test_outcomes_pass_through_untouched(make_page, make_outcome, status):
    expected = make_outcome(status=status, guideline_id="x")

    def rule(page):
        return expected

    outcomes = await run_rules([rule], make_page())
    assert outcomes[0] is expected


async def test_rule_raising_cancelled_error_becomes_a_fault(make_page, make_outcome):
    async def cancelled(page):
        raise asyncio.CancelledError()

    def cancelled_sync(page):
        raise asyncio.CancelledError()

    rules = [cancelled, cancelled_sync, _outcome_rule(make_outcome, "ok")]
    outcomes = await run_rules(rules, make_page(), rule_timeout=1)

    assert [o.guideline_id for o in outcomes] == ["check-error-0", "check-error-1", "ok"]
    assert outcomes[0].message == "Check error: CancelledError"
    assert outcomes[1].status == "fail"


async def test_cancelling_the_run_still_cancels(make_page, make_outcome):
    started = asyncio.Event()

    async def slow(page):
        started.set()
        await asyncio.sleep(5)
        return make_outcome()

    task = asyncio.ensure_future(run_rules([slow], make_page()))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


async def test_rules_cannot_mutate_the_shared_snapshot(make_page, make_outcome, good_html):
    page = make_page(good_html, headers={"Content-Type": "text/html"})
    blocked = []

    def mutating(page):
        attempts = [
            lambda: setattr(page.document, "title", "MUTATED"),
            lambda: setattr(page.page_weight, "html_size", 999999),
            lambda: page.fetch_outcome.headers.__setitem__("x-injected", "1"),
            lambda: page.page_weight.by_type.__setitem__("image", 0),
            lambda: page.document.resources[0].attributes.__setitem__("href", "/evil.css"),
            lambda: setattr(page.document.headings[0], "text", "MUTATED"),
        ]
        for attempt in attempts:
            try:
                attempt()
            except (TypeError, AttributeError, ValidationError):
                blocked.append(True)
        return make_outcome(guideline_id="mutating")

    async def observing(page):
        await asyncio.sleep(0.05)
        unchanged = (
            page.document.title == "Example page"
            and page.page_weight.html_size == page.fetch_outcome.content_length
            and "x-injected" not in page.fetch_outcome.headers
            and page.page_weight.by_type["image"] == 2
            and page.document.resources[0].attributes["href"] == "/static/site.css"
            and page.document.headings[0].text == "Welcome"
        )
        return make_outcome(status="pass" if unchanged else "fail", guideline_id="observing")

    outcomes = await run_rules([mutating, observing], page)

    assert len(blocked) == 6
    assert outcomes[1].status == "pass"
