# src/wsg_check/auditor/engine.py
import asyncio
import inspect
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from wsg_check.auditor.core import Rule, RuleDefinition
from wsg_check.auditor.model import STATUS_FAIL, PageSnapshot, RuleOutcome
from wsg_check.core.errors import RuleExecutionFault

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
RuleInvocation = Tuple[Optional[RuleOutcome], Optional[BaseException]]


def fault_to_outcome(index: int, fault: BaseException) -> RuleOutcome:
    """
    The single translation from a rule failure to a failed outcome.
    Used for exceptions, rejected coroutines, timeouts and invalid return values alike.
    """
    guideline_id = fault.guideline_id if isinstance(fault, RuleExecutionFault) else f"check-error-{index}"
    message = str(fault) or type(fault).__name__
    return RuleOutcome(
        guideline_id=guideline_id,
        guideline_name="Check Error",
        success_criterion="",
        status=STATUS_FAIL,
        score=0,
        message=f"Check error: {message}",
        impact="high",
        category="web-dev",
        machine_testable=True,
    )


def _target(rule: Rule) -> Rule:
    if isinstance(rule, RuleDefinition) and rule.func is not None:
        return rule.func
    return rule


def _rule_name(rule: Rule) -> str:
    if isinstance(rule, RuleDefinition):
        return rule.guideline_id
    return getattr(rule, "__name__", repr(rule))


async def _invoke(rule: Rule, page: PageSnapshot) -> RuleOutcome:
    target = _target(rule)
    if inspect.iscoroutinefunction(target):
        result = await target(page)
    else:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, target, page)
    if inspect.isawaitable(result):
        result = await result
    if not isinstance(result, RuleOutcome):
        raise TypeError(f"Rule {_rule_name(rule)} returned {type(result).__name__}, expected RuleOutcome")
    return result


async def _run_one(
        rule: Rule,
        page: PageSnapshot,
        rule_timeout: Optional[float]
) -> RuleInvocation:
    """
    Runs one rule and reports either its outcome or its fault. Only
    re-raises when the task running the rule is cancelled from outside.
    """
    try:
        if rule_timeout:
            outcome = await asyncio.wait_for(_invoke(rule, page), timeout=rule_timeout)
        else:
            outcome = await _invoke(rule, page)
        return outcome, None
    except asyncio.TimeoutError as e:
        if not rule_timeout:
            return None, e
        return None, TimeoutError(f"Rule {_rule_name(rule)} timed out after {rule_timeout}s")
    except asyncio.CancelledError as e:
        if _is_being_cancelled():
            raise
        return None, e
    except Exception as e:
        return None, e


def _is_being_cancelled() -> bool:
    """True when the running task itself was cancelled, not just a rule raising CancelledError."""
    task = asyncio.current_task()
    cancelling = getattr(task, "cancelling", None)
    # Task.cancelling() is 3.11+; older interpreters cannot tell the two apart
    return cancelling is not None and cancelling() > 0


async def run_rules(
        rules: Sequence[Rule],
        page: PageSnapshot,
        rule_timeout: Optional[float] = None,
        progress_callback: Optional[ProgressCallback] = None,
) -> List[RuleOutcome]:
    """
    Runs every rule against the page concurrently.

    Returns exactly one outcome per rule, in the order the rules were given.
    A rule that raises, times out or returns something other than a
    RuleOutcome contributes a failed 'Check error' outcome instead.
    """
    total = len(rules)
    done = 0

    async def tracked(index: int, rule: Rule) -> RuleInvocation:
        nonlocal done
        invocation = await _run_one(rule, page, rule_timeout)
        done += 1
        if progress_callback:
            try:
                progress_callback(done, total)
            except Exception as e:
                logger.warning("Progress callback failed: %s", e)
        return invocation

    invocations = await asyncio.gather(*(tracked(i, rule) for i, rule in enumerate(rules)))

    outcomes: List[RuleOutcome] = []
    for index, (outcome, fault) in enumerate(invocations):
        if fault is not None:
            logger.warning("Rule %s failed: %s", _rule_name(rules[index]), fault)
            outcomes.append(fault_to_outcome(index, fault))
        else:
            outcomes.append(outcome)
    return outcomes


class RuleEngine:
    """Executes a fixed set of rules against page snapshots."""

    def __init__(
            self,
            rules: Sequence[Rule],
            rule_timeout: Optional[float] = None,
            progress_callback: Optional[ProgressCallback] = None,
    ):
        self.rules = list(rules)
        self.rule_timeout = rule_timeout
        self.progress_callback = progress_callback

    async def run(self, page: PageSnapshot) -> List[RuleOutcome]:
        logger.debug("Running %d rules against %s", len(self.rules), page.url)
        return await run_rules(
            self.rules, page,
            rule_timeout=self.rule_timeout,
            progress_callback=self.progress_callback,
        )
