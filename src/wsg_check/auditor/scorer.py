# src/wsg_check/auditor/scorer.py
import math
from typing import Dict, Iterable, List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from wsg_check.auditor.model import (
    KNOWN_CATEGORIES,
    SCOREABLE_STATUSES,
    STATUS_FAIL,
    STATUS_NOT_APPLICABLE,
    STATUS_PASS,
    STATUS_WARN,
    CategoryScore,
    RuleOutcome,
)

IMPACT_WEIGHTS: Dict[str, int] = {"high": 3, "medium": 2, "low": 1}
DEFAULT_WEIGHT = 1

# Score reported when nothing could be scored
EMPTY_SCORE = 100


class ScoreSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_score: int
    category_scores: Tuple[CategoryScore, ...]


def impact_weight(impact: str) -> int:
    return IMPACT_WEIGHTS.get(impact, DEFAULT_WEIGHT)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _weighted_score(outcomes: Iterable[RuleOutcome]) -> int:
    total_weight = 0
    weighted_sum = 0
    for outcome in outcomes:
        if outcome.status not in SCOREABLE_STATUSES:
            continue
        weight = impact_weight(outcome.impact)
        total_weight += weight
        weighted_sum += outcome.score * weight
    if total_weight == 0:
        return EMPTY_SCORE
    return _round_half_up(weighted_sum / total_weight)


def calculate_overall_score(outcomes: Sequence[RuleOutcome]) -> int:
    """Impact-weighted mean of all pass/warn/fail outcomes; 100 when there are none."""
    return _weighted_score(outcomes)


def calculate_category_score(category: str, outcomes: Sequence[RuleOutcome]) -> CategoryScore:
    in_category = [o for o in outcomes if o.category == category]
    return CategoryScore(
        category=category,
        score=_weighted_score(in_category),
        total_checks=len(in_category),
        passed=sum(1 for o in in_category if o.status == STATUS_PASS),
        failed=sum(1 for o in in_category if o.status == STATUS_FAIL),
        warned=sum(1 for o in in_category if o.status == STATUS_WARN),
        not_applicable=sum(1 for o in in_category if o.status == STATUS_NOT_APPLICABLE),
        scored_checks=sum(1 for o in in_category if o.status in SCOREABLE_STATUSES),
    )


def score_outcomes(outcomes: Sequence[RuleOutcome]) -> ScoreSummary:
    """
    Aggregates rule outcomes into an overall score and one score per category.

    Every known category is reported, in a fixed order, even when no rule in
    it ran. Outcomes in other categories count towards the overall score only.
    Pure: the same outcomes always produce the same summary.
    """
    outcomes = list(outcomes)
    category_scores: List[CategoryScore] = [
        calculate_category_score(category, outcomes) for category in KNOWN_CATEGORIES
    ]
    return ScoreSummary(
        overall_score=calculate_overall_score(outcomes),
        category_scores=tuple(category_scores),
    )
