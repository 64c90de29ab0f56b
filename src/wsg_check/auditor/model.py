from datetime import datetime, timezone
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wsg_check.crawler.model import FetchOutcome
from wsg_check.parser.model import PageWeight, ParsedDocument

KNOWN_CATEGORIES: Tuple[str, ...] = ("ux", "web-dev", "hosting", "business")

STATUS_PASS = "pass"
STATUS_FAIL = "fail"
STATUS_WARN = "warn"
STATUS_INFO = "info"
STATUS_NOT_APPLICABLE = "not-applicable"

STATUSES = (STATUS_PASS, STATUS_FAIL, STATUS_WARN, STATUS_INFO, STATUS_NOT_APPLICABLE)
SCOREABLE_STATUSES = (STATUS_PASS, STATUS_WARN, STATUS_FAIL)

# Conventional score for each status; outcomes may carry any value in 0-100
STATUS_SCORES = {STATUS_PASS: 100, STATUS_WARN: 50, STATUS_FAIL: 0}


class RuleOutcome(BaseModel):
    """
    The verdict of a single rule for a single page.

    `impact` is normally high/medium/low; other values are accepted and
    weighted like 'low' by the scorer.
    """
    model_config = ConfigDict(frozen=True)

    guideline_id: str
    guideline_name: str
    success_criterion: str = ""
    status: str
    score: int = Field(ge=0, le=100)
    message: str
    details: Optional[str] = None
    recommendation: Optional[str] = None
    resources: Tuple[str, ...] = ()
    impact: str = "medium"
    category: str = "web-dev"
    machine_testable: bool = True

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in STATUSES:
            raise ValueError(f"Unknown status '{v}'. Expected one of {', '.join(STATUSES)}")
        return v


class CategoryScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    score: int
    total_checks: int = 0
    passed: int = 0
    failed: int = 0
    warned: int = 0
    not_applicable: int = 0
    scored_checks: int = 0


class PageSnapshot(BaseModel):
    """
    Everything a rule may look at. Built once per run and shared by all rules,
    so every nested model and mapping is read-only.

    `is_green_hosted` is None when no hosting lookup was made for the page.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    fetch_outcome: FetchOutcome
    document: ParsedDocument
    page_weight: PageWeight
    is_green_hosted: Optional[bool] = None


class RunResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: int = 0
    overall_score: int
    category_scores: Tuple[CategoryScore, ...] = ()
    results: Tuple[RuleOutcome, ...] = ()
    co2_per_page_view: float = 0.0
    co2_model: str = "swd-v4"
    is_green_hosted: bool = False
