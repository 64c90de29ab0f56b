from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from wsg_check.auditor.model import (
    STATUS_FAIL,
    STATUS_SCORES,
    STATUS_WARN,
    PageSnapshot,
    RuleOutcome,
)

RuleResult = Union[RuleOutcome, Awaitable[RuleOutcome]]
Rule = Callable[[PageSnapshot], RuleResult]


class RuleDefinition:
    """
    Registry entry binding a guideline's metadata to the function that checks it.

    The implementation is attached with the `implementation` decorator:

        DEFINITION = RuleDefinition("3.4", "Use Metadata Correctly", ...)

        @DEFINITION.implementation
        def check_metadata(page: PageSnapshot) -> RuleOutcome:
            return DEFINITION.outcome("pass", "All metadata present.")

    A definition is itself a rule: calling it runs the implementation.
    """

    def __init__(
            self,
            guideline_id: str,
            name: str,
            success_criterion: str,
            category: str,
            impact: str,
            resources: Optional[Sequence[str]] = None,
            machine_testable: bool = True,
    ):
        self.guideline_id = guideline_id
        self.name = name
        self.success_criterion = success_criterion
        self.category = category
        self.impact = impact
        self.resources = tuple(resources or ())
        self.machine_testable = machine_testable
        self._implementation: Optional[Rule] = None

    def implementation(self, func: Rule) -> Rule:
        self._implementation = func
        func.definition = self
        return func

    @property
    def func(self) -> Optional[Rule]:
        return self._implementation

    @property
    def is_bound(self) -> bool:
        return self._implementation is not None

    def __call__(self, page: PageSnapshot) -> Any:
        if self._implementation is None:
            raise RuntimeError(f"Rule {self.guideline_id} has no implementation bound.")
        return self._implementation(page)

    def outcome(
            self,
            status: str,
            message: str,
            score: Optional[int] = None,
            details: Optional[str] = None,
            recommendation: Optional[str] = None,
    ) -> RuleOutcome:
        """
        Builds a RuleOutcome carrying this guideline's metadata.
        `score` defaults to the conventional value for the status; reference
        links are only attached to warn and fail outcomes.
        """
        return RuleOutcome(
            guideline_id=self.guideline_id,
            guideline_name=self.name,
            success_criterion=self.success_criterion,
            status=status,
            score=STATUS_SCORES.get(status, 0) if score is None else score,
            message=message,
            details=details,
            recommendation=recommendation,
            resources=self.resources if status in (STATUS_WARN, STATUS_FAIL) else (),
            impact=self.impact,
            category=self.category,
            machine_testable=self.machine_testable,
        )

    def __repr__(self) -> str:
        return f"<RuleDefinition {self.guideline_id} '{self.name}' ({self.category})>"
