# src/wsg_check/core/errors.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome of an operation that reports failures as values."""
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying the error instead of raising it."""
    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]


class RunStage(str, Enum):
    """Stages of a single check run."""
    IDLE = "idle"
    FETCHING = "fetching"
    PARSING = "parsing"
    ANALYZING = "analyzing"
    SCORING = "scoring"
    DONE = "done"
    FAILED = "failed"


class OrchestratorError(Exception):
    """
    Base class for every failure that can end a check run.

    The controller records the stage in which the run failed on `stage`.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.stage: Optional[RunStage] = None

    def __str__(self) -> str:
        return self.message


class RetrievalErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    TOO_MANY_REDIRECTS = "too_many_redirects"
    BLOCKED = "blocked"
    PROTOCOL = "protocol"
    INVALID_URL = "invalid_url"


class RetrievalError(OrchestratorError):
    """The page could not be retrieved (network, timeout, redirects, robots.txt)."""

    RETRYABLE_KINDS = (RetrievalErrorKind.NETWORK, RetrievalErrorKind.TIMEOUT)

    def __init__(
            self,
            message: str,
            url: str,
            kind: RetrievalErrorKind = RetrievalErrorKind.NETWORK,
            cause: Optional[BaseException] = None
    ):
        super().__init__(message, cause)
        self.url = url
        self.kind = kind

    @property
    def is_retryable(self) -> bool:
        return self.kind in self.RETRYABLE_KINDS

    def __repr__(self) -> str:
        return f"<RetrievalError kind={self.kind.value} url={self.url!r}>"


class ParseError(OrchestratorError):
    """The page was retrieved but its content could not be understood."""


class RuleExecutionFault(Exception):
    """
    Raised by a rule to report an unexpected runtime problem.

    The execution engine converts it into a failed outcome that carries
    `guideline_id`; it never propagates out of the engine.
    """

    def __init__(self, message: str, guideline_id: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.guideline_id = guideline_id
        self.cause = cause


class ConfigError(Exception):
    """Invalid configuration value."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value
