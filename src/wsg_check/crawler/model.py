# src/wsg_check/crawler/model.py (Retrieval Layer)
import re
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from wsg_check.core.utils.frozen import FrozenStrDict


class RedirectHop(BaseModel):
    """A single followed redirect: the URL that answered, its status and Location."""
    model_config = ConfigDict(frozen=True)

    url: str
    status_code: int
    location: str


class FetchOutcome(BaseModel):
    """
    One completed HTTP retrieval.

    `content_length` is the transfer size taken from the Content-Length header
    (compressed size when Content-Encoding is present) and falls back to
    `body_bytes` when the header is absent, e.g. for chunked responses.
    `headers` is a read-only mapping with lower-cased names.
    """
    model_config = ConfigDict(frozen=True)

    url: str
    original_url: str
    status_code: int
    headers: FrozenStrDict = Field(default_factory=dict, validate_default=True)
    body: str = ""
    redirect_chain: Tuple[RedirectHop, ...] = ()
    from_cache: bool = False
    body_bytes: int = 0
    content_length: int = 0
    content_encoding: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class RobotsRule(BaseModel):
    """An Allow/Disallow directive of the user-agent group that applies to us."""
    model_config = ConfigDict(frozen=True)

    path: str
    allow: bool

    def matches(self, path: str) -> bool:
        if "*" not in self.path and not self.path.endswith("$"):
            return path.startswith(self.path)
        return _pattern_to_regex(self.path).match(path) is not None


class RobotsPolicy(BaseModel):
    """
    The resolved robots.txt rules for one origin.

    Matching uses the longest matching path pattern; an Allow wins a tie with
    a Disallow of the same length. A path that matches no rule is allowed.
    """
    model_config = ConfigDict(frozen=True)

    origin: str
    rules: Tuple[RobotsRule, ...] = ()

    @classmethod
    def allow_all(cls, origin: str) -> "RobotsPolicy":
        return cls(origin=origin)

    def match(self, path: str) -> Optional[RobotsRule]:
        best: Optional[RobotsRule] = None
        for rule in self.rules:
            if not rule.matches(path):
                continue
            if best is None or len(rule.path) > len(best.path):
                best = rule
            elif len(rule.path) == len(best.path) and rule.allow and not best.allow:
                best = rule
        return best

    def is_allowed(self, path: str) -> bool:
        rule = self.match(path or "/")
        return rule is None or rule.allow


def _pattern_to_regex(pattern: str) -> "re.Pattern[str]":
    anchored = pattern.endswith("$")
    if anchored:
        pattern = pattern[:-1]
    body = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(body + ("$" if anchored else ""))
