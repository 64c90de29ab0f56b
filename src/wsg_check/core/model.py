# src/wsg_check/core/model.py (Application Layer)
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from wsg_check.auditor.model import KNOWN_CATEGORIES

OUTPUT_FORMATS = ("json", "terminal", "markdown")


class CheckSettings(BaseModel):
    """Fully resolved settings for one check run."""
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds.")
    user_agent: Optional[str] = None
    follow_redirects: bool = True
    max_redirects: int = Field(default=10, ge=0)
    max_retries: int = Field(default=2, ge=0)
    retry_delay: float = Field(default=0.5, ge=0)
    ignore_robots: bool = False
    robots_timeout: float = Field(default=5.0, gt=0)
    categories: List[str] = Field(default_factory=lambda: list(KNOWN_CATEGORIES))
    guidelines: List[str] = Field(default_factory=list)
    exclude_guidelines: List[str] = Field(default_factory=list)
    rule_timeout: Optional[float] = Field(default=10.0, ge=0, description="Per-rule timeout; 0 or None disables it.")
    green_hosting_timeout: float = Field(default=5.0, gt=0)
    format: str = "terminal"
    output_path: Optional[str] = None
    fail_threshold: int = Field(default=0, ge=0, le=100)
    log_level: str = "WARNING"

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v: List[str]) -> List[str]:
        unknown = [c for c in v if c not in KNOWN_CATEGORIES]
        if unknown:
            raise ValueError(
                f"Unknown categor{'y' if len(unknown) == 1 else 'ies'}: {', '.join(unknown)}. "
                f"Expected any of {', '.join(KNOWN_CATEGORIES)}"
            )
        return v

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.lower()
        if v not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown format '{v}'. Expected one of {', '.join(OUTPUT_FORMATS)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return v.upper()
