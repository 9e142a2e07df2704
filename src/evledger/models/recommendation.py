"""AI recommendation model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

ERROR_TITLE = "Error"


class Recommendation(BaseModel):
    """A single piece of advice returned by the recommendation service."""

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    title: str = Field(min_length=1)
    """Short headline."""
    recommendation: str = Field(min_length=1)
    """The actionable advice."""
    rationale: str = Field(min_length=1)
    """Why the advice applies to this owner's data."""

    @property
    def is_error(self) -> bool:
        """Whether this is the synthetic record produced on failure."""
        return self.title == ERROR_TITLE

    @classmethod
    def error(cls, recommendation: str, rationale: str) -> Recommendation:
        return cls(
            title=ERROR_TITLE,
            recommendation=recommendation,
            rationale=rationale or "Please try again later.",
        )
