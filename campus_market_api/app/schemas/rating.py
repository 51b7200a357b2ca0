"""
Pydantic schemas for exchange ratings.

After a match is completed each participant may rate the other once.
Only ``overall_rating`` is required; the detailed ratings fall back to
the overall value when omitted.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class RatingCreate(BaseModel):
    """Schema for rating the other party of a completed match."""

    match_id: str = Field(..., description="Identifier of the completed match")
    overall_rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    communication_rating: Optional[int] = Field(None, ge=1, le=5)
    accuracy_rating: Optional[int] = Field(None, ge=1, le=5)
    punctuality_rating: Optional[int] = Field(None, ge=1, le=5)
    review: Optional[str] = Field(None, description="Optional textual review")

    @field_validator("review")
    @classmethod
    def sanitize_review(cls, v: Optional[str]) -> Optional[str]:
        """Trim whitespace, drop empty reviews and enforce a maximum length."""
        if v is None:
            return None
        v = v.strip()
        if len(v) > 500:
            raise ValueError("Review must be 500 characters or fewer")
        return v or None


class RatingRead(BaseModel):
    id: str
    match_id: str
    rater_id: str
    rated_user_id: str
    overall_rating: int
    communication_rating: int
    accuracy_rating: int
    punctuality_rating: int
    review: Optional[str]
    is_flagged: bool
    created_at: str

    model_config = {
        "from_attributes": True,
    }
