"""
Pydantic models for need requests ("want ads").

A request is open for ``settings.request_ttl_days`` after creation;
``expires_soon`` is set on read when less than a day remains.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .common import CampusLocation, Category


NeedStatus = Literal["open", "matched", "closed"]
NeedStatusFilter = Literal["open", "matched", "closed", "all"]


class NeedRequestBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100, examples=["Used cycle for campus commute"])
    description: str = Field(..., min_length=1, max_length=500)
    max_budget: float = Field(..., ge=0, examples=[1000])
    category: Category
    preferred_location: CampusLocation

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class NeedRequestCreate(NeedRequestBase):
    pass


class NeedRequestUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    max_budget: Optional[float] = Field(None, ge=0)
    category: Optional[Category] = None
    preferred_location: Optional[CampusLocation] = None
    status: Optional[NeedStatus] = None


class NeedRequestRead(NeedRequestBase):
    id: str
    requester_id: str
    status: NeedStatus
    expires_at: str
    expires_soon: bool = False
    created_at: str
    updated_at: str

    model_config = {
        "from_attributes": True,
    }
