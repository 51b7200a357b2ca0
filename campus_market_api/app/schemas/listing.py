"""
Pydantic models for listings (items offered for sale).
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .common import CampusLocation, Category


ListingStatus = Literal["available", "reserved", "sold"]
ListingStatusFilter = Literal["available", "reserved", "sold", "all"]


class ListingBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100, examples=["Engineering Physics Textbook"])
    description: str = Field(..., min_length=1, max_length=500)
    price: float = Field(..., ge=0, examples=[500])
    category: Category
    location: CampusLocation

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ListingCreate(ListingBase):
    """Schema for creating a listing.

    ``images`` holds public URLs returned by the upload endpoint.  The
    number of images is checked by the service against
    ``settings.max_listing_images``.
    """

    images: List[str] = Field(default_factory=list)


class ListingUpdate(BaseModel):
    """Schema for updating a listing.

    All fields are optional; only provided fields will be updated.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[Category] = None
    location: Optional[CampusLocation] = None
    images: Optional[List[str]] = None
    status: Optional[ListingStatus] = None


class ListingRead(ListingBase):
    id: str
    seller_id: str
    images: List[str]
    status: ListingStatus
    created_at: str
    updated_at: str

    model_config = {
        "from_attributes": True,
    }
