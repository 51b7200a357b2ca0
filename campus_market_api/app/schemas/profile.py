"""
Pydantic models for student profiles and authentication.

A profile is created on registration with a college email address.
The trust score and rating count are maintained by the rating service;
``college``, ``total_exchanges`` and ``badge`` are derived when the
profile is read.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


Badge = Literal["new", "trusted", "top-seller"]


class ProfileRegister(BaseModel):
    """Schema for registering a student.

    Only the presence of the fields is checked here; the college domain,
    password length and name length are validated by
    ``ProfileService.register`` so that the error messages can be shown
    to the user verbatim.
    """

    email: str = Field(..., examples=["asha@iitb.ac.in"])
    password: str = Field(..., examples=["campus123"])
    name: str = Field(..., examples=["Asha Verma"])


class ProfileLogin(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileUpdate(BaseModel):
    """Fields a student may change on their own profile."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=500)


class ProfileRead(BaseModel):
    """Schema for reading a profile from the API."""

    id: str
    email: str
    name: str
    avatar_url: Optional[str] = None
    college: str
    college_domain: str
    trust_score: float = 0
    total_ratings: int = 0
    total_exchanges: int = 0
    badge: Badge = "new"
    created_at: str

    model_config = {
        "from_attributes": True,
    }


class AuthResponse(Token):
    """Token plus the profile it was issued for."""

    profile: ProfileRead
