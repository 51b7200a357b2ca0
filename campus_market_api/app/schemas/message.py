"""
Pydantic schemas for chat messages exchanged within a match.
"""

from pydantic import BaseModel, Field, field_validator


MAX_MESSAGE_LENGTH = 2000


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message must not be empty")
        if len(v) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")
        return v


class MessageRead(BaseModel):
    id: str
    match_id: str
    sender_id: str
    content: str
    is_system_message: bool
    created_at: str

    model_config = {
        "from_attributes": True,
    }
