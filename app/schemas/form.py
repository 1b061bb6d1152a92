from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from enum import Enum
from typing import Optional


def _validate_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError("Form URL must start with http:// or https://")
    return v


def _clean_tags(v: list[str]) -> list[str]:
    cleaned: list[str] = []
    for tag in v:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class FormStatus(str, Enum):
    NEW = "new"
    POPULAR = "popular"
    COMPLETED = "completed"


class FormCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    url: str
    tags: list[str] = []
    estimated_time: int = Field(gt=0, description="Minutes")
    created_by: UUID

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _validate_url(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)


class FormUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    url: Optional[str] = None
    tags: Optional[list[str]] = None
    estimated_time: Optional[int] = Field(None, gt=0)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        return _validate_url(v) if v is not None else v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _clean_tags(v) if v is not None else v


class FormResponse(BaseModel):
    id: UUID
    title: str
    description: str
    url: str
    tags: list[str]
    created_by: UUID
    estimated_time: int
    created_at: datetime

    model_config = {"from_attributes": True}


class FormWithStats(FormResponse):
    rating: float = 0.0
    review_count: int = 0
    # Only populated when a viewer is known.
    is_completed: Optional[bool] = None
    status: Optional[FormStatus] = None
