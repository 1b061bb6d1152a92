from pydantic import BaseModel, EmailStr, Field, field_validator
from uuid import UUID
from datetime import datetime

from app.schemas.stats import UserStats

class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

class UserLogin(BaseModel):
    username: str
    password: str

class UserResponse(BaseModel):
    id: UUID
    username: str
    email: str
    full_name: str
    created_at: datetime

    model_config = {"from_attributes": True}

class UserWithStats(UserResponse):
    stats: UserStats
