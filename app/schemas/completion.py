from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

class CompletionCreate(BaseModel):
    user_id: UUID
    rating: Optional[int] = Field(None, ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=2000)

class CompletionResponse(BaseModel):
    id: UUID
    form_id: UUID
    user_id: UUID
    rating: Optional[int]
    feedback: Optional[str]
    completed_at: datetime

    model_config = {"from_attributes": True}
