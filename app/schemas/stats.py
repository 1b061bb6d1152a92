from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Literal, Optional

class UserStats(BaseModel):
    total_filled: int = 0
    last_7_days: int = 0
    last_30_days: int = 0
    forms_posted: int = 0
    avg_rating: float = 0.0

class ActivityData(BaseModel):
    date: str  # yyyy-mm-dd, UTC calendar day
    count: int

class RecentActivity(BaseModel):
    id: UUID
    form_id: UUID
    form_title: str
    activity_type: Literal["completed", "posted"]
    rating: Optional[int] = None
    feedback: Optional[str] = None
    date: datetime
