from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class ShortenResponse(BaseModel):
    short_url: str
    short_code: str
    original_url: str
    expires_at: Optional[datetime] = None


class GenerateResponse(BaseModel):
    short_code: str


class StatsResponse(BaseModel):
    id: int
    original_url: str
    short_code: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    click_count: int = 0
    is_active: bool = True

    model_config = {"from_attributes": True}
