from datetime import datetime
from pydantic import BaseModel


class SupportResponse(BaseModel):
    """Response schema for a support grant."""
    id: int
    user_id: str
    added_by: str
    added_at: datetime

    class Config:
        from_attributes = True
