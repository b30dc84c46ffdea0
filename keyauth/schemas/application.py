from datetime import datetime
from pydantic import BaseModel


class ApplicationResponse(BaseModel):
    """Response schema for an application with its live key count."""
    id: int
    name: str
    api_key: str
    created_by: str
    created_at: datetime
    key_count: int = 0

    class Config:
        from_attributes = True
