from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class KeySummary(BaseModel):
    """Restricted key view used by ``list_keys``."""
    key: str
    used: bool
    banned: bool
    expires_at: datetime
    created_at: datetime
    hwid: List[str] = []

    class Config:
        from_attributes = True


class KeyRecord(KeySummary):
    """Full key record used by ``check_key`` and ``get_keys``."""
    id: int
    api: str
    prefix: str
    device_limit: int
    system_info: Optional[str] = None
    first_used: Optional[datetime] = None
