from pydantic import BaseModel
from datetime import datetime


class SyncResult(BaseModel):
    success: bool = True
    account_id: str
    event_count: int
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    synced_at: datetime
