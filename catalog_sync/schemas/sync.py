# File: catalog_sync/schemas/sync.py

from pydantic import BaseModel
from typing import List


class SyncResult(BaseModel):
    """Terminal outcome of a sync run as shown to the caller"""
    success: bool
    message: str
    progress: int = 0
    failures: List[str] = []
    warnings: List[str] = []
    created: int = 0
    updated: int = 0
    failed: int = 0
    delisted_processed: int = 0
