from typing import Optional, Dict, Any
from pydantic import BaseModel


class DeduplicationScanResult(BaseModel):
    """Итог сканирования дедупликации"""
    total_properties: int
    clusters_found: int
    multiagency_properties: int
    exclusive_properties: int
    properties_updated: int
    shared_properties_created: int
    shared_properties_updated: int
    duration_ms: int
    timestamp: Optional[str] = None


class DeduplicationStatus(BaseModel):
    """Статус фонового сканирования"""
    is_running: bool
    last_run: Optional[str] = None
    last_result: Optional[Dict[str, Any]] = None
    last_error: Optional[str] = None
