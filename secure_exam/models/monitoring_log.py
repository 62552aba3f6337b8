# secure_exam/models/monitoring_log.py
from typing import Any, Dict

from pydantic import BaseModel, Field


class MonitoringLogCreate(BaseModel):
    """
    Collection: "monitoring_logs"
    Low-value telemetry such as face-detected pings and snapshot markers.
    """
    sessionId: str = Field(..., min_length=1)
    eventType: str = Field(..., min_length=1)
    eventData: Dict[str, Any] = Field(default_factory=dict)
