# secure_exam/models/security_incident.py
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field


class SecurityIncidentCreate(BaseModel):
    """
    Collection: "security_incidents"
    Append-only policy event tied to an exam session.
    """
    sessionId: str = Field(..., min_length=1)
    incidentType: str = Field(..., min_length=1, description="e.g. multiple_faces, looking_away, fullscreen_exit")
    severity: Literal["low", "medium", "high", "critical"] = "medium"
    description: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
