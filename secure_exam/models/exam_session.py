# secure_exam/models/exam_session.py
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"


class ExamSessionCreate(BaseModel):
    hallTicketId: str = Field(..., min_length=1, description="Internal id of the hall ticket")


class ExamSessionProgress(BaseModel):
    """Fields a student client may update while sitting the exam."""
    answers: Optional[Dict[str, str]] = None
    currentQuestion: Optional[int] = Field(None, ge=1)
    timeRemaining: Optional[int] = Field(None, ge=0)
    status: Optional[Literal["in_progress", "completed", "submitted"]] = None


class ExamSubmit(BaseModel):
    answers: Optional[Dict[str, str]] = None
