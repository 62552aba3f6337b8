# secure_exam/models/hall_ticket.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class HallTicketCreate(BaseModel):
    """
    Collection: "hall_tickets"
    Admin-issued credential authorizing one student to sit one exam.
    """
    studentName: str = Field(..., min_length=1, description="Full name as on the ID card")
    studentEmail: str = Field(..., min_length=3)
    rollNumber: str = Field(..., min_length=1)
    examName: str = Field(..., min_length=1, description="Questions are matched on this name")
    examDate: datetime
    duration: int = Field(..., gt=0, description="Exam length in minutes")
    totalQuestions: int = Field(..., gt=0)
    studentIdBarcode: Optional[str] = Field(None, description="Barcode printed on the student ID card")


class HallTicketUpdate(BaseModel):
    studentName: Optional[str] = Field(None, min_length=1)
    studentEmail: Optional[str] = Field(None, min_length=3)
    examName: Optional[str] = Field(None, min_length=1)
    examDate: Optional[datetime] = None
    duration: Optional[int] = Field(None, gt=0)
    totalQuestions: Optional[int] = Field(None, gt=0)
    studentIdBarcode: Optional[str] = None
    isActive: Optional[bool] = None

    # omitted fields stay as they are; only the barcode may be cleared with null
    @field_validator(
        "studentName", "studentEmail", "examName", "examDate",
        "duration", "totalQuestions", "isActive", mode="before",
    )
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value
