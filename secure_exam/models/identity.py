# secure_exam/models/identity.py
from typing import Optional

from pydantic import BaseModel, Field


class AdminLogin(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class HallTicketCheck(BaseModel):
    qrData: Optional[str] = None
    hallTicketId: Optional[str] = None
    rollNumber: str = ""


class BarcodeCheck(BaseModel):
    hallTicketId: str = Field(..., min_length=1)
    barcode: str = Field(..., min_length=1)


class DocumentCheck(BaseModel):
    image: str = Field(..., min_length=1)
    fileName: Optional[str] = None


class IdentityVerificationRequest(BaseModel):
    idCardImage: str = Field(..., min_length=1)
    selfieImage: str = Field(..., min_length=1)
    expectedName: str = Field(..., min_length=1)
    expectedIdNumber: Optional[str] = None
    hallTicketId: str = Field(..., min_length=1)
    fileName: Optional[str] = None


class StoreIdentityDocument(BaseModel):
    hallTicketId: str = Field(..., min_length=1)
    studentName: str = ""
    rollNumber: str = ""
    documentImage: str = Field(..., min_length=1)
    selfieImage: Optional[str] = None
