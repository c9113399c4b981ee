from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from portalapi.models.enrollment import EnrollmentStatus


class EnrollmentStudent(BaseModel):
    student_id: int = Field(..., gt=0)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: str = Field(..., min_length=1)
    product_codes: List[str] = Field(..., min_length=1, description='e.g. ["M", "S"]')

    @field_validator("product_codes")
    @classmethod
    def normalize_codes(cls, value: List[str]) -> List[str]:
        codes = sorted({code.strip().upper() for code in value if code.strip()})
        if not codes:
            raise ValueError("At least one product code is required")
        return codes


class EnrollmentBatchRequest(BaseModel):
    students: List[EnrollmentStudent] = Field(..., min_length=1)


class EnrollmentResult(BaseModel):
    """Outcome of a single upstream call"""

    success: bool
    message: str
    external_id: Optional[str] = None
    retryable: bool = False


class EnrollmentRegistration(BaseModel):
    id: int
    batch_id: str
    student_id: int
    product_codes: List[str]
    idempotency_key: str
    status: EnrollmentStatus
    attempts: int = 0
    message: Optional[str] = None
    external_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EnrollmentBatchResponse(BaseModel):
    batch_id: str
    total: int
    pending: int
    succeeded: int
    failed: int
    skipped: int
    items: List[EnrollmentRegistration]
