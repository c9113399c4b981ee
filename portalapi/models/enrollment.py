import enum
from typing import Optional

from sqlalchemy import JSON, BigInteger, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from portalapi.models.base import BaseModel, BigIntPK


class EnrollmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class EnrollmentRegistration(BaseModel):
    """One student's registration attempt with the enrollment partner"""

    __tablename__ = "enrollment_registrations"
    __table_args__ = (Index("idx_enrollment_batch", "batch_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    batch_id: Mapped[str] = mapped_column(String(36), nullable=False)
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    product_codes: Mapped[list] = mapped_column(JSON, nullable=False)
    # Partner request body (firstName, lastName, email, phone, productIds)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    # Deterministic per (student, products); sent upstream as Idempotency-Key
    idempotency_key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), default=EnrollmentStatus.PENDING.value, nullable=False
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    external_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
