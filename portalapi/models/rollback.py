import enum

from sqlalchemy import BigInteger, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.schema import UniqueConstraint

from portalapi.models.base import BaseModel, BigIntPK


class RollbackTransactionType(str, enum.Enum):
    POINTS = "POINTS"
    EXPERIENCE = "EXPERIENCE"


class TransactionRollback(BaseModel):
    """Audit row for an administrative reversal; one per ledger entry"""

    __tablename__ = "transaction_rollbacks"
    __table_args__ = (
        UniqueConstraint(
            "transaction_id", "transaction_type", name="uq_rollback_transaction"
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    admin_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    period_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("periods.id"), nullable=False
    )

    student = relationship("User", foreign_keys=[student_id], lazy="joined")
    admin = relationship("User", foreign_keys=[admin_id], lazy="joined")
