import enum
from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portalapi.models.base import BaseModel, BigIntPK


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class StoreItem(BaseModel):
    __tablename__ = "store_items"
    __table_args__ = (
        CheckConstraint("points_required > 0", name="ck_store_item_cost_positive"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    points_required: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class ItemRequest(BaseModel):
    """Student's request for a store item; points leave the ledger on approval"""

    __tablename__ = "item_requests"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    tutor_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("store_items.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=RequestStatus.PENDING.value, nullable=False
    )
    points_spent: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[str] = mapped_column(Text, default="", nullable=False)
    period_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("periods.id"), nullable=False
    )
    points_transaction_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("points_transactions.id"), nullable=True
    )

    student = relationship("User", foreign_keys=[student_id], lazy="joined")
    item = relationship("StoreItem", lazy="joined")
