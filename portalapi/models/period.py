"""
Period registry.

A period is the administrative window that scopes ledger entries. At most one
row may carry status ACTIVE; the partial unique index makes a second ACTIVE
row a constraint violation instead of a silent race.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from portalapi.models.base import BaseModel, BigIntPK


class PeriodStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"


class Period(BaseModel):
    __tablename__ = "periods"
    __table_args__ = (
        Index(
            "uq_periods_single_active",
            "status",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=PeriodStatus.INACTIVE.value, nullable=False
    )

    def __repr__(self):
        return f"<Period(id={self.id}, name={self.name}, status={self.status})>"
