from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import FeeStatus, FeeType


@dataclass(frozen=True)
class Fee:
    """Domain entity: a billable fee obligation of one student."""

    fee_id: int
    user_id: int
    amount: Decimal
    fee_type: FeeType
    due_date: date
    status: FeeStatus = FeeStatus.PENDING
    description: Optional[str] = None
    paid_date: Optional[date] = None
    receipt_no: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.status == FeeStatus.PAID


@dataclass(frozen=True)
class FeeRow:
    """Read-model for listings: fee joined with its student."""

    fee: Fee
    name: str
    email: str
    batch: Optional[str] = None
    room_no: Optional[str] = None


@dataclass(frozen=True)
class FeeOverview:
    total_fees: int = 0
    paid_fees: int = 0
    pending_fees: int = 0
    overdue_fees: int = 0
    total_collected: Decimal = Decimal("0.00")
    total_due: Decimal = Decimal("0.00")


@dataclass(frozen=True)
class MonthlyCollection:
    month: str
    count: int
    total: Decimal


@dataclass(frozen=True)
class FeeStats:
    overview: FeeOverview
    monthly: Sequence[MonthlyCollection] = field(default_factory=tuple)
