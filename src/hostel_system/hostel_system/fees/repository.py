from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol, Sequence, Tuple

from ..core.enums import FeeStatus, FeeType
from .model import Fee, FeeOverview, FeeRow, MonthlyCollection


class FeeRepository(Protocol):
    def get_by_id(self, fee_id: int) -> Optional[Fee]:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        amount: Decimal,
        fee_type: FeeType,
        due_date: date,
        description: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def mark_paid(self, *, fee_id: int, paid_date: date, receipt_no: Optional[str]) -> bool:
        """Conditional update: only a fee that is not yet paid transitions."""

        raise NotImplementedError

    def mark_overdue(self, *, today: date) -> int:
        """PENDING fees with due_date < today become OVERDUE; returns the count."""

        raise NotImplementedError

    def list_fees(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[FeeStatus] = None,
        batch: Optional[str] = None,
        overdue_as_of: Optional[date] = None,
        limit: int,
        offset: int,
    ) -> Tuple[Sequence[FeeRow], int]:
        raise NotImplementedError

    def overview(self, *, start: Optional[date], end: Optional[date]) -> FeeOverview:
        raise NotImplementedError

    def monthly_collections(self, *, start: Optional[date], end: Optional[date]) -> Sequence[MonthlyCollection]:
        raise NotImplementedError

    def collected_between(self, start: date, end: date) -> Decimal:
        raise NotImplementedError
