from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..common.datetime_utils import parse_optional_date
from ..common.pagination import Page, PageRequest
from ..common.validators import optional_str, require_choice, require_int, require_positive_amount
from ..core.enums import FeeStatus, FeeType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.identity import Identity, require_admin, require_self_or_admin
from ..users.repository import UserRepository
from .model import Fee, FeeRow, FeeStats
from .repository import FeeRepository

logger = logging.getLogger(__name__)


class FeeService:
    """Fee ledger: PENDING -> PAID (terminal) or PENDING -> OVERDUE -> PAID."""

    def __init__(self, fees: FeeRepository, users: UserRepository):
        self._fees = fees
        self._users = users

    def create_fee(self, identity: Identity, *, user_id, amount, fee_type, due_date, description=None) -> Fee:
        require_admin(identity)
        user_id = require_int(user_id, "user ID")
        amount = require_positive_amount(amount)
        fee_type = require_choice(fee_type, FeeType, "fee type")
        due = parse_optional_date(due_date, "Due date")
        if due is None:
            raise ValidationError("Valid due date is required")
        description = optional_str(description)

        student = self._users.get_by_id(user_id)
        if not student or not student.is_student or not student.is_active:
            raise NotFoundError("Student not found")

        fee_id = self._fees.create(
            user_id=user_id,
            amount=amount,
            fee_type=fee_type,
            due_date=due,
            description=description,
        )
        logger.info("Fee %s created for user %s (%s %s)", fee_id, user_id, fee_type.value, amount)
        return Fee(
            fee_id=fee_id,
            user_id=user_id,
            amount=amount,
            fee_type=fee_type,
            due_date=due,
            description=description,
        )

    def mark_paid(self, identity: Identity, *, fee_id, paid_date=None, receipt_no=None) -> Fee:
        require_admin(identity)
        fee_id = require_int(fee_id, "fee ID")
        paid_on = parse_optional_date(paid_date, "Paid date") or date.today()
        receipt_no = optional_str(receipt_no)

        fee = self._fees.get_by_id(fee_id)
        if not fee:
            raise NotFoundError("Fee not found")
        if fee.is_paid:
            raise ConflictError("Fee is already paid")

        # Conditional update; a concurrent payment makes this a no-op.
        if not self._fees.mark_paid(fee_id=fee_id, paid_date=paid_on, receipt_no=receipt_no):
            raise ConflictError("Fee is already paid")

        logger.info("Fee %s marked paid on %s", fee_id, paid_on.isoformat())
        return self._fees.get_by_id(fee_id) or fee

    def sweep_overdue(self, identity: Identity, *, today: Optional[date] = None) -> int:
        """Move every pending fee past its due date to OVERDUE. Idempotent."""

        require_admin(identity)
        today = today or date.today()
        updated = self._fees.mark_overdue(today=today)
        logger.info("Overdue sweep as of %s updated %d fee(s)", today.isoformat(), updated)
        return updated

    def stats(self, identity: Identity, *, start=None, end=None) -> FeeStats:
        require_admin(identity)
        start_d = parse_optional_date(start, "startDate")
        end_d = parse_optional_date(end, "endDate")
        if start_d and end_d and start_d > end_d:
            raise ValidationError("startDate must not be after endDate")

        return FeeStats(
            overview=self._fees.overview(start=start_d, end=end_d),
            monthly=tuple(self._fees.monthly_collections(start=start_d, end=end_d)),
        )

    def list_for_user(
        self,
        identity: Identity,
        user_id,
        *,
        status: Optional[str] = None,
        page: PageRequest = PageRequest(),
    ) -> Page[FeeRow]:
        user_id = require_int(user_id, "user ID")
        require_self_or_admin(identity, user_id)
        status_filter = require_choice(status, FeeStatus, "status") if status else None
        rows, total = self._fees.list_fees(user_id=user_id, status=status_filter, limit=page.limit, offset=page.offset)
        return Page(items=rows, page=page.page, limit=page.limit, total=total)

    def list_all(
        self,
        identity: Identity,
        *,
        status: Optional[str] = None,
        batch: Optional[str] = None,
        page: PageRequest = PageRequest(),
    ) -> Page[FeeRow]:
        require_admin(identity)
        status_filter = require_choice(status, FeeStatus, "status") if status else None
        rows, total = self._fees.list_fees(
            status=status_filter,
            batch=optional_str(batch),
            limit=page.limit,
            offset=page.offset,
        )
        return Page(items=rows, page=page.page, limit=page.limit, total=total)

    def list_overdue(
        self,
        identity: Identity,
        *,
        today: Optional[date] = None,
        page: PageRequest = PageRequest(),
    ) -> Page[FeeRow]:
        require_admin(identity)
        rows, total = self._fees.list_fees(
            overdue_as_of=today or date.today(),
            limit=page.limit,
            offset=page.offset,
        )
        return Page(items=rows, page=page.page, limit=page.limit, total=total)
