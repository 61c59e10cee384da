from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Marked after the cutoff."""

    def decide(self, *, now: datetime) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.LATE)
