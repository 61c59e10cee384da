from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time

from ..core.constants import LATE_CUTOFF
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on the time of day."""

    cutoff: time = LATE_CUTOFF

    def for_mark(self, *, now: datetime) -> AttendanceStrategy:
        # Whole seconds only: 08:00:00.4 is still on time.
        if now.time().replace(microsecond=0) > self.cutoff:
            return LateStrategy()
        return PresentStrategy()
