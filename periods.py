from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Union

from records import Period


@dataclass(frozen=True)
class Window:
    """Inclusive calendar date range ``[start, end]``."""

    start: date
    end: date

    def contains(self, moment: Union[date, datetime]) -> bool:
        if isinstance(moment, datetime):
            moment = moment.date()
        return self.start <= moment <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def resolve_window(now: Union[date, datetime], period: Union[Period, str]) -> Window:
    """
    Computes the budget window containing ``now``.

    Weeks are Sunday-anchored (not ISO): the window starts on the most recent
    Sunday at or before ``now`` and spans seven days. Unknown period tags
    raise ``ValueError``.
    """
    period = Period(period)
    today = now.date() if isinstance(now, datetime) else now

    if period is Period.MONTHLY:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return Window(today.replace(day=1), today.replace(day=last_day))

    if period is Period.WEEKLY:
        # date.weekday() is Monday=0; shift so Sunday=0.
        days_since_sunday = (today.weekday() + 1) % 7
        start = today - timedelta(days=days_since_sunday)
        return Window(start, start + timedelta(days=6))

    return Window(date(today.year, 1, 1), date(today.year, 12, 31))
