"""Working-day policy shared by EOD submission, remote work and compliance reporting.

Every date that enters the system from a caller goes through
``parse_calendar_date`` so that a value like ``2024-06-03T23:30:00-02:00`` is
read as the UTC calendar day ``2024-06-04`` in every feature, and every
working-day decision goes through ``evaluate_working_day``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import InvalidDateError
from app.models import Holiday, Leave, LeaveStatus
from app.settings import get_holiday_region, get_settings

logger = logging.getLogger("app.calendar_policy")

SATURDAY = 5
SUNDAY = 6


@lru_cache
def attendance_timezone() -> ZoneInfo:
    raw_name = (get_settings().attendance_timezone or "").strip() or "UTC"
    try:
        return ZoneInfo(raw_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("attendance_timezone_invalid", extra={"attendance_timezone": raw_name})
        return ZoneInfo("UTC")


def normalize_utc(ts: datetime | None) -> datetime:
    if ts is None:
        return datetime.now(timezone.utc)

    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)

    return ts.astimezone(timezone.utc)


def local_today(now: datetime | None = None) -> date:
    return normalize_utc(now).astimezone(attendance_timezone()).date()


def parse_calendar_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return normalize_utc(value).date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDateError()

    raw = value.strip()
    if len(raw) == 10:
        try:
            return date.fromisoformat(raw)
        except ValueError as exc:
            raise InvalidDateError(f"Invalid date: {raw!r}.") from exc

    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidDateError(f"Invalid date: {raw!r}.") from exc
    return normalize_utc(parsed).date()


def iter_days(start: date, end: date) -> Iterator[date]:
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


@dataclass(frozen=True, slots=True)
class LeaveInterval:
    start_date: date
    end_date: date

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


def evaluate_working_day(
    day: date,
    holiday_dates: Iterable[date] | frozenset[date],
    leave_intervals: Iterable[LeaveInterval],
) -> bool:
    if is_weekend(day):
        return False
    if day in holiday_dates:
        return False
    if any(interval.covers(day) for interval in leave_intervals):
        return False
    return True


@dataclass(frozen=True, slots=True)
class WorkingDayCalendar:
    """Holiday and approved-leave snapshot for one employee over a date range."""

    employee_id: int
    holiday_dates: frozenset[date]
    leave_intervals: tuple[LeaveInterval, ...]

    def is_working_day(self, day: date | datetime | str) -> bool:
        return evaluate_working_day(parse_calendar_date(day), self.holiday_dates, self.leave_intervals)

    def working_days(self, start: date, end: date) -> list[date]:
        return [day for day in iter_days(start, end) if self.is_working_day(day)]


def load_working_day_calendar(
    db: Session,
    *,
    employee_id: int,
    start: date,
    end: date,
    region: str | None = None,
) -> WorkingDayCalendar:
    resolved_region = (region or get_holiday_region()).upper()
    holiday_dates = db.scalars(
        select(Holiday.day_date).where(
            Holiday.region == resolved_region,
            Holiday.day_date >= start,
            Holiday.day_date <= end,
        )
    ).all()
    leave_rows = db.execute(
        select(Leave.start_date, Leave.end_date).where(
            Leave.employee_id == employee_id,
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date <= end,
            Leave.end_date >= start,
        )
    ).all()
    return WorkingDayCalendar(
        employee_id=employee_id,
        holiday_dates=frozenset(holiday_dates),
        leave_intervals=tuple(LeaveInterval(start_date=row[0], end_date=row[1]) for row in leave_rows),
    )


def is_working_day(db: Session, *, employee_id: int, day: date | datetime | str) -> bool:
    target = parse_calendar_date(day)
    calendar = load_working_day_calendar(db, employee_id=employee_id, start=target, end=target)
    return calendar.is_working_day(target)
