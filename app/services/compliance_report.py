from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.errors import ValidationFailedError
from app.models import EodReport
from app.schemas import AttendanceSummaryRead
from app.services.calendar_policy import WorkingDayCalendar, load_working_day_calendar, local_today
from app.services.employees import ensure_employee_exists
from app.settings import get_settings

logger = logging.getLogger("app.compliance_report")


@dataclass(frozen=True, slots=True)
class MissingReportSummary:
    start: date | None
    end: date | None
    count: int


def resolve_reporting_start(
    *,
    end: date,
    requested_start: date | None = None,
    hire_date: date | None = None,
    earliest_submission: date | None = None,
    lookback_days: int | None = None,
) -> date:
    """Latest of the known lower bounds, or a trailing lookback when none is known."""
    candidates = [value for value in (requested_start, hire_date, earliest_submission) if value is not None]
    if candidates:
        return max(candidates)

    if lookback_days is None:
        lookback_days = get_settings().missing_report_default_lookback_days
    return end - timedelta(days=lookback_days)


def count_missing(
    calendar: WorkingDayCalendar,
    *,
    start: date,
    end: date,
    submitted_days: Collection[date],
    today: date,
) -> int:
    # Today is still open for submission and never counts as missing.
    last_day = min(end, today - timedelta(days=1))
    if start > last_day:
        return 0
    return sum(1 for day in calendar.working_days(start, last_day) if day not in submitted_days)


def _submitted_days(db: Session, employee_id: int) -> set[date]:
    return set(
        db.scalars(
            select(EodReport.day_date).where(
                EodReport.employee_id == employee_id,
                EodReport.submitted_at.is_not(None),
            )
        ).all()
    )


def count_missing_reports(
    db: Session,
    *,
    employee_id: int,
    range_start: date | None = None,
    range_end: date | None = None,
    today: date | None = None,
) -> MissingReportSummary:
    if range_start is not None and range_end is not None and range_end < range_start:
        raise ValidationFailedError(code="INVALID_RANGE", message="end must be greater than or equal to start.")

    employee = ensure_employee_exists(db, employee_id)
    today = today or local_today()
    submitted_days = _submitted_days(db, employee_id)

    if employee.hire_date is None and not submitted_days:
        return MissingReportSummary(start=None, end=None, count=0)

    yesterday = today - timedelta(days=1)
    end = min(range_end, yesterday) if range_end is not None else yesterday
    start = resolve_reporting_start(
        end=end,
        requested_start=range_start,
        hire_date=employee.hire_date,
        earliest_submission=min(submitted_days) if submitted_days else None,
    )
    if start > end:
        return MissingReportSummary(start=start, end=end, count=0)

    calendar = load_working_day_calendar(db, employee_id=employee_id, start=start, end=end)
    count = count_missing(calendar, start=start, end=end, submitted_days=submitted_days, today=today)
    logger.info(
        "missing_reports_counted",
        extra={
            "employee_id": employee_id,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "count": count,
        },
    )
    return MissingReportSummary(start=start, end=end, count=count)


def get_attendance_summary(
    db: Session,
    *,
    employee_id: int,
    today: date | None = None,
) -> AttendanceSummaryRead:
    missing = count_missing_reports(db, employee_id=employee_id, today=today)
    total_reports = db.scalar(
        select(func.count(EodReport.id)).where(EodReport.employee_id == employee_id)
    )
    late_reports = db.scalar(
        select(func.count(EodReport.id)).where(
            EodReport.employee_id == employee_id,
            EodReport.is_late.is_(True),
        )
    )
    return AttendanceSummaryRead(
        employee_id=employee_id,
        missing_reports=missing.count,
        late_reports=int(late_reports or 0),
        total_reports=int(total_reports or 0),
        timeframe_start=missing.start,
        timeframe_end=missing.end,
    )
