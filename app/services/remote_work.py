"""Remote-work window and quota management.

Quota checks and inserts for one employee are serialized by bumping
``employees.remote_work_revision`` inside the same transaction that counts and
writes the logs. The UPDATE takes a row lock on PostgreSQL and the database
write lock on SQLite, so two concurrent requests can never both observe spare
quota.
"""

from __future__ import annotations

import logging
from calendar import monthrange
from collections import Counter
from collections.abc import Iterable
from datetime import date, timedelta

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, PolicyConflictError, RecordConflictError, ValidationFailedError
from app.models import CompanySettings, Employee, RemoteWorkFrequency, RemoteWorkLog
from app.schemas import RemotePolicyRead, WindowState
from app.services.calendar_policy import local_today, parse_calendar_date
from app.services.company_settings import get_or_create_company_settings
from app.services.employees import ensure_employee_exists
from app.services.notifications import enqueue_remote_window_opened
from app.settings import get_remote_work_hard_cap, get_settings

logger = logging.getLogger("app.remote_work")

DEFAULT_WINDOW_SPAN_DAYS = 6
DUPLICATE_LOG_MESSAGE = "A remote work log already exists for this date."


def get_period_bounds(day: date, frequency: RemoteWorkFrequency) -> tuple[date, date]:
    """Quota period containing ``day``: Monday..Sunday or the calendar month."""
    if frequency == RemoteWorkFrequency.MONTHLY:
        return day.replace(day=1), day.replace(day=monthrange(day.year, day.month)[1])

    week_start = day - timedelta(days=day.weekday())
    return week_start, week_start + timedelta(days=6)


def effective_limit(configured_limit: int) -> int:
    return max(0, min(int(configured_limit), get_remote_work_hard_cap()))


def _window_state(settings_row: CompanySettings, *, today: date) -> WindowState:
    end_date = settings_row.remote_window_end
    return WindowState(
        is_open=bool(settings_row.remote_window_open),
        start_date=settings_row.remote_window_start,
        end_date=end_date,
        frequency=settings_row.remote_work_frequency,
        limit=effective_limit(settings_row.remote_work_limit),
        is_past_end=bool(settings_row.remote_window_open and end_date is not None and today > end_date),
    )


def get_window_state(db: Session, *, today: date | None = None) -> WindowState:
    settings_row = get_or_create_company_settings(db)
    return _window_state(settings_row, today=today or local_today())


def _notify_window_opened(db: Session, *, start_date: date, end_date: date) -> None:
    # Delivery problems must never undo the window change itself.
    try:
        enqueue_remote_window_opened(db, start_date=start_date, end_date=end_date)
    except Exception:
        db.rollback()
        logger.exception(
            "remote_window_notification_failed",
            extra={"window_start": start_date.isoformat(), "window_end": end_date.isoformat()},
        )


def open_window(
    db: Session,
    *,
    start_date: date | str,
    end_date: date | str | None = None,
    today: date | None = None,
) -> WindowState:
    start = parse_calendar_date(start_date)
    end = parse_calendar_date(end_date) if end_date is not None else start + timedelta(days=DEFAULT_WINDOW_SPAN_DAYS)

    if end < start:
        raise ValidationFailedError(
            code="INVALID_WINDOW_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )
    max_days = get_settings().remote_window_max_days
    if (end - start).days + 1 > max_days:
        raise ValidationFailedError(
            code="WINDOW_TOO_LONG",
            message=f"The remote work window can span at most {max_days} days.",
        )

    settings_row = get_or_create_company_settings(db)
    settings_row.remote_window_open = True
    settings_row.remote_window_start = start
    settings_row.remote_window_end = end
    db.commit()
    db.refresh(settings_row)

    logger.info(
        "remote_window_opened",
        extra={"window_start": start.isoformat(), "window_end": end.isoformat()},
    )
    _notify_window_opened(db, start_date=start, end_date=end)
    return _window_state(settings_row, today=today or local_today())


def close_window(db: Session, *, today: date | None = None) -> WindowState:
    settings_row = get_or_create_company_settings(db)
    settings_row.remote_window_open = False
    db.commit()
    db.refresh(settings_row)
    logger.info("remote_window_closed", extra={"settings_id": settings_row.id})
    return _window_state(settings_row, today=today or local_today())


def get_remote_policy(db: Session, *, today: date | None = None) -> RemotePolicyRead:
    settings_row = get_or_create_company_settings(db)
    return RemotePolicyRead(
        frequency=settings_row.remote_work_frequency,
        limit=settings_row.remote_work_limit,
        effective_limit=effective_limit(settings_row.remote_work_limit),
        window=_window_state(settings_row, today=today or local_today()),
        updated_at=settings_row.updated_at,
    )


def update_remote_policy(
    db: Session,
    *,
    frequency: RemoteWorkFrequency | None = None,
    limit: int | None = None,
) -> RemotePolicyRead:
    if limit is not None and limit < 0:
        raise ValidationFailedError(code="INVALID_REMOTE_LIMIT", message="limit must be zero or greater.")

    settings_row = get_or_create_company_settings(db)
    if frequency is not None:
        settings_row.remote_work_frequency = frequency
    if limit is not None:
        settings_row.remote_work_limit = limit
    db.commit()
    db.refresh(settings_row)

    logger.info(
        "remote_policy_updated",
        extra={
            "frequency": settings_row.remote_work_frequency.value,
            "limit": settings_row.remote_work_limit,
            "effective_limit": effective_limit(settings_row.remote_work_limit),
        },
    )
    return get_remote_policy(db)


def _require_open_window(settings_row: CompanySettings) -> tuple[date, date]:
    start = settings_row.remote_window_start
    end = settings_row.remote_window_end
    if not settings_row.remote_window_open or start is None or end is None:
        raise PolicyConflictError(
            code="REMOTE_WINDOW_CLOSED",
            message="The remote work selection window is closed.",
        )
    return start, end


def _ensure_inside_window(day: date, *, start: date, end: date) -> None:
    if not start <= day <= end:
        raise ValidationFailedError(
            code="DATE_OUTSIDE_WINDOW",
            message=f"{day.isoformat()} is outside the open window {start.isoformat()}..{end.isoformat()}.",
        )


def _lock_employee_remote_work(db: Session, employee_id: int) -> None:
    result = db.execute(
        update(Employee)
        .where(Employee.id == employee_id)
        .values(remote_work_revision=Employee.remote_work_revision + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError(code="EMPLOYEE_NOT_FOUND", message=f"Employee {employee_id} not found.")


def _count_logs_between(db: Session, *, employee_id: int, start: date, end: date) -> int:
    return int(
        db.scalar(
            select(func.count(RemoteWorkLog.id)).where(
                RemoteWorkLog.employee_id == employee_id,
                RemoteWorkLog.day_date >= start,
                RemoteWorkLog.day_date <= end,
            )
        )
        or 0
    )


def _quota_exceeded(limit: int, period_start: date, period_end: date) -> PolicyConflictError:
    return PolicyConflictError(
        code="REMOTE_QUOTA_REACHED",
        message=(
            f"Remote work limit of {limit} day(s) reached for "
            f"{period_start.isoformat()}..{period_end.isoformat()}."
        ),
    )


def log_remote_day(
    db: Session,
    *,
    employee_id: int,
    day: date | str,
    reason: str | None = None,
) -> RemoteWorkLog:
    ensure_employee_exists(db, employee_id)
    settings_row = get_or_create_company_settings(db)
    window_start, window_end = _require_open_window(settings_row)
    target_day = parse_calendar_date(day)
    _ensure_inside_window(target_day, start=window_start, end=window_end)

    frequency = settings_row.remote_work_frequency
    limit = effective_limit(settings_row.remote_work_limit)
    period_start, period_end = get_period_bounds(target_day, frequency)

    try:
        _lock_employee_remote_work(db, employee_id)
        used = _count_logs_between(db, employee_id=employee_id, start=period_start, end=period_end)
        if used >= limit:
            logger.info(
                "remote_quota_rejected",
                extra={
                    "employee_id": employee_id,
                    "day_date": target_day.isoformat(),
                    "period_start": period_start.isoformat(),
                    "used": used,
                    "limit": limit,
                },
            )
            raise _quota_exceeded(limit, period_start, period_end)

        log = RemoteWorkLog(employee_id=employee_id, day_date=target_day, reason=reason)
        db.add(log)
        db.flush()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise RecordConflictError(message=DUPLICATE_LOG_MESSAGE, code="REMOTE_LOG_EXISTS") from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(log)
    logger.info(
        "remote_day_logged",
        extra={
            "employee_id": employee_id,
            "day_date": target_day.isoformat(),
            "period_start": period_start.isoformat(),
            "used": used + 1,
            "limit": limit,
        },
    )
    return log


def _ensure_period_quota(
    db: Session,
    *,
    employee_id: int,
    days: Iterable[date],
    frequency: RemoteWorkFrequency,
    limit: int,
) -> None:
    requested_per_period = Counter(get_period_bounds(day, frequency) for day in days)
    for (period_start, period_end), requested in sorted(requested_per_period.items()):
        used = _count_logs_between(db, employee_id=employee_id, start=period_start, end=period_end)
        if used + requested > limit:
            raise _quota_exceeded(limit, period_start, period_end)


def set_remote_preferences(
    db: Session,
    *,
    employee_id: int,
    dates: list[str | date],
    reason: str | None = None,
) -> list[RemoteWorkLog]:
    """Replace the employee's remote days inside the open window with ``dates``.

    The delete and the inserts commit together; on any failure the previous
    selection is left untouched.
    """
    ensure_employee_exists(db, employee_id)
    settings_row = get_or_create_company_settings(db)
    window_start, window_end = _require_open_window(settings_row)
    frequency = settings_row.remote_work_frequency
    limit = effective_limit(settings_row.remote_work_limit)

    if len(dates) > limit:
        raise ValidationFailedError(
            code="TOO_MANY_REMOTE_DAYS",
            message=f"At most {limit} remote day(s) can be selected.",
        )

    selected_days = sorted({parse_calendar_date(value) for value in dates})
    for day in selected_days:
        _ensure_inside_window(day, start=window_start, end=window_end)

    try:
        _lock_employee_remote_work(db, employee_id)
        db.execute(
            delete(RemoteWorkLog)
            .where(
                RemoteWorkLog.employee_id == employee_id,
                RemoteWorkLog.day_date >= window_start,
                RemoteWorkLog.day_date <= window_end,
            )
        )
        _ensure_period_quota(
            db,
            employee_id=employee_id,
            days=selected_days,
            frequency=frequency,
            limit=limit,
        )
        db.add_all([RemoteWorkLog(employee_id=employee_id, day_date=day, reason=reason) for day in selected_days])
        db.flush()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise RecordConflictError(message=DUPLICATE_LOG_MESSAGE, code="REMOTE_LOG_EXISTS") from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        "remote_preferences_saved",
        extra={
            "employee_id": employee_id,
            "window_start": window_start.isoformat(),
            "window_end": window_end.isoformat(),
            "days": [day.isoformat() for day in selected_days],
        },
    )
    return list_remote_logs(db, employee_id=employee_id, start=window_start, end=window_end)


def list_remote_logs(
    db: Session,
    *,
    employee_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[RemoteWorkLog]:
    stmt = select(RemoteWorkLog).order_by(RemoteWorkLog.day_date.asc(), RemoteWorkLog.id.asc())
    if employee_id is not None:
        stmt = stmt.where(RemoteWorkLog.employee_id == employee_id)
    if start is not None:
        stmt = stmt.where(RemoteWorkLog.day_date >= start)
    if end is not None:
        stmt = stmt.where(RemoteWorkLog.day_date <= end)
    return list(db.scalars(stmt).all())
