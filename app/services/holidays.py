from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, RecordConflictError
from app.models import Holiday
from app.schemas import HolidayCreateRequest, HolidayUpdateRequest
from app.services.calendar_policy import local_today, parse_calendar_date
from app.settings import get_holiday_region


def _duplicate_holiday_error(day: date) -> RecordConflictError:
    return RecordConflictError(message=f"A holiday already exists on {day.isoformat()}.", code="HOLIDAY_EXISTS")


def create_holiday(db: Session, payload: HolidayCreateRequest) -> Holiday:
    day = parse_calendar_date(payload.day_date)
    holiday = Holiday(
        name=payload.name.strip(),
        day_date=day,
        region=get_holiday_region(),
        is_recurring=payload.is_recurring,
    )
    db.add(holiday)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _duplicate_holiday_error(day) from exc
    db.refresh(holiday)
    return holiday


def list_holidays(db: Session, *, year: int | None = None) -> list[Holiday]:
    stmt = select(Holiday).where(Holiday.region == get_holiday_region())
    if year is not None:
        stmt = stmt.where(Holiday.day_date >= date(year, 1, 1), Holiday.day_date <= date(year, 12, 31))
    return list(db.scalars(stmt.order_by(Holiday.day_date.asc())).all())


def list_upcoming_holidays(db: Session, *, days_ahead: int = 30, today: date | None = None) -> list[Holiday]:
    start = today or local_today()
    return list(
        db.scalars(
            select(Holiday)
            .where(
                Holiday.region == get_holiday_region(),
                Holiday.day_date >= start,
                Holiday.day_date <= start + timedelta(days=days_ahead),
            )
            .order_by(Holiday.day_date.asc())
        ).all()
    )


def get_holiday(db: Session, holiday_id: int) -> Holiday:
    holiday = db.get(Holiday, holiday_id)
    if holiday is None:
        raise NotFoundError(code="HOLIDAY_NOT_FOUND", message=f"Holiday {holiday_id} not found.")
    return holiday


def update_holiday(db: Session, holiday_id: int, payload: HolidayUpdateRequest) -> Holiday:
    holiday = get_holiday(db, holiday_id)
    if payload.name is not None:
        holiday.name = payload.name.strip()
    if payload.day_date is not None:
        holiday.day_date = parse_calendar_date(payload.day_date)
    requested_day = holiday.day_date
    if payload.is_recurring is not None:
        holiday.is_recurring = payload.is_recurring

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _duplicate_holiday_error(requested_day) from exc
    db.refresh(holiday)
    return holiday


def delete_holiday(db: Session, holiday_id: int) -> None:
    holiday = get_holiday(db, holiday_id)
    db.delete(holiday)
    db.commit()
