from __future__ import annotations

import logging
from calendar import monthrange
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import NotFoundError, PolicyConflictError, ValidationFailedError
from app.models import Leave, LeaveStatus
from app.schemas import LeaveCreateRequest
from app.services.calendar_policy import parse_calendar_date
from app.services.employees import ensure_employee_exists

logger = logging.getLogger("app.leaves")

# Leaves in these states block the same dates for another request.
BLOCKING_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


def _find_overlapping_leave(db: Session, *, employee_id: int, start: date, end: date) -> Leave | None:
    return db.scalar(
        select(Leave)
        .where(
            Leave.employee_id == employee_id,
            Leave.status.in_(BLOCKING_STATUSES),
            Leave.start_date <= end,
            Leave.end_date >= start,
        )
        .limit(1)
    )


def create_leave(db: Session, payload: LeaveCreateRequest) -> Leave:
    ensure_employee_exists(db, payload.employee_id)
    start = parse_calendar_date(payload.start_date)
    end = parse_calendar_date(payload.end_date)
    if end < start:
        raise ValidationFailedError(
            code="INVALID_LEAVE_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )

    if payload.status in BLOCKING_STATUSES:
        existing = _find_overlapping_leave(
            db,
            employee_id=payload.employee_id,
            start=start,
            end=end,
        )
        if existing is not None:
            raise PolicyConflictError(
                code="LEAVE_OVERLAP",
                message=(
                    f"Leave overlaps with leave {existing.id} "
                    f"({existing.start_date.isoformat()}..{existing.end_date.isoformat()})."
                ),
            )

    leave = Leave(
        employee_id=payload.employee_id,
        start_date=start,
        end_date=end,
        type=payload.type,
        status=payload.status,
        note=payload.note,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    logger.info(
        "leave_created",
        extra={"leave_id": leave.id, "employee_id": leave.employee_id, "status": leave.status.value},
    )
    return leave


def get_leave(db: Session, leave_id: int) -> Leave:
    leave = db.get(Leave, leave_id)
    if leave is None:
        raise NotFoundError(code="LEAVE_NOT_FOUND", message=f"Leave {leave_id} not found.")
    return leave


def decide_leave(db: Session, leave_id: int, *, status: LeaveStatus) -> Leave:
    """Approve or reject a pending leave; decided leaves are final."""
    if status == LeaveStatus.PENDING:
        raise ValidationFailedError(code="INVALID_LEAVE_DECISION", message="status must be APPROVED or REJECTED.")

    leave = get_leave(db, leave_id)
    if leave.status != LeaveStatus.PENDING:
        raise PolicyConflictError(
            code="LEAVE_ALREADY_DECIDED",
            message=f"Leave {leave_id} is already {leave.status.value}.",
        )

    leave.status = status
    db.commit()
    db.refresh(leave)
    logger.info("leave_decided", extra={"leave_id": leave.id, "status": status.value})
    return leave


def list_leaves(
    db: Session,
    *,
    employee_id: int | None,
    year: int | None,
    month: int | None,
    status: LeaveStatus | None = None,
) -> list[Leave]:
    if (year is None) != (month is None):
        raise ValidationFailedError(code="INVALID_LEAVE_FILTER", message="year and month must be provided together.")

    stmt = select(Leave)
    if employee_id is not None:
        stmt = stmt.where(Leave.employee_id == employee_id)
    if status is not None:
        stmt = stmt.where(Leave.status == status)
    if year is not None and month is not None:
        month_start = date(year, month, 1)
        month_end = date(year, month, monthrange(year, month)[1])
        stmt = stmt.where(Leave.start_date <= month_end, Leave.end_date >= month_start)

    return list(db.scalars(stmt.order_by(Leave.start_date.asc(), Leave.id.asc())).all())


def delete_leave(db: Session, leave_id: int) -> None:
    leave = get_leave(db, leave_id)
    db.delete(leave)
    db.commit()
