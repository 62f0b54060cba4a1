from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import ForbiddenError, NotFoundError, RecordConflictError, ValidationFailedError
from app.models import EodReport
from app.schemas import EodReportCreateRequest, EodReportUpdateRequest, EodTask
from app.security import Actor
from app.services.calendar_policy import is_working_day, local_today, normalize_utc, parse_calendar_date
from app.services.company_settings import get_or_create_company_settings
from app.services.deadlines import (
    SubmissionPolicy,
    ensure_not_future_date,
    ensure_owner_can_edit,
    is_late,
)
from app.services.employees import ensure_employee_exists

logger = logging.getLogger("app.eod_reports")

DUPLICATE_REPORT_MESSAGE = "An EOD report already exists for this date."


def load_submission_policy(db: Session) -> SubmissionPolicy:
    return SubmissionPolicy.from_settings(get_or_create_company_settings(db))


def _serialize_tasks(tasks: list[EodTask]) -> list[dict]:
    return [task.model_dump(mode="json") for task in tasks]


def _require_tasks(tasks: list[EodTask] | list[dict]) -> None:
    if not tasks:
        raise ValidationFailedError(code="TASKS_REQUIRED", message="Add at least one task to the report.")


def _ensure_reportable_day(db: Session, *, actor: Actor, employee_id: int, report_date: date) -> None:
    if actor.is_privileged:
        return
    if not is_working_day(db, employee_id=employee_id, day=report_date):
        raise ValidationFailedError(
            code="NON_WORKING_DAY",
            message="EOD reports are not required on weekends, holidays or approved leave.",
        )


def _commit_report(db: Session, report: EodReport) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise RecordConflictError(message=DUPLICATE_REPORT_MESSAGE, code="EOD_REPORT_EXISTS") from exc
    db.refresh(report)


def submit_eod_report(
    db: Session,
    *,
    actor: Actor,
    payload: EodReportCreateRequest,
    now: datetime | None = None,
) -> EodReport:
    now_utc = normalize_utc(now)
    employee_id = actor.resolve_target_employee(payload.employee_id)
    ensure_employee_exists(db, employee_id)
    _require_tasks(payload.tasks)

    report_date = parse_calendar_date(payload.day_date)
    ensure_not_future_date(report_date, local_today(now_utc))
    _ensure_reportable_day(db, actor=actor, employee_id=employee_id, report_date=report_date)

    submitted_at: datetime | None = None
    late = False
    if payload.submit:
        submitted_at = now_utc
        late = is_late(report_date, now_utc, load_submission_policy(db))

    report = EodReport(
        employee_id=employee_id,
        day_date=report_date,
        summary=payload.summary,
        tasks=_serialize_tasks(payload.tasks),
        hours_worked=payload.hours_worked,
        submitted_at=submitted_at,
        is_late=late,
    )
    db.add(report)
    _commit_report(db, report)

    logger.info(
        "eod_report_created",
        extra={
            "report_id": report.id,
            "employee_id": employee_id,
            "day_date": report_date.isoformat(),
            "submitted": submitted_at is not None,
            "is_late": late,
            "actor_id": actor.actor_id,
        },
    )
    return report


def update_eod_report(
    db: Session,
    *,
    report_id: int,
    actor: Actor,
    payload: EodReportUpdateRequest,
    now: datetime | None = None,
) -> EodReport:
    now_utc = normalize_utc(now)
    report = get_eod_report(db, report_id)
    actor.ensure_owns(report.employee_id)
    policy = load_submission_policy(db)
    fields_set = payload.model_fields_set

    manual_fields = {"submitted_at", "is_late"} & fields_set
    if manual_fields and not actor.is_privileged:
        raise ForbiddenError("Only HR or admins can correct submission timestamps.")
    if not actor.is_privileged:
        ensure_owner_can_edit(report.submitted_at, policy, now_utc)

    if payload.day_date is not None:
        if not actor.is_privileged:
            raise ForbiddenError("Only HR or admins can move a report to another date.")
        new_date = parse_calendar_date(payload.day_date)
        ensure_not_future_date(new_date, local_today(now_utc))
        report.day_date = new_date

    if payload.summary is not None:
        report.summary = payload.summary
    if payload.tasks is not None:
        _require_tasks(payload.tasks)
        report.tasks = _serialize_tasks(payload.tasks)
    if "hours_worked" in fields_set:
        report.hours_worked = payload.hours_worked

    was_submitted = report.submitted_at is not None
    if manual_fields:
        # Corrections are authoritative and are not recomputed afterwards.
        if "submitted_at" in fields_set:
            report.submitted_at = normalize_utc(payload.submitted_at) if payload.submitted_at else None
            if "is_late" not in fields_set:
                report.is_late = (
                    is_late(report.day_date, report.submitted_at, policy)
                    if report.submitted_at is not None
                    else False
                )
        if "is_late" in fields_set:
            report.is_late = bool(payload.is_late)
    elif payload.submit and not was_submitted:
        _ensure_reportable_day(db, actor=actor, employee_id=report.employee_id, report_date=report.day_date)
        _require_tasks(report.tasks)
        report.submitted_at = now_utc
        report.is_late = is_late(report.day_date, now_utc, policy)

    _commit_report(db, report)

    if report.submitted_at is not None and not was_submitted:
        logger.info(
            "eod_report_submitted",
            extra={
                "report_id": report.id,
                "employee_id": report.employee_id,
                "day_date": report.day_date.isoformat(),
                "is_late": report.is_late,
            },
        )
    if manual_fields:
        logger.info(
            "eod_report_submission_corrected",
            extra={
                "report_id": report.id,
                "employee_id": report.employee_id,
                "submitted_at": report.submitted_at,
                "is_late": report.is_late,
                "actor_id": actor.actor_id,
            },
        )
    return report


def get_eod_report(db: Session, report_id: int) -> EodReport:
    report = db.get(EodReport, report_id)
    if report is None:
        raise NotFoundError(code="EOD_REPORT_NOT_FOUND", message=f"EOD report {report_id} not found.")
    return report


def list_eod_reports(
    db: Session,
    *,
    employee_id: int | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[EodReport]:
    stmt = select(EodReport).order_by(EodReport.day_date.desc(), EodReport.id.desc())
    if employee_id is not None:
        stmt = stmt.where(EodReport.employee_id == employee_id)
    if start is not None:
        stmt = stmt.where(EodReport.day_date >= start)
    if end is not None:
        stmt = stmt.where(EodReport.day_date <= end)
    return list(db.scalars(stmt).all())


def delete_eod_report(db: Session, report_id: int) -> None:
    report = get_eod_report(db, report_id)
    db.delete(report)
    db.commit()
