from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.audit import log_actor_action
from app.db import get_db
from app.schemas import (
    AttendanceSummaryRead,
    EodReportCreateRequest,
    EodReportRead,
    EodReportUpdateRequest,
    HolidayRead,
    MissingReportsRead,
    RemotePreferencesRequest,
    RemoteWorkLogCreateRequest,
    RemoteWorkLogRead,
    WindowState,
    WorkingDayResponse,
)
from app.security import Actor, get_actor, require_privileged
from app.services.calendar_policy import is_working_day, parse_calendar_date
from app.services.compliance_report import count_missing_reports, get_attendance_summary
from app.services.employees import ensure_employee_exists
from app.services.eod_reports import (
    delete_eod_report,
    get_eod_report,
    list_eod_reports,
    submit_eod_report,
    update_eod_report,
)
from app.services.holidays import list_upcoming_holidays
from app.services.remote_work import (
    get_window_state,
    list_remote_logs,
    log_remote_day,
    set_remote_preferences,
)

router = APIRouter(tags=["attendance"])


def _optional_date(value: str | None) -> date | None:
    if value is None or not value.strip():
        return None
    return parse_calendar_date(value)


def _list_scope(actor: Actor, employee_id: int | None) -> int | None:
    """Privileged callers may list everyone; owners only see their own rows."""
    if actor.is_privileged:
        return employee_id
    return actor.resolve_target_employee(employee_id)


@router.get("/api/calendar/working-day", response_model=WorkingDayResponse)
def working_day(
    day: str = Query(alias="date"),
    employee_id: int | None = Query(default=None, ge=1),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> WorkingDayResponse:
    target_employee_id = actor.resolve_target_employee(employee_id)
    ensure_employee_exists(db, target_employee_id)
    target_day = parse_calendar_date(day)
    return WorkingDayResponse(
        employee_id=target_employee_id,
        day_date=target_day,
        is_working_day=is_working_day(db, employee_id=target_employee_id, day=target_day),
    )


@router.get("/api/holidays/upcoming", response_model=list[HolidayRead])
def upcoming_holidays(
    days_ahead: int = Query(default=30, ge=1, le=366),
    _actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[HolidayRead]:
    return list_upcoming_holidays(db, days_ahead=days_ahead)


@router.post("/api/eod-reports", response_model=EodReportRead, status_code=status.HTTP_201_CREATED)
def create_eod_report(
    payload: EodReportCreateRequest,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> EodReportRead:
    report = submit_eod_report(db, actor=actor, payload=payload)
    request.state.employee_id = report.employee_id
    log_actor_action(
        db,
        request,
        actor,
        action="EOD_REPORT_CREATED",
        entity_type="eod_report",
        entity_id=report.id,
        details={
            "employee_id": report.employee_id,
            "day_date": report.day_date.isoformat(),
            "submitted": report.submitted_at is not None,
            "is_late": report.is_late,
        },
    )
    return report


@router.patch("/api/eod-reports/{report_id}", response_model=EodReportRead)
def patch_eod_report(
    report_id: int,
    payload: EodReportUpdateRequest,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> EodReportRead:
    report = update_eod_report(db, report_id=report_id, actor=actor, payload=payload)
    request.state.employee_id = report.employee_id
    log_actor_action(
        db,
        request,
        actor,
        action="EOD_REPORT_UPDATED",
        entity_type="eod_report",
        entity_id=report.id,
        details={"fields": sorted(payload.model_fields_set)},
    )
    return report


@router.get("/api/eod-reports", response_model=list[EodReportRead])
def list_eod_reports_endpoint(
    employee_id: int | None = Query(default=None, ge=1),
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[EodReportRead]:
    return list_eod_reports(
        db,
        employee_id=_list_scope(actor, employee_id),
        start=_optional_date(start),
        end=_optional_date(end),
    )


@router.get("/api/eod-reports/{report_id}", response_model=EodReportRead)
def get_eod_report_endpoint(
    report_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> EodReportRead:
    report = get_eod_report(db, report_id)
    actor.ensure_owns(report.employee_id)
    return report


@router.delete("/api/eod-reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_eod_report_endpoint(
    report_id: int,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> None:
    delete_eod_report(db, report_id)
    log_actor_action(db, request, actor, action="EOD_REPORT_DELETED", entity_type="eod_report", entity_id=report_id)


@router.get("/api/remote-work/window", response_model=WindowState)
def remote_window_state(
    _actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> WindowState:
    return get_window_state(db)


@router.post("/api/remote-work/logs", response_model=RemoteWorkLogRead, status_code=status.HTTP_201_CREATED)
def create_remote_work_log(
    payload: RemoteWorkLogCreateRequest,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> RemoteWorkLogRead:
    employee_id = actor.resolve_target_employee(payload.employee_id)
    request.state.employee_id = employee_id
    remote_log = log_remote_day(db, employee_id=employee_id, day=payload.day_date, reason=payload.reason)
    log_actor_action(
        db,
        request,
        actor,
        action="REMOTE_WORK_LOGGED",
        entity_type="remote_work_log",
        entity_id=remote_log.id,
        details={"employee_id": employee_id, "day_date": remote_log.day_date.isoformat()},
    )
    return remote_log


@router.put("/api/remote-work/preferences", response_model=list[RemoteWorkLogRead])
def put_remote_preferences(
    payload: RemotePreferencesRequest,
    request: Request,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[RemoteWorkLogRead]:
    employee_id = actor.resolve_target_employee(payload.employee_id)
    request.state.employee_id = employee_id
    logs = set_remote_preferences(db, employee_id=employee_id, dates=payload.dates, reason=payload.reason)
    log_actor_action(
        db,
        request,
        actor,
        action="REMOTE_PREFERENCES_SAVED",
        entity_type="employee",
        entity_id=employee_id,
        details={"dates": [log.day_date.isoformat() for log in logs]},
    )
    return logs


@router.get("/api/remote-work/logs", response_model=list[RemoteWorkLogRead])
def list_remote_work_logs(
    employee_id: int | None = Query(default=None, ge=1),
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> list[RemoteWorkLogRead]:
    return list_remote_logs(
        db,
        employee_id=_list_scope(actor, employee_id),
        start=_optional_date(start),
        end=_optional_date(end),
    )


@router.get("/api/compliance/missing-reports", response_model=MissingReportsRead)
def missing_reports(
    employee_id: int | None = Query(default=None, ge=1),
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> MissingReportsRead:
    target_employee_id = actor.resolve_target_employee(employee_id)
    summary = count_missing_reports(
        db,
        employee_id=target_employee_id,
        range_start=_optional_date(start),
        range_end=_optional_date(end),
    )
    return MissingReportsRead(
        employee_id=target_employee_id,
        start=summary.start,
        end=summary.end,
        count=summary.count,
    )


@router.get("/api/compliance/summary", response_model=AttendanceSummaryRead)
def compliance_summary(
    employee_id: int | None = Query(default=None, ge=1),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
) -> AttendanceSummaryRead:
    return get_attendance_summary(db, employee_id=actor.resolve_target_employee(employee_id))
