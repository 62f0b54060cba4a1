from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.audit import log_actor_action
from app.db import get_db
from app.models import LeaveStatus
from app.schemas import (
    EmployeeCreate,
    EmployeeRead,
    HolidayCreateRequest,
    HolidayRead,
    HolidayUpdateRequest,
    LeaveCreateRequest,
    LeaveDecisionRequest,
    LeaveRead,
    NotificationJobRead,
    RemotePolicyRead,
    RemotePolicyUpdateRequest,
    RemoteWindowOpenRequest,
    SubmissionPolicyRead,
    SubmissionPolicyUpdateRequest,
    WindowState,
)
from app.security import Actor, require_privileged
from app.services.company_settings import get_or_create_company_settings, update_submission_policy
from app.services.employees import create_employee
from app.services.holidays import create_holiday, delete_holiday, list_holidays, update_holiday
from app.services.leaves import create_leave, decide_leave, delete_leave, list_leaves
from app.services.notifications import list_pending_jobs
from app.services.remote_work import close_window, get_remote_policy, open_window, update_remote_policy

router = APIRouter(tags=["admin"])


def _submission_policy_read(db: Session) -> SubmissionPolicyRead:
    settings_row = get_or_create_company_settings(db)
    return SubmissionPolicyRead(
        deadline_hour=settings_row.eod_deadline_hour,
        deadline_minute=settings_row.eod_deadline_minute,
        grace_days=settings_row.eod_grace_days,
    )


@router.post("/api/admin/employees", response_model=EmployeeRead, status_code=status.HTTP_201_CREATED)
def create_employee_endpoint(
    payload: EmployeeCreate,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> EmployeeRead:
    employee = create_employee(db, payload)
    log_actor_action(db, request, actor, action="EMPLOYEE_CREATED", entity_type="employee", entity_id=employee.id)
    return employee


@router.post("/api/admin/holidays", response_model=HolidayRead, status_code=status.HTTP_201_CREATED)
def create_holiday_endpoint(
    payload: HolidayCreateRequest,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> HolidayRead:
    holiday = create_holiday(db, payload)
    log_actor_action(
        db,
        request,
        actor,
        action="HOLIDAY_CREATED",
        entity_type="holiday",
        entity_id=holiday.id,
        details={"day_date": holiday.day_date.isoformat(), "region": holiday.region},
    )
    return holiday


@router.get("/api/admin/holidays", response_model=list[HolidayRead])
def list_holidays_endpoint(
    year: int | None = Query(default=None, ge=1970),
    _actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> list[HolidayRead]:
    return list_holidays(db, year=year)


@router.patch("/api/admin/holidays/{holiday_id}", response_model=HolidayRead)
def update_holiday_endpoint(
    holiday_id: int,
    payload: HolidayUpdateRequest,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> HolidayRead:
    holiday = update_holiday(db, holiday_id, payload)
    log_actor_action(db, request, actor, action="HOLIDAY_UPDATED", entity_type="holiday", entity_id=holiday.id)
    return holiday


@router.delete("/api/admin/holidays/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday_endpoint(
    holiday_id: int,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> None:
    delete_holiday(db, holiday_id)
    log_actor_action(db, request, actor, action="HOLIDAY_DELETED", entity_type="holiday", entity_id=holiday_id)


@router.post("/api/admin/leaves", response_model=LeaveRead, status_code=status.HTTP_201_CREATED)
def create_leave_endpoint(
    payload: LeaveCreateRequest,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> LeaveRead:
    leave = create_leave(db, payload)
    log_actor_action(
        db,
        request,
        actor,
        action="LEAVE_CREATED",
        entity_type="leave",
        entity_id=leave.id,
        details={"employee_id": leave.employee_id, "type": leave.type.value, "status": leave.status.value},
    )
    return leave


@router.get("/api/admin/leaves", response_model=list[LeaveRead])
def list_leaves_endpoint(
    employee_id: int | None = Query(default=None, ge=1),
    year: int | None = Query(default=None, ge=1970),
    month: int | None = Query(default=None, ge=1, le=12),
    leave_status: LeaveStatus | None = Query(default=None, alias="status"),
    _actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> list[LeaveRead]:
    return list_leaves(db, employee_id=employee_id, year=year, month=month, status=leave_status)


@router.patch("/api/admin/leaves/{leave_id}/status", response_model=LeaveRead)
def decide_leave_endpoint(
    leave_id: int,
    payload: LeaveDecisionRequest,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> LeaveRead:
    leave = decide_leave(db, leave_id, status=payload.status)
    log_actor_action(
        db,
        request,
        actor,
        action="LEAVE_DECIDED",
        entity_type="leave",
        entity_id=leave.id,
        details={"status": leave.status.value},
    )
    return leave


@router.delete("/api/admin/leaves/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_leave_endpoint(
    leave_id: int,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> None:
    delete_leave(db, leave_id)
    log_actor_action(db, request, actor, action="LEAVE_DELETED", entity_type="leave", entity_id=leave_id)


@router.get("/api/admin/settings/submission-policy", response_model=SubmissionPolicyRead)
def get_submission_policy_endpoint(
    _actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> SubmissionPolicyRead:
    return _submission_policy_read(db)


@router.put("/api/admin/settings/submission-policy", response_model=SubmissionPolicyRead)
def put_submission_policy_endpoint(
    payload: SubmissionPolicyUpdateRequest,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> SubmissionPolicyRead:
    update_submission_policy(
        db,
        deadline_hour=payload.deadline_hour,
        deadline_minute=payload.deadline_minute,
        grace_days=payload.grace_days,
    )
    result = _submission_policy_read(db)
    log_actor_action(
        db,
        request,
        actor,
        action="SUBMISSION_POLICY_UPDATED",
        entity_type="company_settings",
        details=result.model_dump(),
    )
    return result


@router.post("/api/admin/remote-work/window/open", response_model=WindowState)
def open_remote_window_endpoint(
    payload: RemoteWindowOpenRequest,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> WindowState:
    state = open_window(db, start_date=payload.start_date, end_date=payload.end_date)
    log_actor_action(
        db,
        request,
        actor,
        action="REMOTE_WINDOW_OPENED",
        entity_type="company_settings",
        details={"start_date": state.start_date.isoformat(), "end_date": state.end_date.isoformat()},
    )
    return state


@router.post("/api/admin/remote-work/window/close", response_model=WindowState)
def close_remote_window_endpoint(
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> WindowState:
    state = close_window(db)
    log_actor_action(db, request, actor, action="REMOTE_WINDOW_CLOSED", entity_type="company_settings")
    return state


@router.get("/api/admin/remote-work/policy", response_model=RemotePolicyRead)
def get_remote_policy_endpoint(
    _actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> RemotePolicyRead:
    return get_remote_policy(db)


@router.put("/api/admin/remote-work/policy", response_model=RemotePolicyRead)
def put_remote_policy_endpoint(
    payload: RemotePolicyUpdateRequest,
    request: Request,
    actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> RemotePolicyRead:
    policy = update_remote_policy(db, frequency=payload.frequency, limit=payload.limit)
    log_actor_action(
        db,
        request,
        actor,
        action="REMOTE_POLICY_UPDATED",
        entity_type="company_settings",
        details={"frequency": policy.frequency.value, "limit": policy.limit},
    )
    return policy


@router.get("/api/admin/notifications/pending", response_model=list[NotificationJobRead])
def list_pending_notifications_endpoint(
    job_type: str | None = Query(default=None),
    _actor: Actor = Depends(require_privileged),
    db: Session = Depends(get_db),
) -> list[NotificationJobRead]:
    return list_pending_jobs(db, job_type=job_type)
