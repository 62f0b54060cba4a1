from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models import LeaveStatus, LeaveType, RemoteWorkFrequency


class EmployeeCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    hire_date: date | None = None
    is_active: bool = True


class EmployeeRead(BaseModel):
    id: int
    full_name: str
    email: str | None
    hire_date: date | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class HolidayCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    day_date: str
    is_recurring: bool = False


class HolidayUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    day_date: str | None = None
    is_recurring: bool | None = None


class HolidayRead(BaseModel):
    id: int
    name: str
    day_date: date
    region: str
    is_recurring: bool

    model_config = ConfigDict(from_attributes=True)


class LeaveCreateRequest(BaseModel):
    employee_id: int
    start_date: str
    end_date: str
    type: LeaveType
    status: LeaveStatus = LeaveStatus.PENDING
    note: str | None = None


class LeaveDecisionRequest(BaseModel):
    status: LeaveStatus


class LeaveRead(BaseModel):
    id: int
    employee_id: int
    start_date: date
    end_date: date
    type: LeaveType
    status: LeaveStatus
    note: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WorkingDayResponse(BaseModel):
    employee_id: int
    day_date: date
    is_working_day: bool


class SubmissionPolicyRead(BaseModel):
    deadline_hour: int
    deadline_minute: int
    grace_days: int


class SubmissionPolicyUpdateRequest(BaseModel):
    deadline_hour: int | None = Field(default=None, ge=0, le=23)
    deadline_minute: int | None = Field(default=None, ge=0, le=59)
    grace_days: int | None = Field(default=None, ge=0)


class EodTaskWorkType(str, Enum):
    PLANNING = "PLANNING"
    RESEARCH = "RESEARCH"
    IMPLEMENTATION = "IMPLEMENTATION"
    TESTING = "TESTING"


class EodTaskLifecycle(str, Enum):
    NEW = "NEW"
    RETURNED = "RETURNED"


class EodTaskStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class EodTask(BaseModel):
    client_details: str
    ticket: str
    type_of_work_done: EodTaskWorkType
    task_estimated_time: float | None = Field(default=None, ge=0)
    time_spent_on_ticket: float = Field(ge=0)
    task_lifecycle: EodTaskLifecycle
    task_status: EodTaskStatus


class EodReportCreateRequest(BaseModel):
    employee_id: int | None = Field(default=None, ge=1)
    day_date: str
    summary: str | None = None
    tasks: list[EodTask] = Field(default_factory=list)
    hours_worked: float | None = Field(default=None, ge=0)
    submit: bool = False


class EodReportUpdateRequest(BaseModel):
    day_date: str | None = None
    summary: str | None = None
    tasks: list[EodTask] | None = None
    hours_worked: float | None = Field(default=None, ge=0)
    submit: bool = False
    submitted_at: datetime | None = None
    is_late: bool | None = None


class EodReportRead(BaseModel):
    id: int
    employee_id: int
    day_date: date
    summary: str | None
    tasks: list[dict[str, Any]]
    hours_worked: float | None
    submitted_at: datetime | None
    is_late: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class RemoteWindowOpenRequest(BaseModel):
    start_date: str
    end_date: str | None = None


class WindowState(BaseModel):
    is_open: bool
    start_date: date | None
    end_date: date | None
    frequency: RemoteWorkFrequency
    limit: int
    is_past_end: bool = False


class RemotePolicyRead(BaseModel):
    frequency: RemoteWorkFrequency
    limit: int
    effective_limit: int
    window: WindowState
    updated_at: datetime | None = None


class RemotePolicyUpdateRequest(BaseModel):
    frequency: RemoteWorkFrequency | None = None
    limit: int | None = Field(default=None, ge=0)


class RemoteWorkLogCreateRequest(BaseModel):
    employee_id: int | None = Field(default=None, ge=1)
    day_date: str
    reason: str | None = Field(default=None, max_length=1000)


class RemotePreferencesRequest(BaseModel):
    employee_id: int | None = Field(default=None, ge=1)
    dates: list[str] = Field(default_factory=list)
    reason: str | None = Field(default=None, max_length=1000)


class RemoteWorkLogRead(BaseModel):
    id: int
    employee_id: int
    day_date: date
    reason: str | None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class NotificationJobRead(BaseModel):
    id: int
    employee_id: int | None
    job_type: str
    payload: dict[str, Any]
    scheduled_at_utc: datetime
    status: str
    attempts: int

    model_config = ConfigDict(from_attributes=True)


class MissingReportsRead(BaseModel):
    employee_id: int
    start: date | None
    end: date | None
    count: int


class AttendanceSummaryRead(BaseModel):
    employee_id: int
    missing_reports: int
    late_reports: int
    total_reports: int
    timeframe_start: date | None
    timeframe_end: date | None


