from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from app.errors import PolicyConflictError, ValidationFailedError
from app.models import CompanySettings
from app.services.calendar_policy import attendance_timezone, normalize_utc

# A report can always be corrected on the day after it is due, even with zero grace days.
MINIMUM_WINDOW_DAYS = 1
DEADLINE_SECONDS = 59
DEADLINE_MICROSECONDS = 999_000


@dataclass(frozen=True, slots=True)
class SubmissionPolicy:
    deadline_hour: int = 23
    deadline_minute: int = 59
    grace_days: int = 2

    @classmethod
    def from_settings(cls, settings_row: CompanySettings) -> SubmissionPolicy:
        return cls(
            deadline_hour=settings_row.eod_deadline_hour,
            deadline_minute=settings_row.eod_deadline_minute,
            grace_days=settings_row.eod_grace_days,
        )

    @property
    def window_days(self) -> int:
        return max(self.grace_days, MINIMUM_WINDOW_DAYS)


def compute_submission_deadline(
    report_date: date,
    policy: SubmissionPolicy,
    tz: tzinfo | None = None,
) -> datetime:
    """Last instant (UTC) at which a report for ``report_date`` still counts as on time."""
    local_deadline = datetime.combine(
        report_date + timedelta(days=policy.window_days),
        time(policy.deadline_hour, policy.deadline_minute, DEADLINE_SECONDS, DEADLINE_MICROSECONDS),
        tzinfo=tz or attendance_timezone(),
    )
    return normalize_utc(local_deadline)


def is_late(
    report_date: date,
    submitted_at: datetime,
    policy: SubmissionPolicy,
    tz: tzinfo | None = None,
) -> bool:
    return normalize_utc(submitted_at) > compute_submission_deadline(report_date, policy, tz)


def ensure_not_future_date(report_date: date, today: date) -> None:
    if report_date > today:
        raise ValidationFailedError(
            code="FUTURE_REPORT_DATE",
            message="EOD reports cannot be submitted for future dates.",
        )


def edit_window_end(submitted_at: datetime, policy: SubmissionPolicy) -> datetime:
    return normalize_utc(submitted_at) + timedelta(days=policy.grace_days)


def ensure_owner_can_edit(submitted_at: datetime | None, policy: SubmissionPolicy, now: datetime) -> None:
    if submitted_at is None:
        return
    window_end = edit_window_end(submitted_at, policy)
    if normalize_utc(now) > window_end:
        plural = "" if policy.grace_days == 1 else "s"
        raise PolicyConflictError(
            code="EDIT_WINDOW_CLOSED",
            message=(
                f"Submitted reports can only be edited within {policy.grace_days} day{plural} "
                f"of submission; the window closed at {window_end.isoformat()}."
            ),
        )
