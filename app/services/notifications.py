from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import NotificationJob
from app.services.calendar_policy import normalize_utc
from app.services.employees import list_active_employee_ids

JOB_TYPE_REMOTE_WINDOW_OPENED = "REMOTE_WINDOW_OPENED"
JOB_STATUS_PENDING = "PENDING"

logger = logging.getLogger("app.notifications")


def _build_idempotency_key(*, job_type: str, employee_id: int, window_start: date) -> str:
    return f"{job_type}:{employee_id}:{window_start.isoformat()}"


def _has_existing_job(session: Session, *, idempotency_key: str) -> bool:
    existing = session.scalar(select(NotificationJob.id).where(NotificationJob.idempotency_key == idempotency_key))
    return existing is not None


def _build_window_payload(*, start_date: date, end_date: date) -> dict[str, str]:
    return {
        "window_start": start_date.isoformat(),
        "window_end": end_date.isoformat(),
        "title": "Remote work window is open",
        "body": f"Pick your remote days between {start_date.isoformat()} and {end_date.isoformat()}.",
    }


def enqueue_remote_window_opened(
    session: Session,
    *,
    start_date: date,
    end_date: date,
    now_utc: datetime | None = None,
) -> list[NotificationJob]:
    """Queue one reminder per active employee; reopening the same window queues nothing new."""
    scheduled_at_utc = normalize_utc(now_utc)
    payload = _build_window_payload(start_date=start_date, end_date=end_date)
    created_jobs: list[NotificationJob] = []

    for employee_id in list_active_employee_ids(session):
        idempotency_key = _build_idempotency_key(
            job_type=JOB_TYPE_REMOTE_WINDOW_OPENED,
            employee_id=employee_id,
            window_start=start_date,
        )
        if _has_existing_job(session, idempotency_key=idempotency_key):
            continue

        job = NotificationJob(
            employee_id=employee_id,
            job_type=JOB_TYPE_REMOTE_WINDOW_OPENED,
            payload=dict(payload),
            scheduled_at_utc=scheduled_at_utc,
            status=JOB_STATUS_PENDING,
            attempts=0,
            last_error=None,
            idempotency_key=idempotency_key,
        )
        session.add(job)
        created_jobs.append(job)

    session.commit()
    logger.info(
        "remote_window_notifications_enqueued",
        extra={
            "job_type": JOB_TYPE_REMOTE_WINDOW_OPENED,
            "window_start": start_date.isoformat(),
            "created_jobs": len(created_jobs),
        },
    )
    return created_jobs


def list_pending_jobs(session: Session, *, job_type: str | None = None) -> list[NotificationJob]:
    stmt = (
        select(NotificationJob)
        .where(NotificationJob.status == JOB_STATUS_PENDING)
        .order_by(NotificationJob.scheduled_at_utc.asc(), NotificationJob.id.asc())
    )
    if job_type is not None:
        stmt = stmt.where(NotificationJob.job_type == job_type)
    return list(session.scalars(stmt).all())
