from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import ValidationFailedError
from app.models import CompanySettings

logger = logging.getLogger("app.company_settings")

SINGLETON_KEY = "default"


def get_or_create_company_settings(db: Session) -> CompanySettings:
    """Return the tenant's settings row, creating it with defaults on first read."""
    settings_row = db.scalar(select(CompanySettings).where(CompanySettings.singleton_key == SINGLETON_KEY))
    if settings_row is not None:
        return settings_row

    settings_row = CompanySettings(singleton_key=SINGLETON_KEY)
    db.add(settings_row)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the row first.
        db.rollback()
        settings_row = db.scalar(select(CompanySettings).where(CompanySettings.singleton_key == SINGLETON_KEY))
        if settings_row is None:
            raise
        return settings_row

    db.refresh(settings_row)
    logger.info("company_settings_created", extra={"settings_id": settings_row.id})
    return settings_row


def update_submission_policy(
    db: Session,
    *,
    deadline_hour: int | None = None,
    deadline_minute: int | None = None,
    grace_days: int | None = None,
) -> CompanySettings:
    if deadline_hour is not None and not 0 <= deadline_hour <= 23:
        raise ValidationFailedError(code="INVALID_DEADLINE_HOUR", message="deadline_hour must be between 0 and 23.")
    if deadline_minute is not None and not 0 <= deadline_minute <= 59:
        raise ValidationFailedError(
            code="INVALID_DEADLINE_MINUTE",
            message="deadline_minute must be between 0 and 59.",
        )
    if grace_days is not None and grace_days < 0:
        raise ValidationFailedError(code="INVALID_GRACE_DAYS", message="grace_days must be zero or greater.")

    settings_row = get_or_create_company_settings(db)
    if deadline_hour is not None:
        settings_row.eod_deadline_hour = deadline_hour
    if deadline_minute is not None:
        settings_row.eod_deadline_minute = deadline_minute
    if grace_days is not None:
        settings_row.eod_grace_days = grace_days

    db.commit()
    db.refresh(settings_row)
    return settings_row
