from __future__ import annotations

import unittest
from datetime import date

from sqlalchemy import func, select

from app.errors import ValidationFailedError
from app.models import CompanySettings, NotificationJob, RemoteWorkFrequency
from app.services.company_settings import get_or_create_company_settings, update_submission_policy
from app.services.notifications import JOB_TYPE_REMOTE_WINDOW_OPENED, enqueue_remote_window_opened, list_pending_jobs
from tests.db_support import DatabaseTestCase


class CompanySettingsTests(DatabaseTestCase):
    def test_first_read_creates_defaults(self) -> None:
        settings_row = get_or_create_company_settings(self.db)

        self.assertEqual(settings_row.eod_deadline_hour, 23)
        self.assertEqual(settings_row.eod_deadline_minute, 59)
        self.assertEqual(settings_row.eod_grace_days, 2)
        self.assertEqual(settings_row.remote_work_frequency, RemoteWorkFrequency.WEEKLY)
        self.assertEqual(settings_row.remote_work_limit, 1)
        self.assertFalse(settings_row.remote_window_open)
        self.assertIsNone(settings_row.remote_window_start)

    def test_repeated_reads_share_one_row(self) -> None:
        first = get_or_create_company_settings(self.db)
        second = get_or_create_company_settings(self.db)

        self.assertEqual(first.id, second.id)
        self.assertEqual(self.db.scalar(select(func.count(CompanySettings.id))), 1)

    def test_update_submission_policy(self) -> None:
        updated = update_submission_policy(self.db, deadline_hour=18, grace_days=0)

        self.assertEqual(updated.eod_deadline_hour, 18)
        self.assertEqual(updated.eod_deadline_minute, 59)
        self.assertEqual(updated.eod_grace_days, 0)

    def test_update_submission_policy_validates_values(self) -> None:
        cases = (
            ({"deadline_hour": 24}, "INVALID_DEADLINE_HOUR"),
            ({"deadline_minute": 60}, "INVALID_DEADLINE_MINUTE"),
            ({"grace_days": -1}, "INVALID_GRACE_DAYS"),
        )
        for kwargs, code in cases:
            with self.subTest(code=code):
                with self.assertRaises(ValidationFailedError) as ctx:
                    update_submission_policy(self.db, **kwargs)
                self.assertEqual(ctx.exception.code, code)

        self.assertEqual(get_or_create_company_settings(self.db).eod_deadline_hour, 23)


class RemoteWindowNotificationTests(DatabaseTestCase):
    def test_jobs_are_created_once_per_employee_and_window(self) -> None:
        first = self.add_employee("Arta Hoxha")
        second = self.add_employee("Besnik Kola")
        self.add_employee("Former Employee", is_active=False)

        created = enqueue_remote_window_opened(self.db, start_date=date(2024, 11, 18), end_date=date(2024, 11, 24))
        repeated = enqueue_remote_window_opened(self.db, start_date=date(2024, 11, 18), end_date=date(2024, 11, 24))
        next_window = enqueue_remote_window_opened(self.db, start_date=date(2024, 12, 2), end_date=date(2024, 12, 8))

        self.assertEqual(sorted(job.employee_id for job in created), [first.id, second.id])
        self.assertEqual(repeated, [])
        self.assertEqual(len(next_window), 2)
        self.assertEqual(
            created[0].idempotency_key,
            f"{JOB_TYPE_REMOTE_WINDOW_OPENED}:{created[0].employee_id}:2024-11-18",
        )
        self.assertEqual(created[0].payload["window_end"], "2024-11-24")
        self.assertEqual(len(list_pending_jobs(self.db, job_type=JOB_TYPE_REMOTE_WINDOW_OPENED)), 4)
        self.assertEqual(self.db.scalar(select(func.count(NotificationJob.id))), 4)


if __name__ == "__main__":
    unittest.main()
