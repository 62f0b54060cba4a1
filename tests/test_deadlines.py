from datetime import date, datetime, timezone
import unittest
from zoneinfo import ZoneInfo

from app.errors import PolicyConflictError, ValidationFailedError
from app.models import CompanySettings
from app.services.deadlines import (
    SubmissionPolicy,
    compute_submission_deadline,
    edit_window_end,
    ensure_not_future_date,
    ensure_owner_can_edit,
    is_late,
)

UTC = ZoneInfo("UTC")


class SubmissionDeadlineTests(unittest.TestCase):
    def test_one_grace_day_deadline(self) -> None:
        policy = SubmissionPolicy(deadline_hour=23, deadline_minute=59, grace_days=1)

        deadline = compute_submission_deadline(date(2024, 6, 3), policy, UTC)

        self.assertEqual(deadline, datetime(2024, 6, 4, 23, 59, 59, 999000, tzinfo=timezone.utc))

    def test_lateness_boundary_is_strict(self) -> None:
        policy = SubmissionPolicy(deadline_hour=23, deadline_minute=59, grace_days=1)
        report_date = date(2024, 6, 3)

        on_deadline = datetime(2024, 6, 4, 23, 59, 59, 999000, tzinfo=timezone.utc)
        just_after = datetime(2024, 6, 5, 0, 0, 0, tzinfo=timezone.utc)

        self.assertFalse(is_late(report_date, on_deadline, policy, UTC))
        self.assertTrue(is_late(report_date, just_after, policy, UTC))

    def test_zero_grace_still_allows_the_next_day(self) -> None:
        zero = SubmissionPolicy(grace_days=0)
        one = SubmissionPolicy(grace_days=1)

        self.assertEqual(
            compute_submission_deadline(date(2024, 6, 3), zero, UTC),
            compute_submission_deadline(date(2024, 6, 3), one, UTC),
        )

    def test_grace_days_extend_the_deadline(self) -> None:
        policy = SubmissionPolicy(deadline_hour=18, deadline_minute=0, grace_days=3)

        deadline = compute_submission_deadline(date(2024, 6, 3), policy, UTC)

        self.assertEqual(deadline, datetime(2024, 6, 6, 18, 0, 59, 999000, tzinfo=timezone.utc))

    def test_deadline_follows_attendance_timezone(self) -> None:
        policy = SubmissionPolicy(deadline_hour=23, deadline_minute=59, grace_days=1)

        deadline = compute_submission_deadline(date(2024, 6, 3), policy, ZoneInfo("Europe/Tirane"))

        self.assertEqual(deadline, datetime(2024, 6, 4, 21, 59, 59, 999000, tzinfo=timezone.utc))

    def test_policy_from_settings_row(self) -> None:
        row = CompanySettings(eod_deadline_hour=18, eod_deadline_minute=30, eod_grace_days=4)

        policy = SubmissionPolicy.from_settings(row)

        self.assertEqual(policy, SubmissionPolicy(deadline_hour=18, deadline_minute=30, grace_days=4))


class SubmissionGuardTests(unittest.TestCase):
    def test_future_report_date_is_rejected(self) -> None:
        ensure_not_future_date(date(2024, 6, 3), date(2024, 6, 3))
        with self.assertRaises(ValidationFailedError) as ctx:
            ensure_not_future_date(date(2024, 6, 4), date(2024, 6, 3))
        self.assertEqual(ctx.exception.code, "FUTURE_REPORT_DATE")

    def test_edit_window_runs_from_submission(self) -> None:
        policy = SubmissionPolicy(grace_days=2)
        submitted_at = datetime(2024, 6, 3, 10, 0, tzinfo=timezone.utc)

        self.assertEqual(edit_window_end(submitted_at, policy), datetime(2024, 6, 5, 10, 0, tzinfo=timezone.utc))
        ensure_owner_can_edit(submitted_at, policy, datetime(2024, 6, 5, 9, 59, tzinfo=timezone.utc))

        with self.assertRaises(PolicyConflictError) as ctx:
            ensure_owner_can_edit(submitted_at, policy, datetime(2024, 6, 5, 10, 1, tzinfo=timezone.utc))
        self.assertEqual(ctx.exception.code, "EDIT_WINDOW_CLOSED")
        self.assertEqual(ctx.exception.status_code, 409)

    def test_drafts_are_always_editable(self) -> None:
        ensure_owner_can_edit(None, SubmissionPolicy(grace_days=0), datetime(2030, 1, 1, tzinfo=timezone.utc))

    def test_naive_submission_time_is_treated_as_utc(self) -> None:
        policy = SubmissionPolicy(grace_days=1)
        naive = datetime(2024, 6, 3, 10, 0)

        self.assertEqual(edit_window_end(naive, policy), datetime(2024, 6, 4, 10, 0, tzinfo=timezone.utc))


if __name__ == "__main__":
    unittest.main()
