from __future__ import annotations

import unittest
from datetime import date, datetime, timezone

from app.errors import ForbiddenError, NotFoundError, PolicyConflictError, RecordConflictError, ValidationFailedError
from app.models import Holiday
from app.schemas import EodReportCreateRequest, EodReportUpdateRequest
from app.security import Actor, ActorRole
from app.services.calendar_policy import normalize_utc
from app.services.eod_reports import (
    delete_eod_report,
    get_eod_report,
    list_eod_reports,
    submit_eod_report,
    update_eod_report,
)
from tests.db_support import DatabaseTestCase

TASK = {
    "client_details": "Acme Sh.p.k.",
    "ticket": "ACME-142",
    "type_of_work_done": "IMPLEMENTATION",
    "task_estimated_time": 3,
    "time_spent_on_ticket": 2.5,
    "task_lifecycle": "NEW",
    "task_status": "DONE",
}


def _utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class EodReportTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.employee = self.add_employee()
        self.owner = Actor(actor_id="user-1", role=ActorRole.EMPLOYEE, employee_id=self.employee.id)
        self.admin = Actor(actor_id="admin-1", role=ActorRole.ADMIN)

    def _payload(self, day: str = "2024-06-03", *, submit: bool = True, **overrides) -> EodReportCreateRequest:  # type: ignore[no-untyped-def]
        values = {"day_date": day, "summary": "Wrapped up ACME-142", "tasks": [TASK], "submit": submit}
        values.update(overrides)
        return EodReportCreateRequest(**values)

    def test_on_time_submission(self) -> None:
        report = submit_eod_report(self.db, actor=self.owner, payload=self._payload(), now=_utc(2024, 6, 4, 12, 0))

        self.assertEqual(report.employee_id, self.employee.id)
        self.assertEqual(report.day_date, date(2024, 6, 3))
        self.assertFalse(report.is_late)
        self.assertEqual(normalize_utc(report.submitted_at), _utc(2024, 6, 4, 12, 0))
        self.assertEqual(report.tasks[0]["ticket"], "ACME-142")

    def test_late_submission_is_flagged_once(self) -> None:
        report = submit_eod_report(self.db, actor=self.owner, payload=self._payload(), now=_utc(2024, 6, 6, 0, 0, 1))

        self.assertTrue(report.is_late)

    def test_draft_has_no_submission_time(self) -> None:
        report = submit_eod_report(
            self.db,
            actor=self.owner,
            payload=self._payload(submit=False),
            now=_utc(2024, 6, 3, 17, 0),
        )

        self.assertIsNone(report.submitted_at)
        self.assertFalse(report.is_late)

    def test_future_date_is_rejected(self) -> None:
        with self.assertRaises(ValidationFailedError) as ctx:
            submit_eod_report(self.db, actor=self.owner, payload=self._payload("2024-06-05"), now=_utc(2024, 6, 4, 9, 0))
        self.assertEqual(ctx.exception.code, "FUTURE_REPORT_DATE")

    def test_tasks_are_required(self) -> None:
        with self.assertRaises(ValidationFailedError) as ctx:
            submit_eod_report(self.db, actor=self.owner, payload=self._payload(tasks=[]), now=_utc(2024, 6, 4, 9, 0))
        self.assertEqual(ctx.exception.code, "TASKS_REQUIRED")

    def test_owner_cannot_report_on_weekend_or_holiday(self) -> None:
        self.db.add(Holiday(name="Holiday", day_date=date(2024, 6, 4), region="AL"))
        self.db.commit()

        for day in ("2024-06-01", "2024-06-04"):
            with self.subTest(day=day):
                with self.assertRaises(ValidationFailedError) as ctx:
                    submit_eod_report(self.db, actor=self.owner, payload=self._payload(day), now=_utc(2024, 6, 5, 9, 0))
                self.assertEqual(ctx.exception.code, "NON_WORKING_DAY")

    def test_privileged_actor_may_report_on_weekend(self) -> None:
        report = submit_eod_report(
            self.db,
            actor=self.admin,
            payload=self._payload("2024-06-01", employee_id=self.employee.id),
            now=_utc(2024, 6, 2, 9, 0),
        )

        self.assertEqual(report.day_date, date(2024, 6, 1))

    def test_duplicate_report_is_a_record_conflict(self) -> None:
        submit_eod_report(self.db, actor=self.owner, payload=self._payload(), now=_utc(2024, 6, 4, 9, 0))

        with self.assertRaises(RecordConflictError) as ctx:
            submit_eod_report(self.db, actor=self.owner, payload=self._payload(), now=_utc(2024, 6, 4, 10, 0))
        self.assertEqual(ctx.exception.message, "An EOD report already exists for this date.")

    def test_owner_cannot_report_for_someone_else(self) -> None:
        colleague = self.add_employee("Besnik Kola")

        with self.assertRaises(ForbiddenError):
            submit_eod_report(
                self.db,
                actor=self.owner,
                payload=self._payload(employee_id=colleague.id),
                now=_utc(2024, 6, 4, 9, 0),
            )

    def test_owner_edits_only_within_grace_window(self) -> None:
        report = submit_eod_report(self.db, actor=self.owner, payload=self._payload(), now=_utc(2024, 6, 3, 18, 0))

        updated = update_eod_report(
            self.db,
            report_id=report.id,
            actor=self.owner,
            payload=EodReportUpdateRequest(summary="Added notes"),
            now=_utc(2024, 6, 5, 17, 0),
        )
        self.assertEqual(updated.summary, "Added notes")

        with self.assertRaises(PolicyConflictError) as ctx:
            update_eod_report(
                self.db,
                report_id=report.id,
                actor=self.owner,
                payload=EodReportUpdateRequest(summary="Too late"),
                now=_utc(2024, 6, 5, 19, 0),
            )
        self.assertEqual(ctx.exception.code, "EDIT_WINDOW_CLOSED")

        corrected = update_eod_report(
            self.db,
            report_id=report.id,
            actor=self.admin,
            payload=EodReportUpdateRequest(summary="HR correction"),
            now=_utc(2024, 6, 20, 9, 0),
        )
        self.assertEqual(corrected.summary, "HR correction")

    def test_submitting_a_draft_computes_lateness_then(self) -> None:
        draft = submit_eod_report(
            self.db,
            actor=self.owner,
            payload=self._payload(submit=False),
            now=_utc(2024, 6, 3, 17, 0),
        )

        submitted = update_eod_report(
            self.db,
            report_id=draft.id,
            actor=self.owner,
            payload=EodReportUpdateRequest(submit=True),
            now=_utc(2024, 6, 7, 10, 0),
        )

        self.assertTrue(submitted.is_late)
        self.assertEqual(normalize_utc(submitted.submitted_at), _utc(2024, 6, 7, 10, 0))

    def test_resubmitting_does_not_recompute_lateness(self) -> None:
        report = submit_eod_report(self.db, actor=self.owner, payload=self._payload(), now=_utc(2024, 6, 4, 9, 0))

        again = update_eod_report(
            self.db,
            report_id=report.id,
            actor=self.owner,
            payload=EodReportUpdateRequest(submit=True),
            now=_utc(2024, 6, 5, 23, 0),
        )

        self.assertFalse(again.is_late)
        self.assertEqual(normalize_utc(again.submitted_at), _utc(2024, 6, 4, 9, 0))

    def test_manual_correction_is_stored_as_given(self) -> None:
        report = submit_eod_report(self.db, actor=self.owner, payload=self._payload(), now=_utc(2024, 6, 9, 9, 0))
        self.assertTrue(report.is_late)

        corrected = update_eod_report(
            self.db,
            report_id=report.id,
            actor=self.admin,
            payload=EodReportUpdateRequest(submitted_at=_utc(2024, 6, 3, 20, 0), is_late=True),
            now=_utc(2024, 6, 10, 9, 0),
        )
        self.assertTrue(corrected.is_late)
        self.assertEqual(normalize_utc(corrected.submitted_at), _utc(2024, 6, 3, 20, 0))

        after_owner_edit = update_eod_report(
            self.db,
            report_id=report.id,
            actor=self.owner,
            payload=EodReportUpdateRequest(summary="Typo fix"),
            now=_utc(2024, 6, 4, 9, 0),
        )
        self.assertTrue(after_owner_edit.is_late)

    def test_manual_submission_time_alone_recomputes_lateness(self) -> None:
        report = submit_eod_report(self.db, actor=self.owner, payload=self._payload(), now=_utc(2024, 6, 9, 9, 0))

        corrected = update_eod_report(
            self.db,
            report_id=report.id,
            actor=self.admin,
            payload=EodReportUpdateRequest(submitted_at=_utc(2024, 6, 3, 20, 0)),
            now=_utc(2024, 6, 10, 9, 0),
        )

        self.assertFalse(corrected.is_late)

    def test_owner_cannot_touch_submission_fields(self) -> None:
        report = submit_eod_report(self.db, actor=self.owner, payload=self._payload(), now=_utc(2024, 6, 9, 9, 0))

        with self.assertRaises(ForbiddenError):
            update_eod_report(
                self.db,
                report_id=report.id,
                actor=self.owner,
                payload=EodReportUpdateRequest(is_late=False),
                now=_utc(2024, 6, 9, 10, 0),
            )

    def test_owner_cannot_edit_someone_elses_report(self) -> None:
        colleague = self.add_employee("Besnik Kola")
        report = submit_eod_report(
            self.db,
            actor=self.admin,
            payload=self._payload(employee_id=colleague.id),
            now=_utc(2024, 6, 4, 9, 0),
        )

        with self.assertRaises(ForbiddenError):
            update_eod_report(
                self.db,
                report_id=report.id,
                actor=self.owner,
                payload=EodReportUpdateRequest(summary="Not mine"),
                now=_utc(2024, 6, 4, 10, 0),
            )

    def test_privileged_date_move_respects_uniqueness(self) -> None:
        first = submit_eod_report(self.db, actor=self.owner, payload=self._payload("2024-06-03"), now=_utc(2024, 6, 4, 9, 0))
        submit_eod_report(self.db, actor=self.owner, payload=self._payload("2024-06-04"), now=_utc(2024, 6, 4, 19, 0))

        with self.assertRaises(RecordConflictError):
            update_eod_report(
                self.db,
                report_id=first.id,
                actor=self.admin,
                payload=EodReportUpdateRequest(day_date="2024-06-04"),
                now=_utc(2024, 6, 5, 9, 0),
            )

        self.assertEqual(get_eod_report(self.db, first.id).day_date, date(2024, 6, 3))

    def test_list_get_and_delete(self) -> None:
        for day, now in (("2024-06-03", _utc(2024, 6, 3, 18, 0)), ("2024-06-04", _utc(2024, 6, 4, 18, 0))):
            submit_eod_report(self.db, actor=self.owner, payload=self._payload(day), now=now)

        reports = list_eod_reports(self.db, employee_id=self.employee.id, start=date(2024, 6, 4))
        self.assertEqual([report.day_date for report in reports], [date(2024, 6, 4)])

        delete_eod_report(self.db, reports[0].id)
        with self.assertRaises(NotFoundError):
            get_eod_report(self.db, reports[0].id)
        self.assertEqual(len(list_eod_reports(self.db, employee_id=self.employee.id)), 1)


if __name__ == "__main__":
    unittest.main()
