from __future__ import annotations

import unittest
from datetime import date

from fastapi.testclient import TestClient

from app.db import Base, get_db
from app.main import app
from app.models import AuditLog, Employee
from app.settings import get_settings
from tests.db_support import build_sqlite_engine, override_get_db, session_factory

ADMIN_HEADERS = {"X-Actor-Id": "admin-1", "X-Actor-Role": "ADMIN"}


class AttendanceApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = build_sqlite_engine()
        Base.metadata.create_all(self.engine)
        self.Session = session_factory(self.engine)
        app.dependency_overrides[get_db] = override_get_db(self.Session)
        self.client = TestClient(app)

        with self.Session() as db:
            employee = Employee(full_name="Arta Hoxha", hire_date=date(2024, 1, 1))
            db.add(employee)
            db.commit()
            self.employee_id = employee.id
        self.employee_headers = {
            "X-Actor-Id": "user-1",
            "X-Actor-Role": "EMPLOYEE",
            "X-Employee-Id": str(self.employee_id),
        }

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def test_missing_actor_is_unauthenticated(self) -> None:
        response = self.client.get("/api/remote-work/window")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "MISSING_ACTOR")

    def test_request_id_is_echoed_in_errors(self) -> None:
        response = self.client.post(
            "/api/admin/remote-work/window/open",
            json={"start_date": "2024-11-18", "end_date": "2024-11-30"},
            headers={**ADMIN_HEADERS, "X-Request-Id": "req-123"},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.headers["X-Request-Id"], "req-123")
        self.assertEqual(
            response.json(),
            {
                "error": {
                    "code": "WINDOW_TOO_LONG",
                    "message": "The remote work window can span at most 7 days.",
                    "request_id": "req-123",
                }
            },
        )

    def test_employee_cannot_open_the_window(self) -> None:
        response = self.client.post(
            "/api/admin/remote-work/window/open",
            json={"start_date": "2024-11-18"},
            headers=self.employee_headers,
        )

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "FORBIDDEN")

    def test_admin_opens_window_and_employee_sees_it(self) -> None:
        opened = self.client.post(
            "/api/admin/remote-work/window/open",
            json={"start_date": "2024-11-18"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(opened.status_code, 200)
        self.assertEqual(opened.json()["end_date"], "2024-11-24")

        state = self.client.get("/api/remote-work/window", headers=self.employee_headers)
        self.assertEqual(state.status_code, 200)
        self.assertTrue(state.json()["is_open"])
        self.assertEqual(state.json()["start_date"], "2024-11-18")

        with self.Session() as db:
            actions = [row.action for row in db.query(AuditLog).all()]
        self.assertIn("REMOTE_WINDOW_OPENED", actions)

    def test_remote_log_is_audited_and_closed_window_conflicts(self) -> None:
        closed = self.client.post(
            "/api/remote-work/logs",
            json={"day_date": "2024-11-19"},
            headers=self.employee_headers,
        )
        self.assertEqual(closed.status_code, 409)
        self.assertEqual(closed.json()["error"]["code"], "REMOTE_WINDOW_CLOSED")

        self.client.post(
            "/api/admin/remote-work/window/open",
            json={"start_date": "2024-11-18"},
            headers=ADMIN_HEADERS,
        )
        created = self.client.post(
            "/api/remote-work/logs",
            json={"day_date": "2024-11-19", "reason": "Plumber visit"},
            headers=self.employee_headers,
        )
        self.assertEqual(created.status_code, 201)

        with self.Session() as db:
            audit = db.query(AuditLog).filter(AuditLog.action == "REMOTE_WORK_LOGGED").one()
        self.assertEqual(audit.entity_id, str(created.json()["id"]))
        self.assertEqual(audit.actor_id, "user-1")
        self.assertEqual(audit.details, {"employee_id": self.employee_id, "day_date": "2024-11-19"})

    def test_employee_submits_late_report(self) -> None:
        response = self.client.post(
            "/api/eod-reports",
            json={
                "day_date": "2024-06-03",
                "summary": "Closed ACME-142",
                "tasks": [
                    {
                        "client_details": "Acme Sh.p.k.",
                        "ticket": "ACME-142",
                        "type_of_work_done": "IMPLEMENTATION",
                        "time_spent_on_ticket": 2.5,
                        "task_lifecycle": "NEW",
                        "task_status": "DONE",
                    }
                ],
                "submit": True,
            },
            headers=self.employee_headers,
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["employee_id"], self.employee_id)
        self.assertEqual(body["day_date"], "2024-06-03")
        self.assertTrue(body["is_late"])

        listed = self.client.get("/api/eod-reports", headers=self.employee_headers)
        self.assertEqual([item["id"] for item in listed.json()], [body["id"]])

    def test_employee_cannot_read_other_employees_data(self) -> None:
        response = self.client.get(
            "/api/compliance/missing-reports",
            params={"employee_id": self.employee_id + 1},
            headers=self.employee_headers,
        )

        self.assertEqual(response.status_code, 403)

    def test_saturday_is_not_a_working_day(self) -> None:
        response = self.client.get(
            "/api/calendar/working-day",
            params={"date": "2024-06-01"},
            headers=self.employee_headers,
        )

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["is_working_day"])

    def test_malformed_date_is_rejected(self) -> None:
        response = self.client.get(
            "/api/calendar/working-day",
            params={"date": "01/06/2024"},
            headers=self.employee_headers,
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "INVALID_DATE")

    def test_health(self) -> None:
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")
        self.assertEqual(response.json()["service"], get_settings().app_name)


if __name__ == "__main__":
    unittest.main()
