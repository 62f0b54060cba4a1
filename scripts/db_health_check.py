#!/usr/bin/env python
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import create_engine, text


EXPECTED_HEAD = "0001_initial"
REQUIRED_TABLES = (
    "employees",
    "holidays",
    "leaves",
    "company_settings",
    "remote_work_logs",
    "eod_reports",
    "audit_logs",
    "notification_jobs",
)


def load_env_if_exists() -> None:
    env_file = Path(".env")
    if not env_file.exists():
        return
    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def run() -> dict:
    load_env_if_exists()
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL not found (.env or env vars).")
    hard_cap = int(os.environ.get("REMOTE_WORK_HARD_CAP", "7"))

    engine = create_engine(database_url)
    report: dict = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "checks": [],
    }

    def add(name: str, status: str, details: dict) -> None:
        report["checks"].append(
            {
                "name": name,
                "status": status,
                "details": details,
            }
        )

    with engine.connect() as conn:
        tables = set(
            conn.execute(
                text(
                    """
                    select table_name
                    from information_schema.tables
                    where table_schema='public'
                    """
                )
            ).scalars()
        )

        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = [
                row[0]
                for row in conn.execute(text("select version_num from alembic_version")).fetchall()
            ]
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_HEAD, "current": current_versions},
        )

        missing_tables = [table for table in REQUIRED_TABLES if table not in tables]
        add("missing_tables", "fail" if missing_tables else "ok", {"tables": missing_tables})

        if "company_settings" in tables:
            settings_rows = conn.execute(text("select count(*) from company_settings")).scalar() or 0
            add("company_settings_singleton", "ok" if settings_rows <= 1 else "fail", {"rows": settings_rows})

        if "remote_work_logs" in tables:
            weeks_over_cap = conn.execute(
                text(
                    """
                    select employee_id, date_trunc('week', day_date)::date as week_start, count(*)
                    from remote_work_logs
                    group by employee_id, date_trunc('week', day_date)
                    having count(*) > :hard_cap
                    limit 20
                    """
                ),
                {"hard_cap": hard_cap},
            ).fetchall()
            add(
                "remote_work_weeks_over_hard_cap",
                "fail" if weeks_over_cap else "ok",
                {"hard_cap": hard_cap, "rows": [[row[0], str(row[1]), row[2]] for row in weeks_over_cap]},
            )

        if "eod_reports" in tables:
            late_without_submission = conn.execute(
                text(
                    """
                    select id
                    from eod_reports
                    where is_late = true and submitted_at is null
                    limit 20
                    """
                )
            ).fetchall()
            add(
                "eod_late_without_submission",
                "warn" if late_without_submission else "ok",
                {"sample_ids": [row[0] for row in late_without_submission]},
            )

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
