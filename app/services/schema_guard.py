from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "issue_count": len(self.issues),
            "warning_count": len(self.warnings),
        }


REQUIRED_TABLE_COLUMNS: dict[str, set[str]] = {
    "employees": {"id", "hire_date", "remote_work_revision"},
    "company_settings": {
        "id",
        "eod_deadline_hour",
        "eod_deadline_minute",
        "eod_grace_days",
        "remote_work_frequency",
        "remote_work_limit",
        "remote_window_open",
        "remote_window_start",
        "remote_window_end",
    },
    "holidays": {"id", "day_date", "region"},
    "leaves": {"id", "employee_id", "start_date", "end_date", "status"},
    "remote_work_logs": {"id", "employee_id", "day_date"},
    "eod_reports": {"id", "employee_id", "day_date", "submitted_at", "is_late"},
    "alembic_version": {"version_num"},
}

REQUIRED_ENUM_VALUES: dict[str, set[str]] = {
    "remote_work_frequency": {"WEEKLY", "MONTHLY"},
    "leave_status": {"APPROVED", "PENDING", "REJECTED"},
}

# Natural keys the services rely on to turn duplicate inserts into conflicts.
REQUIRED_UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    "remote_work_logs": ("employee_id", "day_date"),
    "eod_reports": ("employee_id", "day_date"),
    "holidays": ("day_date", "region"),
}


def _collect_enum_labels(inspector: Any, warnings: list[str]) -> dict[str, set[str]] | None:
    # Only PostgreSQL exposes named enums; other backends report a warning.
    try:
        enums = inspector.get_enums() or []
    except Exception as exc:
        warnings.append(f"ENUM_INSPECTION_FAILED:{exc.__class__.__name__}")
        return None

    enum_values_by_name: dict[str, set[str]] = {}
    for enum_item in enums:
        name = str(enum_item.get("name") or "").strip()
        if not name:
            continue
        labels = enum_item.get("labels")
        if isinstance(labels, list):
            enum_values_by_name[name] = {str(label) for label in labels}
    return enum_values_by_name


def _unique_column_sets(inspector: Any, table_name: str) -> set[tuple[str, ...]]:
    unique_sets = {
        tuple(sorted(item.get("column_names") or ())) for item in inspector.get_unique_constraints(table_name)
    }
    unique_sets.update(
        tuple(sorted(item.get("column_names") or ()))
        for item in inspector.get_indexes(table_name)
        if item.get("unique")
    )
    return unique_sets


def verify_runtime_schema(engine: Engine) -> SchemaGuardResult:
    issues: list[str] = []
    warnings: list[str] = []
    checked_at_utc = datetime.now(timezone.utc)
    inspector = inspect(engine)

    for table_name, required_columns in REQUIRED_TABLE_COLUMNS.items():
        try:
            column_names = {str(item.get("name")) for item in inspector.get_columns(table_name)}
        except Exception as exc:
            issues.append(f"TABLE_UNREADABLE:{table_name}:{exc.__class__.__name__}")
            continue

        missing_columns = sorted(item for item in required_columns if item not in column_names)
        if missing_columns:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing_columns)}")

    for table_name, key_columns in REQUIRED_UNIQUE_KEYS.items():
        try:
            unique_sets = _unique_column_sets(inspector, table_name)
        except Exception as exc:
            issues.append(f"UNIQUE_KEYS_UNREADABLE:{table_name}:{exc.__class__.__name__}")
            continue
        if tuple(sorted(key_columns)) not in unique_sets:
            issues.append(f"MISSING_UNIQUE_KEY:{table_name}:{','.join(key_columns)}")

    enum_values_by_name = _collect_enum_labels(inspector, warnings)
    if enum_values_by_name is not None:
        for enum_name, required_values in REQUIRED_ENUM_VALUES.items():
            if enum_name not in enum_values_by_name:
                warnings.append(f"ENUM_NOT_FOUND:{enum_name}")
                continue
            missing_values = sorted(item for item in required_values if item not in enum_values_by_name[enum_name])
            if missing_values:
                issues.append(f"MISSING_ENUM_VALUES:{enum_name}:{','.join(missing_values)}")

    try:
        with engine.connect() as connection:
            row = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
            version = str(row).strip() if row is not None else ""
            if not version:
                issues.append("ALEMBIC_VERSION_EMPTY")
    except Exception as exc:
        issues.append(f"ALEMBIC_VERSION_CHECK_FAILED:{exc.__class__.__name__}")

    return SchemaGuardResult(
        ok=len(issues) == 0,
        checked_at_utc=checked_at_utc,
        issues=issues,
        warnings=warnings,
    )
