from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, RecordConflictError
from app.models import Employee
from app.schemas import EmployeeCreate


def ensure_employee_exists(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError(code="EMPLOYEE_NOT_FOUND", message=f"Employee {employee_id} not found.")
    return employee


def create_employee(db: Session, payload: EmployeeCreate) -> Employee:
    employee = Employee(
        full_name=payload.full_name.strip(),
        email=payload.email,
        hire_date=payload.hire_date,
        is_active=payload.is_active,
    )
    db.add(employee)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise RecordConflictError(message="An employee with this email already exists.", code="EMPLOYEE_EXISTS") from exc
    db.refresh(employee)
    return employee


def list_active_employee_ids(db: Session) -> list[int]:
    return list(
        db.scalars(
            select(Employee.id).where(Employee.is_active.is_(True)).order_by(Employee.id.asc())
        ).all()
    )
