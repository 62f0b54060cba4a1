from __future__ import annotations

import enum
from dataclasses import dataclass

from fastapi import Depends, Request

from app.errors import ApiError, ForbiddenError, ValidationFailedError

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"
EMPLOYEE_ID_HEADER = "X-Employee-Id"


class ActorRole(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    HR = "HR"
    ADMIN = "ADMIN"


PRIVILEGED_ROLES = frozenset({ActorRole.HR, ActorRole.ADMIN})


@dataclass(frozen=True, slots=True)
class Actor:
    actor_id: str
    role: ActorRole
    employee_id: int | None = None

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    def resolve_target_employee(self, requested_employee_id: int | None) -> int:
        """Owners act on themselves; HR and admins may act on anyone's behalf."""
        if self.is_privileged:
            target = requested_employee_id if requested_employee_id is not None else self.employee_id
            if target is None:
                raise ValidationFailedError(code="EMPLOYEE_ID_REQUIRED", message="employee_id is required.")
            return target

        if self.employee_id is None:
            raise ForbiddenError("Caller is not linked to an employee record.")
        if requested_employee_id is not None and requested_employee_id != self.employee_id:
            raise ForbiddenError("Employees can only act on their own records.")
        return self.employee_id

    def ensure_owns(self, employee_id: int) -> None:
        if not self.is_privileged and self.employee_id != employee_id:
            raise ForbiddenError("Employees can only act on their own records.")


def get_actor(request: Request) -> Actor:
    """Caller identity as forwarded by the authenticating gateway."""
    actor_id = (request.headers.get(ACTOR_ID_HEADER) or "").strip()
    if not actor_id:
        raise ApiError(status_code=401, code="MISSING_ACTOR", message="Caller identity is missing.")

    raw_role = (request.headers.get(ACTOR_ROLE_HEADER) or ActorRole.EMPLOYEE.value).strip().upper()
    try:
        role = ActorRole(raw_role)
    except ValueError as exc:
        raise ApiError(status_code=401, code="INVALID_ACTOR_ROLE", message="Unknown caller role.") from exc

    raw_employee_id = (request.headers.get(EMPLOYEE_ID_HEADER) or "").strip()
    employee_id: int | None = None
    if raw_employee_id:
        try:
            employee_id = int(raw_employee_id)
        except ValueError as exc:
            raise ApiError(status_code=401, code="INVALID_EMPLOYEE_ID", message="Invalid employee id header.") from exc

    request.state.actor = role.value.lower()
    request.state.actor_id = actor_id
    request.state.employee_id = employee_id
    return Actor(actor_id=actor_id, role=role, employee_id=employee_id)


def require_privileged(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_privileged:
        raise ForbiddenError()
    return actor
