"""Approval authority resolver.

Decides who may act on whose records. The decision functions are pure; the
loaders at the bottom turn token claims and employee rows into the inputs.

Rules:
- Supervisor: targets in a managed outlet (outlet mode) or in the same
  department (department mode).
- Manager: any outlet or department they administer.
- Admin: anywhere in their company. Super admin: anywhere.
- Nobody decides their own request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import Select, and_, false, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_engine.errors import AuthorizationDenied, NotFound
from hr_engine.models import (
    Company,
    Employee,
    EmployeeRole,
    GroupingMode,
    ManagedDepartment,
    ManagedOutlet,
)

ADMIN_ROLES = frozenset({EmployeeRole.ADMIN.value, EmployeeRole.SUPER_ADMIN.value})

# Approval level -> roles allowed to decide at that level
LEVEL_ROLES: dict[int, frozenset[str]] = {
    1: frozenset({EmployeeRole.SUPERVISOR.value}),
    2: frozenset({EmployeeRole.MANAGER.value}),
    3: ADMIN_ROLES,
}


@dataclass(frozen=True)
class ActorClaims:
    """Verified token claims."""

    employee_id: UUID | None
    role: str
    company_id: UUID


@dataclass(frozen=True)
class Actor:
    """Authenticated caller with the groupings they administer."""

    company_id: UUID
    role: str
    employee_id: UUID | None = None
    outlet_id: UUID | None = None
    department_id: UUID | None = None
    managed_outlet_ids: frozenset[UUID] = field(default_factory=frozenset)
    managed_department_ids: frozenset[UUID] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role == EmployeeRole.SUPER_ADMIN.value


@dataclass(frozen=True)
class ApprovalTarget:
    """The employee a record belongs to."""

    employee_id: UUID
    company_id: UUID
    grouping_mode: str
    outlet_id: UUID | None = None
    department_id: UUID | None = None

    @classmethod
    def for_employee(cls, employee: Employee) -> ApprovalTarget:
        return cls(
            employee_id=employee.employee_id,
            company_id=employee.company_id,
            grouping_mode=employee.company.grouping_mode,
            outlet_id=employee.outlet_id,
            department_id=employee.department_id,
        )


def can_act_for(actor: Actor, target: ApprovalTarget) -> bool:
    """Whether ``actor`` may decide on records belonging to ``target``."""
    if actor.employee_id is not None and actor.employee_id == target.employee_id:
        return False
    if actor.is_super_admin:
        return True
    if actor.company_id != target.company_id:
        return False
    if actor.is_admin:
        return True

    outlet_mode = target.grouping_mode == GroupingMode.OUTLET.value
    if actor.role == EmployeeRole.SUPERVISOR.value:
        if outlet_mode:
            return target.outlet_id is not None and target.outlet_id in actor.managed_outlet_ids
        return target.department_id is not None and target.department_id == actor.department_id

    if actor.role == EmployeeRole.MANAGER.value:
        if outlet_mode:
            return target.outlet_id is not None and target.outlet_id in actor.managed_outlet_ids
        if target.department_id is None:
            return False
        return (
            target.department_id == actor.department_id
            or target.department_id in actor.managed_department_ids
        )

    return False


def require_authority(actor: Actor, target: ApprovalTarget) -> None:
    if not can_act_for(actor, target):
        raise AuthorizationDenied(
            f"Role '{actor.role}' may not act for employee {target.employee_id}"
        )


def initial_approval_level(grouping_mode: str, submitter_role: str) -> int:
    """First approval level of a new leave request."""
    if grouping_mode == GroupingMode.DEPARTMENT.value:
        return 3
    if submitter_role in (EmployeeRole.SUPERVISOR.value, EmployeeRole.MANAGER.value):
        return 2
    return 1


def role_matches_level(role: str, level: int) -> bool:
    return role in LEVEL_ROLES.get(level, frozenset())


def levels_for_role(role: str) -> list[int]:
    return [level for level, roles in LEVEL_ROLES.items() if role in roles]


def scope_to_actor(stmt: Select, actor: Actor) -> Select:
    """Restrict a query joined to Employee to the employees ``actor`` may act for.

    The SQL form of ``can_act_for``.
    """
    if actor.employee_id is not None:
        stmt = stmt.where(Employee.employee_id != actor.employee_id)
    if actor.is_super_admin:
        return stmt
    stmt = stmt.where(Employee.company_id == actor.company_id)
    if actor.is_admin:
        return stmt

    grouping_mode = (
        select(Company.grouping_mode)
        .where(Company.company_id == Employee.company_id)
        .scalar_subquery()
    )
    departments = {actor.department_id} - {None}
    if actor.role == EmployeeRole.MANAGER.value:
        departments |= actor.managed_department_ids
    elif actor.role != EmployeeRole.SUPERVISOR.value:
        return stmt.where(false())

    return stmt.where(
        or_(
            and_(
                grouping_mode == GroupingMode.OUTLET.value,
                Employee.outlet_id.in_(list(actor.managed_outlet_ids)),
            ),
            and_(
                grouping_mode == GroupingMode.DEPARTMENT.value,
                Employee.department_id.in_(list(departments)),
            ),
        )
    )


def require_admin(actor: Actor, company_id: UUID | None = None) -> None:
    """Back-office operations: admin of the company, or super admin."""
    if not actor.is_admin:
        raise AuthorizationDenied(f"Role '{actor.role}' may not perform this operation")
    if company_id is not None and not actor.is_super_admin and actor.company_id != company_id:
        raise AuthorizationDenied("Operation outside the actor's company")


async def find_employee(session: AsyncSession, employee_id: UUID | None) -> Employee | None:
    """Load an employee and its company with a fresh query."""
    if employee_id is None:
        return None
    result = await session.execute(select(Employee).where(Employee.employee_id == employee_id))
    return result.scalar_one_or_none()


async def get_employee(session: AsyncSession, employee_id: UUID) -> Employee:
    employee = await find_employee(session, employee_id)
    if employee is None:
        raise NotFound("Employee", employee_id)
    return employee


async def load_actor(session: AsyncSession, claims: ActorClaims) -> Actor:
    """Resolve token claims into an Actor.

    Admin claims need no employee row. Employee claims take their role and
    groupings from the database, not from the token.
    """
    if claims.role in ADMIN_ROLES and claims.employee_id is None:
        company = await session.get(Company, claims.company_id)
        if company is None:
            raise NotFound("Company", claims.company_id)
        return Actor(company_id=claims.company_id, role=claims.role)

    if claims.employee_id is None:
        raise AuthorizationDenied("Employee id claim is required")

    employee = await find_employee(session, claims.employee_id)
    if employee is None or employee.company_id != claims.company_id:
        raise AuthorizationDenied(f"Unknown employee {claims.employee_id}")
    if employee.status != "active":
        raise AuthorizationDenied(f"Employee {employee.employee_id} is {employee.status}")

    outlets = await session.execute(
        select(ManagedOutlet.outlet_id).where(ManagedOutlet.employee_id == employee.employee_id)
    )
    departments = await session.execute(
        select(ManagedDepartment.department_id).where(
            ManagedDepartment.employee_id == employee.employee_id
        )
    )

    return Actor(
        company_id=employee.company_id,
        role=claims.role if claims.role in ADMIN_ROLES else employee.role,
        employee_id=employee.employee_id,
        outlet_id=employee.outlet_id,
        department_id=employee.department_id,
        managed_outlet_ids=frozenset(outlets.scalars().all()),
        managed_department_ids=frozenset(departments.scalars().all()),
    )


async def find_approvers(
    session: AsyncSession, employee: Employee, role: str
) -> list[Employee]:
    """Active employees of ``role`` who administer ``employee``'s grouping."""
    stmt = select(Employee).where(
        Employee.company_id == employee.company_id,
        Employee.role == role,
        Employee.status == "active",
        Employee.employee_id != employee.employee_id,
    )
    if employee.company.grouping_mode == GroupingMode.OUTLET.value:
        if employee.outlet_id is None:
            return []
        stmt = stmt.join(ManagedOutlet, ManagedOutlet.employee_id == Employee.employee_id).where(
            ManagedOutlet.outlet_id == employee.outlet_id
        )
    else:
        if employee.department_id is None:
            return []
        stmt = stmt.where(Employee.department_id == employee.department_id)

    result = await session.execute(stmt)
    return list(result.scalars().unique().all())
