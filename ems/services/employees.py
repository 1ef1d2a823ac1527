"""Manager-scoped roster operations."""

import logging
import secrets

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core.enums import AccountStatus, LeaveStatus, Role
from ems.core.exceptions import DeliveryError, DuplicateEmail, NotFoundError
from ems.db.models.leave import LeaveRequest
from ems.db.models.user import User
from ems.schemas.employee import EmployeeCreate, EmployeeUpdate
from ems.services.accounts import AccountProvisioner
from ems.services.email import MailSender, render_welcome_email, send_email

logger = logging.getLogger(__name__)


def generate_temporary_password() -> str:
    return secrets.token_urlsafe(12)


class EmployeeService:
    """Every query is filtered by the calling manager's id."""

    def __init__(
        self,
        session: AsyncSession,
        provisioner: AccountProvisioner | None = None,
        mailer: MailSender = send_email,
    ):
        self.session = session
        self.provisioner = provisioner or AccountProvisioner(session)
        self.mailer = mailer

    def _roster(self, manager: User):
        return select(User).where(User.role == Role.EMPLOYEE.value, User.manager_id == manager.id)

    async def list_employees(self, manager: User) -> list[User]:
        result = await self.session.scalars(self._roster(manager).order_by(User.name))
        return list(result)

    async def get_employee(self, manager: User, employee_id: int) -> User:
        employee = await self.session.scalar(self._roster(manager).where(User.id == employee_id))
        if employee is None:
            raise NotFoundError("Employee not found.")
        return employee

    async def add_employee(self, manager: User, payload: EmployeeCreate) -> User:
        """Provision an employee under `manager` and mail them a temporary password.

        The password only ever leaves the service in that email. If delivery
        fails the account is kept and `DeliveryError` tells the manager to
        have the employee use the password-reset flow.
        """
        # An id collision rolls the session back and expires `manager`.
        manager_label = manager.employee_id
        manager_name = manager.name
        temporary_password = generate_temporary_password()
        employee = await self.provisioner.provision(
            name=payload.name,
            email=payload.email,
            password=temporary_password,
            role=Role.EMPLOYEE,
            manager=manager,
            position=payload.position,
            department=payload.department,
            salary=payload.salary,
        )
        logger.info("Manager %s added employee %s", manager_label, employee.employee_id)

        subject, body = render_welcome_email(employee.name, employee.email, temporary_password, manager_name)
        sent, err = await self.mailer(employee.email, subject, body)
        if not sent:
            logger.warning("Welcome email for %s not delivered: %s", employee.employee_id, err)
            raise DeliveryError(
                "Employee account created, but the welcome email could not be sent. "
                "Ask the employee to reset their password."
            )
        return employee

    async def update_employee(self, manager: User, employee_id: int, payload: EmployeeUpdate) -> User:
        """Apply a manager's edits to one of their own employees.

        Setting `status` to terminated locks the account out: login is
        refused and existing tokens stop resolving.
        """
        employee = await self.get_employee(manager, employee_id)
        changes = {field: value for field, value in payload.model_dump(exclude_unset=True).items() if value is not None}

        if "email" in changes and changes["email"] != employee.email:
            if await self.provisioner.get_by_email(changes["email"]):
                raise DuplicateEmail()
        if "status" in changes:
            changes["status"] = AccountStatus(changes["status"]).value

        for field, value in changes.items():
            setattr(employee, field, value)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateEmail() from exc
        await self.session.refresh(employee)
        logger.info(
            "Manager %s updated employee %s (%s)",
            manager.employee_id,
            employee.employee_id,
            ", ".join(sorted(changes)),
        )
        return employee

    async def delete_employee(self, manager: User, employee_id: int) -> User:
        employee = await self.get_employee(manager, employee_id)
        await self.session.delete(employee)
        await self.session.commit()
        logger.info("Manager %s removed employee %s", manager.employee_id, employee.employee_id)
        return employee

    async def stats(self, manager: User) -> dict[str, int]:
        roster_ids = self._roster(manager).with_only_columns(User.id)
        total = await self.session.scalar(select(func.count()).select_from(roster_ids.subquery()))
        pending = await self.session.scalar(
            select(func.count())
            .select_from(LeaveRequest)
            .where(LeaveRequest.user_id.in_(roster_ids), LeaveRequest.status == LeaveStatus.PENDING.value)
        )
        return {"total_employees": total or 0, "pending_leaves": pending or 0}
