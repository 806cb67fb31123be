# This project was developed with assistance from AI tools.
"""Read-only data sources consumed by the compliance engine.

``ComplianceSource`` is the contract for the three collaborators (directory,
requirement catalog, record store). ``SqlComplianceSource`` reads them from
the application database; ``InMemoryComplianceSource`` serves snapshots the
caller already holds (in-process use and tests).

Read failures surface as ``SourceUnavailable``. Retrying is left to whoever
owns the connection.
"""

import abc
import logging
from collections.abc import Collection, Iterable

from db import (
    DocumentTemplate,
    Employee,
    EmployeeDocumentRecord,
    Organization,
    Team,
    TemplateAssignment,
)
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ...schemas.compliance import (
    AssignmentRow,
    DocumentRecordSnapshot,
    EmployeeSnapshot,
    RequirementSnapshot,
    TemplateSnapshot,
)
from .errors import SourceUnavailable

logger = logging.getLogger(__name__)

DIRECTORY = "directory"
CATALOG = "requirement_catalog"
RECORD_STORE = "record_store"

TemplateWithRequirements = tuple[TemplateSnapshot, list[RequirementSnapshot]]


class ComplianceSource(abc.ABC):
    """Read-only view of one organization's directory, catalog and records."""

    @abc.abstractmethod
    async def organization_exists(self, org_id: int) -> bool: ...

    @abc.abstractmethod
    async def list_employees(self, org_id: int) -> list[EmployeeSnapshot]:
        """Active employees with role and team membership."""

    @abc.abstractmethod
    async def list_team_ids(self, org_id: int) -> set[int]: ...

    @abc.abstractmethod
    async def list_templates_with_requirements(
        self, org_id: int
    ) -> list[TemplateWithRequirements]:
        """All templates, active or not, each with its requirements."""

    @abc.abstractmethod
    async def list_assignments(self, org_id: int) -> list[AssignmentRow]: ...

    @abc.abstractmethod
    async def list_records(
        self,
        org_id: int,
        employee_ids: Collection[int] | None = None,
        requirement_ids: Collection[int] | None = None,
    ) -> list[DocumentRecordSnapshot]:
        """Uploaded document records, optionally narrowed to employees/requirements."""

    async def list_active_templates_with_requirements(
        self, org_id: int
    ) -> list[TemplateWithRequirements]:
        return [
            (template, requirements)
            for template, requirements in await self.list_templates_with_requirements(org_id)
            if template.is_active
        ]


# ---------------------------------------------------------------------------
# SQLAlchemy-backed source
# ---------------------------------------------------------------------------


def employee_snapshot(employee: Employee) -> EmployeeSnapshot:
    return EmployeeSnapshot(
        id=employee.id,
        name=employee.full_name,
        role=employee.role or None,
        team_ids=frozenset(m.team_id for m in employee.team_memberships or []),
    )


def template_snapshot(template: DocumentTemplate) -> TemplateWithRequirements:
    return (
        TemplateSnapshot(
            id=template.id,
            name=template.name,
            description=template.description,
            is_active=bool(template.is_active),
            version=template.version or 1,
        ),
        [
            RequirementSnapshot(
                id=req.id,
                template_id=template.id,
                document_name=req.document_name,
                document_type=req.document_type,
                is_required=bool(req.is_required),
                requires_expiry=bool(req.requires_expiry),
                default_validity_days=req.default_validity_days,
                max_file_size_mb=req.max_file_size_mb or 10,
                display_order=req.display_order or 0,
            )
            for req in template.requirements or []
        ],
    )


def record_snapshot(record: EmployeeDocumentRecord) -> DocumentRecordSnapshot:
    return DocumentRecordSnapshot(
        id=record.id,
        employee_id=record.employee_id,
        requirement_id=record.requirement_id,
        file_ref=record.file_ref,
        uploaded_at=record.uploaded_at,
        expiry_date=record.expiry_date,
        verification_status=record.verification_status,
        verified_at=record.verified_at,
    )


class SqlComplianceSource(ComplianceSource):
    """Reads compliance inputs through one ``AsyncSession``.

    The session should be a consistent read (one transaction) for the
    snapshot to be coherent across the reads of a computation.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _execute(self, source: str, operation: str, stmt):
        try:
            return await self._session.execute(stmt)
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            logger.error("Compliance source read failed (%s.%s): %s", source, operation, exc)
            raise SourceUnavailable(source, operation, exc) from exc

    async def organization_exists(self, org_id: int) -> bool:
        stmt = select(Organization.id).where(Organization.id == org_id)
        result = await self._execute(DIRECTORY, "organization_exists", stmt)
        return result.scalar_one_or_none() is not None

    async def list_employees(self, org_id: int) -> list[EmployeeSnapshot]:
        stmt = (
            select(Employee)
            .options(selectinload(Employee.team_memberships))
            .where(
                Employee.organization_id == org_id,
                Employee.is_active.is_(True),
            )
            .order_by(Employee.last_name, Employee.first_name, Employee.id)
        )
        result = await self._execute(DIRECTORY, "list_employees", stmt)
        return [employee_snapshot(e) for e in result.scalars().all()]

    async def list_team_ids(self, org_id: int) -> set[int]:
        stmt = select(Team.id).where(Team.organization_id == org_id)
        result = await self._execute(DIRECTORY, "list_team_ids", stmt)
        return set(result.scalars().all())

    async def list_templates_with_requirements(
        self, org_id: int
    ) -> list[TemplateWithRequirements]:
        stmt = (
            select(DocumentTemplate)
            .options(selectinload(DocumentTemplate.requirements))
            .where(DocumentTemplate.organization_id == org_id)
            .order_by(DocumentTemplate.id)
        )
        result = await self._execute(CATALOG, "list_templates_with_requirements", stmt)
        return [template_snapshot(t) for t in result.scalars().all()]

    async def list_assignments(self, org_id: int) -> list[AssignmentRow]:
        stmt = (
            select(TemplateAssignment)
            .where(TemplateAssignment.organization_id == org_id)
            .order_by(TemplateAssignment.id)
        )
        result = await self._execute(CATALOG, "list_assignments", stmt)
        return [
            AssignmentRow(
                id=a.id,
                template_id=a.template_id,
                employee_id=a.employee_id,
                role=a.role,
                team_id=a.team_id,
            )
            for a in result.scalars().all()
        ]

    async def list_records(
        self,
        org_id: int,
        employee_ids: Collection[int] | None = None,
        requirement_ids: Collection[int] | None = None,
    ) -> list[DocumentRecordSnapshot]:
        stmt = select(EmployeeDocumentRecord).where(
            EmployeeDocumentRecord.organization_id == org_id,
        )
        if employee_ids is not None:
            stmt = stmt.where(EmployeeDocumentRecord.employee_id.in_(list(employee_ids)))
        if requirement_ids is not None:
            stmt = stmt.where(EmployeeDocumentRecord.requirement_id.in_(list(requirement_ids)))
        stmt = stmt.order_by(EmployeeDocumentRecord.id)

        result = await self._execute(RECORD_STORE, "list_records", stmt)
        return [record_snapshot(r) for r in result.scalars().all()]


# ---------------------------------------------------------------------------
# In-memory source
# ---------------------------------------------------------------------------


class InMemoryComplianceSource(ComplianceSource):
    """Serves pre-built snapshots for a single organization."""

    def __init__(
        self,
        org_id: int,
        employees: Iterable[EmployeeSnapshot] = (),
        templates: Iterable[TemplateWithRequirements] = (),
        assignments: Iterable[AssignmentRow] = (),
        records: Iterable[DocumentRecordSnapshot] = (),
        team_ids: Iterable[int] | None = None,
    ):
        self.org_id = org_id
        self.employees = list(employees)
        self.templates = list(templates)
        self.assignments = list(assignments)
        self.records = list(records)
        if team_ids is None:
            team_ids = {t for e in self.employees for t in e.team_ids}
        self.team_ids = set(team_ids)

    async def organization_exists(self, org_id: int) -> bool:
        return org_id == self.org_id

    async def list_employees(self, org_id: int) -> list[EmployeeSnapshot]:
        return list(self.employees) if org_id == self.org_id else []

    async def list_team_ids(self, org_id: int) -> set[int]:
        return set(self.team_ids) if org_id == self.org_id else set()

    async def list_templates_with_requirements(
        self, org_id: int
    ) -> list[TemplateWithRequirements]:
        if org_id != self.org_id:
            return []
        return [(template, list(reqs)) for template, reqs in self.templates]

    async def list_assignments(self, org_id: int) -> list[AssignmentRow]:
        return list(self.assignments) if org_id == self.org_id else []

    async def list_records(
        self,
        org_id: int,
        employee_ids: Collection[int] | None = None,
        requirement_ids: Collection[int] | None = None,
    ) -> list[DocumentRecordSnapshot]:
        if org_id != self.org_id:
            return []
        return [
            r
            for r in self.records
            if (employee_ids is None or r.employee_id in employee_ids)
            and (requirement_ids is None or r.requirement_id in requirement_ids)
        ]
