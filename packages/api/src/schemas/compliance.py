# This project was developed with assistance from AI tools.
"""Document compliance value types.

Snapshot models are built at the source boundary and stay immutable for one
computation. Derived models (entries, matrix, checklist) are recomputed on
every request and never persisted.
"""

from datetime import date, datetime

from db.enums import AssignmentTargetKind, ComplianceStatus, DocumentType, VerificationStatus
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..services.compliance.errors import InvalidAssignmentError

# ---------------------------------------------------------------------------
# Snapshots (inputs)
# ---------------------------------------------------------------------------


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class EmployeeSnapshot(_Snapshot):
    """Directory view of one employee."""

    id: int
    name: str = ""
    role: str | None = None
    team_ids: frozenset[int] = frozenset()


class TemplateSnapshot(_Snapshot):
    id: int
    name: str
    description: str | None = None
    is_active: bool = True
    version: int = 1


class RequirementSnapshot(_Snapshot):
    """One document a template demands."""

    id: int
    template_id: int
    document_name: str
    document_type: DocumentType = DocumentType.OTHER
    is_required: bool = True
    requires_expiry: bool = False
    default_validity_days: int | None = None
    max_file_size_mb: int = 10
    display_order: int = 0

    @property
    def has_valid_expiry_policy(self) -> bool:
        """True when expiry is required and a positive validity period is set."""
        return (
            self.requires_expiry
            and self.default_validity_days is not None
            and self.default_validity_days > 0
        )


class AssignmentTarget(_Snapshot):
    """Tagged variant: Employee(id) | Role(name) | Team(id)."""

    kind: AssignmentTargetKind
    employee_id: int | None = None
    role: str | None = None
    team_id: int | None = None

    @model_validator(mode="after")
    def exactly_one_target_matching_kind(self) -> "AssignmentTarget":
        """Only the field named by ``kind`` may be set."""
        values = {
            AssignmentTargetKind.EMPLOYEE: self.employee_id,
            AssignmentTargetKind.ROLE: self.role,
            AssignmentTargetKind.TEAM: self.team_id,
        }
        set_kinds = [kind for kind, value in values.items() if value is not None]
        if set_kinds != [self.kind]:
            raise ValueError(
                f"{self.kind.value} target must set only its own field, "
                f"got {[k.value for k in set_kinds]}"
            )
        return self

    @classmethod
    def employee(cls, employee_id: int) -> "AssignmentTarget":
        return cls(kind=AssignmentTargetKind.EMPLOYEE, employee_id=employee_id)

    @classmethod
    def for_role(cls, role: str) -> "AssignmentTarget":
        return cls(kind=AssignmentTargetKind.ROLE, role=role)

    @classmethod
    def team(cls, team_id: int) -> "AssignmentTarget":
        return cls(kind=AssignmentTargetKind.TEAM, team_id=team_id)


class AssignmentRow(_Snapshot):
    """Raw assignment columns as stored; not yet validated."""

    id: int
    template_id: int
    employee_id: int | None = None
    role: str | None = None
    team_id: int | None = None


class AssignmentSnapshot(_Snapshot):
    id: int
    template_id: int
    target: AssignmentTarget

    @classmethod
    def from_columns(
        cls,
        id: int,
        template_id: int,
        employee_id: int | None = None,
        role: str | None = None,
        team_id: int | None = None,
    ) -> "AssignmentSnapshot":
        """Build an assignment, enforcing exactly one target.

        Raises:
            InvalidAssignmentError: zero or more than one target is set.
        """
        if role is not None and not role.strip():
            role = None
        targets = [t for t in (employee_id, role, team_id) if t is not None]
        if len(targets) != 1:
            raise InvalidAssignmentError(id, len(targets))

        if employee_id is not None:
            target = AssignmentTarget.employee(employee_id)
        elif role is not None:
            target = AssignmentTarget.for_role(role)
        else:
            target = AssignmentTarget.team(team_id)
        return cls(id=id, template_id=template_id, target=target)

    @classmethod
    def from_row(cls, row: AssignmentRow) -> "AssignmentSnapshot":
        return cls.from_columns(row.id, row.template_id, row.employee_id, row.role, row.team_id)


class DocumentRecordSnapshot(_Snapshot):
    """One uploaded document for an (employee, requirement) pair."""

    id: int
    employee_id: int
    requirement_id: int
    file_ref: str
    uploaded_at: datetime
    expiry_date: date | None = None
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    verified_at: datetime | None = None

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED


# ---------------------------------------------------------------------------
# Derived results
# ---------------------------------------------------------------------------


class DataIntegrityWarning(_Snapshot):
    """Non-fatal catalog problem reported alongside a successful result."""

    kind: str = Field(
        ..., description="invalid_assignment | missing_validity_period | orphaned_assignment"
    )
    message: str
    entity_type: str
    entity_id: int


class ComplianceEntry(_Snapshot):
    """Compliance state of one (employee, requirement) pair."""

    employee_id: int
    requirement_id: int
    template_id: int
    template_name: str
    document_name: str
    document_type: DocumentType
    is_required: bool
    status: ComplianceStatus
    expiry_date: date | None = None
    days_until_expiry: int | None = Field(
        None, description="Days from the as-of date to expiry; negative once expired"
    )
    uploaded_at: datetime | None = None
    is_verified: bool = False
    verified_at: datetime | None = None
    file_ref: str | None = None
    record_id: int | None = None


class ComplianceStats(_Snapshot):
    """Counts over required entries only."""

    compliant: int = 0
    missing: int = 0
    expired: int = 0
    expiring_soon: int = 0
    pending_verification: int = 0
    total_required: int = 0
    total_optional: int = 0
    compliance_rate: float = Field(
        0.0, ge=0.0, le=100.0, description="Percentage of required entries that are compliant"
    )


class RequirementColumn(_Snapshot):
    requirement_id: int
    document_name: str
    document_type: DocumentType
    document_type_label: str
    is_required: bool
    requires_expiry: bool
    display_order: int


class TemplateGroup(_Snapshot):
    """Requirements of one template, in display order."""

    template_id: int
    template_name: str
    requirements: list[RequirementColumn]


class EmployeeRow(_Snapshot):
    employee_id: int
    name: str
    role: str | None = None
    summary: ComplianceStats


class ComplianceMatrix(_Snapshot):
    """Employee x requirement grid plus summary statistics."""

    organization_id: int
    as_of: date
    computed_at: datetime
    expiring_soon_window_days: int
    employees: list[EmployeeRow]
    template_groups: list[TemplateGroup]
    entries: dict[int, dict[int, ComplianceEntry]] = Field(
        ..., description="employee_id -> requirement_id -> entry"
    )
    stats: ComplianceStats
    attention: list[ComplianceEntry] = Field(
        default_factory=list, description="Required entries needing action, most urgent first"
    )
    warnings: list[DataIntegrityWarning] = Field(default_factory=list)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def entry(self, employee_id: int, requirement_id: int) -> ComplianceEntry | None:
        return self.entries.get(employee_id, {}).get(requirement_id)


class EmployeeChecklist(_Snapshot):
    """One employee's ordered slice of the compliance computation."""

    organization_id: int
    employee_id: int
    as_of: date
    entries: list[ComplianceEntry]
    summary: ComplianceStats
    warnings: list[DataIntegrityWarning] = Field(default_factory=list)

    @property
    def required(self) -> list[ComplianceEntry]:
        return [e for e in self.entries if e.is_required]

    @property
    def optional(self) -> list[ComplianceEntry]:
        return [e for e in self.entries if not e.is_required]
