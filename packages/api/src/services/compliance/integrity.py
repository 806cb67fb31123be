# This project was developed with assistance from AI tools.
"""Catalog validation for one compliance computation.

Turns raw catalog reads into the validated inputs the resolver and evaluator
expect, collecting data-integrity warnings instead of raising. A partial,
best-effort matrix beats no matrix, so nothing here aborts the computation.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from db.enums import AssignmentTargetKind

from ...schemas.compliance import (
    AssignmentRow,
    AssignmentSnapshot,
    DataIntegrityWarning,
    EmployeeSnapshot,
    RequirementSnapshot,
    TemplateSnapshot,
)
from .errors import InvalidAssignmentError

logger = logging.getLogger(__name__)

INVALID_ASSIGNMENT = "invalid_assignment"
MISSING_VALIDITY_PERIOD = "missing_validity_period"
ORPHANED_ASSIGNMENT = "orphaned_assignment"


@dataclass
class PreparedCatalog:
    """Validated, immutable-for-the-request view of the requirement catalog."""

    templates: list[TemplateSnapshot]
    requirements: list[RequirementSnapshot]
    assignments: list[AssignmentSnapshot]
    warnings: list[DataIntegrityWarning] = field(default_factory=list)

    def template_by_id(self) -> dict[int, TemplateSnapshot]:
        return {t.id: t for t in self.templates}

    def requirement_by_id(self) -> dict[int, RequirementSnapshot]:
        return {r.id: r for r in self.requirements}


def normalize_requirement(
    requirement: RequirementSnapshot,
    warnings: list[DataIntegrityWarning],
) -> RequirementSnapshot:
    """Downgrade a requirement whose expiry policy has no validity period.

    It is evaluated as ``requires_expiry=False`` and a warning is recorded.
    """
    if not requirement.requires_expiry or requirement.has_valid_expiry_policy:
        return requirement
    warnings.append(
        DataIntegrityWarning(
            kind=MISSING_VALIDITY_PERIOD,
            message=(
                f"Requirement '{requirement.document_name}' requires expiry but has no "
                "positive default validity period; expiry is ignored"
            ),
            entity_type="template_requirement",
            entity_id=requirement.id,
        )
    )
    return requirement.model_copy(update={"requires_expiry": False})


def validate_assignments(
    rows: Iterable[AssignmentRow],
    warnings: list[DataIntegrityWarning],
) -> list[AssignmentSnapshot]:
    """Build assignments from raw rows, dropping the ones without exactly one target."""
    valid: list[AssignmentSnapshot] = []
    for row in sorted(rows, key=lambda r: r.id):
        try:
            valid.append(AssignmentSnapshot.from_row(row))
        except InvalidAssignmentError as exc:
            warnings.append(
                DataIntegrityWarning(
                    kind=INVALID_ASSIGNMENT,
                    message=str(exc),
                    entity_type="template_assignment",
                    entity_id=row.id,
                )
            )
    return valid


def find_orphaned_assignments(
    assignments: Iterable[AssignmentSnapshot],
    known_template_ids: set[int],
    employees: Sequence[EmployeeSnapshot],
    known_team_ids: set[int],
) -> list[DataIntegrityWarning]:
    """Assignments pointing at a template, employee, team or role that does not exist.

    They stay in the catalog and simply match nobody.
    """
    employee_ids = {e.id for e in employees}
    roles = {e.role for e in employees if e.role}

    warnings: list[DataIntegrityWarning] = []
    for assignment in assignments:
        target = assignment.target
        reason = None
        if assignment.template_id not in known_template_ids:
            reason = f"unknown template {assignment.template_id}"
        elif target.kind == AssignmentTargetKind.EMPLOYEE and target.employee_id not in employee_ids:
            reason = f"unknown employee {target.employee_id}"
        elif target.kind == AssignmentTargetKind.TEAM and target.team_id not in known_team_ids:
            reason = f"unknown team {target.team_id}"
        elif target.kind == AssignmentTargetKind.ROLE and target.role not in roles:
            reason = f"role '{target.role}' held by no employee"

        if reason:
            warnings.append(
                DataIntegrityWarning(
                    kind=ORPHANED_ASSIGNMENT,
                    message=f"Assignment {assignment.id} references {reason}",
                    entity_type="template_assignment",
                    entity_id=assignment.id,
                )
            )
    return warnings


def prepare_catalog(
    templates_with_requirements: Iterable[tuple[TemplateSnapshot, list[RequirementSnapshot]]],
    assignment_rows: Iterable[AssignmentRow],
    employees: Sequence[EmployeeSnapshot],
    known_team_ids: set[int],
) -> PreparedCatalog:
    """Validate a catalog read and collect every data-integrity warning.

    Args:
        templates_with_requirements: All templates (active and inactive) with
            their requirements.
        assignment_rows: Raw assignment rows.
        employees: Full organization directory (not a filtered subset), used
            to detect orphaned employee and role targets.
        known_team_ids: Teams that exist in the organization.
    """
    warnings: list[DataIntegrityWarning] = []
    templates: list[TemplateSnapshot] = []
    requirements: list[RequirementSnapshot] = []

    for template, template_requirements in sorted(
        templates_with_requirements, key=lambda pair: pair[0].id
    ):
        templates.append(template)
        for requirement in sorted(template_requirements, key=lambda r: r.id):
            requirements.append(normalize_requirement(requirement, warnings))

    assignments = validate_assignments(assignment_rows, warnings)
    warnings.extend(
        find_orphaned_assignments(
            assignments, {t.id for t in templates}, employees, known_team_ids
        )
    )

    for warning in warnings:
        logger.warning(
            "Data integrity: %s %s %d -- %s",
            warning.kind,
            warning.entity_type,
            warning.entity_id,
            warning.message,
        )

    return PreparedCatalog(
        templates=templates,
        requirements=requirements,
        assignments=assignments,
        warnings=warnings,
    )
