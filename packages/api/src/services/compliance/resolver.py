# This project was developed with assistance from AI tools.
"""Assignment resolution: which requirements apply to which employee.

Pure functions -- no DB calls. A template applies to an employee when any of
its assignments matches the employee directly, by role, or by team. Only
active templates contribute requirements.
"""

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping, Sequence

from db.enums import AssignmentTargetKind

from ...schemas.compliance import (
    AssignmentSnapshot,
    AssignmentTarget,
    EmployeeSnapshot,
    RequirementSnapshot,
    TemplateSnapshot,
)

logger = logging.getLogger(__name__)

# Membership predicate per target kind. Missing values never match.
_TARGET_MATCHERS: dict[AssignmentTargetKind, Callable[[AssignmentTarget, EmployeeSnapshot], bool]] = {
    AssignmentTargetKind.EMPLOYEE: lambda t, e: t.employee_id == e.id,
    AssignmentTargetKind.ROLE: lambda t, e: e.role is not None and t.role == e.role,
    AssignmentTargetKind.TEAM: lambda t, e: t.team_id is not None and t.team_id in e.team_ids,
}


def target_matches(target: AssignmentTarget, employee: EmployeeSnapshot) -> bool:
    """Return True when the assignment target selects this employee."""
    matcher = _TARGET_MATCHERS.get(target.kind)
    return matcher is not None and matcher(target, employee)


def index_assignments(
    assignments: Iterable[AssignmentSnapshot],
) -> dict[int, list[AssignmentSnapshot]]:
    """Group assignments by template id, keeping input order within a template."""
    by_template: dict[int, list[AssignmentSnapshot]] = defaultdict(list)
    for assignment in assignments:
        by_template[assignment.template_id].append(assignment)
    return dict(by_template)


def index_requirements(
    requirements: Iterable[RequirementSnapshot],
) -> dict[int, list[RequirementSnapshot]]:
    """Group requirements by owning template id."""
    by_template: dict[int, list[RequirementSnapshot]] = defaultdict(list)
    for requirement in requirements:
        by_template[requirement.template_id].append(requirement)
    return dict(by_template)


def applicable_template_ids(
    employee: EmployeeSnapshot,
    templates: Iterable[TemplateSnapshot],
    assignments_by_template: Mapping[int, Sequence[AssignmentSnapshot]],
) -> list[int]:
    """Active templates with at least one assignment matching the employee."""
    result: list[int] = []
    for template in templates:
        if not template.is_active:
            continue
        for assignment in assignments_by_template.get(template.id, ()):
            if target_matches(assignment.target, employee):
                result.append(template.id)
                break
    return result


def resolve_requirements(
    employee: EmployeeSnapshot,
    templates: Iterable[TemplateSnapshot],
    requirements: Iterable[RequirementSnapshot],
    assignments: Iterable[AssignmentSnapshot],
) -> set[int]:
    """Resolve the effective requirement ids for one employee.

    Args:
        employee: Directory snapshot (id, role, team ids).
        templates: All known templates; inactive ones are skipped.
        requirements: Requirements of those templates.
        assignments: Validated assignments (exactly one target each).

    Returns:
        Requirement ids, deduplicated. Empty when nothing applies.
    """
    return resolve_from_index(
        employee,
        list(templates),
        index_requirements(requirements),
        index_assignments(assignments),
    )


def resolve_from_index(
    employee: EmployeeSnapshot,
    templates: Sequence[TemplateSnapshot],
    requirements_by_template: Mapping[int, Sequence[RequirementSnapshot]],
    assignments_by_template: Mapping[int, Sequence[AssignmentSnapshot]],
) -> set[int]:
    """Same as ``resolve_requirements`` over pre-built indexes.

    The aggregator builds the indexes once per computation and calls this
    for every employee.
    """
    resolved: set[int] = set()
    for template_id in applicable_template_ids(employee, templates, assignments_by_template):
        for requirement in requirements_by_template.get(template_id, ()):
            resolved.add(requirement.id)
    return resolved


def resolve_for_employees(
    employees: Iterable[EmployeeSnapshot],
    templates: Iterable[TemplateSnapshot],
    requirements: Iterable[RequirementSnapshot],
    assignments: Iterable[AssignmentSnapshot],
) -> dict[int, set[int]]:
    """Map employee id to effective requirement ids for a batch of employees."""
    template_list = list(templates)
    requirements_by_template = index_requirements(requirements)
    assignments_by_template = index_assignments(assignments)

    resolved = {
        employee.id: resolve_from_index(
            employee, template_list, requirements_by_template, assignments_by_template
        )
        for employee in employees
    }
    logger.debug(
        "Resolved requirements for %d employees (%d templates, %d assignments)",
        len(resolved),
        len(template_list),
        sum(len(a) for a in assignments_by_template.values()),
    )
    return resolved
