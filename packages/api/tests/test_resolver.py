# This project was developed with assistance from AI tools.
"""Tests for assignment resolution."""

from src.schemas.compliance import AssignmentSnapshot
from src.services.compliance.resolver import (
    index_assignments,
    resolve_for_employees,
    resolve_requirements,
    target_matches,
)

from factories import make_employee, make_requirement, make_template


def _assignment(id, template_id=10, **target):
    return AssignmentSnapshot.from_columns(id, template_id, **target)


def _catalog():
    templates = [make_template(id=10, name="Onboarding"), make_template(id=20, name="Safety")]
    requirements = [
        make_requirement(id=100, template_id=10),
        make_requirement(id=101, template_id=10, document_name="Tax Form"),
        make_requirement(id=200, template_id=20, document_name="Forklift License"),
    ]
    return templates, requirements


# ---------------------------------------------------------------------------
# Target matching
# ---------------------------------------------------------------------------


def test_employee_target_matches_only_that_employee():
    a = _assignment(1, employee_id=7)
    assert target_matches(a.target, make_employee(id=7)) is True
    assert target_matches(a.target, make_employee(id=8)) is False


def test_role_target_matches_equal_role():
    a = _assignment(1, role="manager")
    assert target_matches(a.target, make_employee(role="manager")) is True
    assert target_matches(a.target, make_employee(role="cook")) is False


def test_role_target_never_matches_employee_without_role():
    a = _assignment(1, role="manager")
    assert target_matches(a.target, make_employee(role=None)) is False


def test_team_target_matches_any_membership():
    a = _assignment(1, team_id=5)
    assert target_matches(a.target, make_employee(team_ids=[3, 5])) is True
    assert target_matches(a.target, make_employee(team_ids=[3])) is False


# ---------------------------------------------------------------------------
# resolve_requirements
# ---------------------------------------------------------------------------


def test_direct_assignment_adds_all_template_requirements():
    templates, requirements = _catalog()
    result = resolve_requirements(
        make_employee(id=1), templates, requirements, [_assignment(1, employee_id=1)]
    )
    assert result == {100, 101}


def test_no_assignments_resolves_to_empty_set():
    templates, requirements = _catalog()
    assert resolve_requirements(make_employee(id=1), templates, requirements, []) == set()


def test_inactive_template_contributes_nothing():
    templates = [make_template(id=10, is_active=False)]
    requirements = [make_requirement(id=100, template_id=10)]
    result = resolve_requirements(
        make_employee(id=1), templates, requirements, [_assignment(1, employee_id=1)]
    )
    assert result == set()


def test_assignment_to_unknown_template_is_ignored():
    templates, requirements = _catalog()
    result = resolve_requirements(
        make_employee(id=1), templates, requirements, [_assignment(1, template_id=999, employee_id=1)]
    )
    assert result == set()


def test_multiple_templates_union():
    templates, requirements = _catalog()
    employee = make_employee(id=1, role="driver", team_ids=[4])
    assignments = [
        _assignment(1, template_id=10, role="driver"),
        _assignment(2, template_id=20, team_id=4),
    ]
    assert resolve_requirements(employee, templates, requirements, assignments) == {100, 101, 200}


def test_redundant_paths_deduplicate():
    """Role and team both reach the same template: each requirement appears once."""
    templates, requirements = _catalog()
    employee = make_employee(id=1, role="manager", team_ids=[5])
    both = [_assignment(1, role="manager"), _assignment(2, team_id=5)]

    result = resolve_requirements(employee, templates, requirements, both)

    assert result == {100, 101}
    assert len(result) == 2


def test_removing_one_redundant_path_keeps_the_set():
    templates, requirements = _catalog()
    employee = make_employee(id=1, role="manager", team_ids=[5])
    role_path = _assignment(1, role="manager")
    team_path = _assignment(2, team_id=5)

    both = resolve_requirements(employee, templates, requirements, [role_path, team_path])
    only_role = resolve_requirements(employee, templates, requirements, [role_path])
    only_team = resolve_requirements(employee, templates, requirements, [team_path])

    assert both == only_role == only_team


def test_resolve_for_employees_role_assignment():
    """Two managers get the template, the cook does not."""
    templates, requirements = _catalog()
    employees = [
        make_employee(id=1, role="manager"),
        make_employee(id=2, role="manager"),
        make_employee(id=3, role="cook"),
    ]
    result = resolve_for_employees(
        employees, templates, requirements, [_assignment(1, role="manager")]
    )
    assert result == {1: {100, 101}, 2: {100, 101}, 3: set()}


def test_index_assignments_groups_by_template():
    a1 = _assignment(1, template_id=10, role="x")
    a2 = _assignment(2, template_id=20, role="y")
    a3 = _assignment(3, template_id=10, team_id=1)
    index = index_assignments([a1, a2, a3])
    assert index == {10: [a1, a3], 20: [a2]}
