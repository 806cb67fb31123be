# This project was developed with assistance from AI tools.
"""Tests for matrix aggregation and the employee checklist."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from db.enums import ComplianceStatus

from src.services.compliance.cache import MatrixCache
from src.services.compliance.errors import (
    InvalidComplianceInput,
    SourceUnavailable,
    UnknownEmployee,
    UnknownOrganization,
)
from src.services.compliance.integrity import INVALID_ASSIGNMENT, MISSING_VALIDITY_PERIOD
from src.services.compliance.matrix import build_checklist, build_matrix, evaluate_employees

from factories import (
    NOW,
    ORG_ID,
    TODAY,
    days_from_today,
    make_assignment,
    make_employee,
    make_record,
    make_requirement,
    make_source,
    make_template,
)

# ---------------------------------------------------------------------------
# build_matrix
# ---------------------------------------------------------------------------


class TestBuildMatrix:
    """Tests for build_matrix."""

    async def test_role_assignment_reaches_only_managers(self, managers_source):
        matrix = await build_matrix(managers_source, ORG_ID, NOW)

        assert set(matrix.entries[1]) == {100, 101, 102}
        assert set(matrix.entries[2]) == {100, 101, 102}
        assert matrix.entries[3] == {}

    async def test_missing_entries_counted_in_total_required(self, managers_source):
        matrix = await build_matrix(managers_source, ORG_ID, NOW)

        # Two managers x two required requirements, nothing uploaded.
        assert matrix.stats.total_required == 4
        assert matrix.stats.missing == 4
        assert matrix.stats.total_optional == 2
        assert matrix.stats.compliance_rate == 0.0

    async def test_statuses_from_records(self, managers_source):
        managers_source.records = [
            make_record(id=1, employee_id=1, requirement_id=100),
            make_record(id=2, employee_id=1, requirement_id=101, expiry_date=days_from_today(-1)),
            make_record(id=3, employee_id=2, requirement_id=100, verified=False),
            make_record(id=4, employee_id=2, requirement_id=101, expiry_date=days_from_today(10)),
        ]
        matrix = await build_matrix(managers_source, ORG_ID, NOW)

        assert matrix.entry(1, 100).status == ComplianceStatus.COMPLIANT
        assert matrix.entry(1, 101).status == ComplianceStatus.EXPIRED
        assert matrix.entry(2, 100).status == ComplianceStatus.PENDING_VERIFICATION
        assert matrix.entry(2, 101).status == ComplianceStatus.EXPIRING_SOON
        assert matrix.entry(3, 100) is None
        assert matrix.stats.compliance_rate == 25.0

    async def test_attention_most_urgent_first(self, managers_source):
        managers_source.records = [
            make_record(id=1, employee_id=1, requirement_id=101, expiry_date=days_from_today(-1)),
            make_record(id=2, employee_id=2, requirement_id=101, expiry_date=days_from_today(10)),
        ]
        matrix = await build_matrix(managers_source, ORG_ID, NOW)

        statuses = [e.status for e in matrix.attention]
        assert statuses[0] == ComplianceStatus.EXPIRED
        assert statuses[1] == ComplianceStatus.EXPIRING_SOON
        assert all(e.is_required for e in matrix.attention)

    async def test_columns_and_rows(self, managers_source):
        matrix = await build_matrix(managers_source, ORG_ID, NOW)

        assert [g.template_name for g in matrix.template_groups] == ["Onboarding"]
        assert [c.requirement_id for c in matrix.template_groups[0].requirements] == [100, 101, 102]
        assert matrix.template_groups[0].requirements[1].document_type_label == "Certification"
        assert [r.name for r in matrix.employees] == ["Ana Lopez", "Ben Okafor", "Cy Park"]
        assert matrix.employees[2].summary.total_required == 0

    async def test_as_of_and_window_reported(self, managers_source):
        matrix = await build_matrix(managers_source, ORG_ID, NOW, expiring_soon_window_days=7)
        assert matrix.as_of == TODAY
        assert matrix.computed_at == NOW
        assert matrix.expiring_soon_window_days == 7

    async def test_window_changes_status(self, managers_source):
        managers_source.records = [
            make_record(id=1, employee_id=1, requirement_id=101, expiry_date=days_from_today(10)),
        ]
        narrow = await build_matrix(managers_source, ORG_ID, NOW, expiring_soon_window_days=5)
        wide = await build_matrix(managers_source, ORG_ID, NOW, expiring_soon_window_days=30)
        assert narrow.entry(1, 101).status == ComplianceStatus.COMPLIANT
        assert wide.entry(1, 101).status == ComplianceStatus.EXPIRING_SOON

    async def test_deterministic(self, managers_source):
        managers_source.records = [
            make_record(id=1, employee_id=2, requirement_id=100),
            make_record(id=2, employee_id=1, requirement_id=101, expiry_date=days_from_today(3)),
        ]
        first = await build_matrix(managers_source, ORG_ID, NOW)
        managers_source.employees.reverse()
        managers_source.records.reverse()
        second = await build_matrix(managers_source, ORG_ID, NOW)
        assert first.model_dump_json() == second.model_dump_json()

    async def test_later_now_can_only_expire_more(self, managers_source):
        managers_source.records = [
            make_record(id=1, employee_id=1, requirement_id=101, expiry_date=days_from_today(20)),
        ]
        today = await build_matrix(managers_source, ORG_ID, NOW)
        later = await build_matrix(managers_source, ORG_ID, NOW + timedelta(days=25))
        assert today.entry(1, 101).status == ComplianceStatus.EXPIRING_SOON
        assert later.entry(1, 101).status == ComplianceStatus.EXPIRED

    async def test_inactive_template_excluded(self, onboarding):
        template, requirements = onboarding
        source = make_source(
            employees=[make_employee(id=1)],
            templates=[(make_template(id=10, is_active=False), requirements)],
            assignments=[make_assignment(id=1, employee_id=1)],
        )
        matrix = await build_matrix(source, ORG_ID, NOW)
        assert matrix.entries[1] == {}
        assert matrix.template_groups == []
        assert matrix.stats.total_required == 0

    async def test_integrity_warnings_do_not_abort(self):
        source = make_source(
            employees=[make_employee(id=1, role="manager")],
            templates=[
                (
                    make_template(id=10),
                    [make_requirement(id=100, requires_expiry=True, default_validity_days=None)],
                )
            ],
            assignments=[
                make_assignment(id=1, role="manager"),
                make_assignment(id=2, employee_id=1, role="manager"),
            ],
            records=[make_record(employee_id=1, requirement_id=100, expiry_date=days_from_today(-5))],
        )
        matrix = await build_matrix(source, ORG_ID, NOW)

        kinds = sorted(w.kind for w in matrix.warnings)
        assert kinds == [INVALID_ASSIGNMENT, MISSING_VALIDITY_PERIOD]
        assert matrix.warning_count == 2
        # Expiry is ignored on the downgraded requirement.
        assert matrix.entry(1, 100).status == ComplianceStatus.COMPLIANT

    async def test_empty_organization(self):
        matrix = await build_matrix(make_source(), ORG_ID, NOW)
        assert matrix.employees == []
        assert matrix.stats.compliance_rate == 0.0


class TestEmployeeFilter:
    async def test_filter_restricts_rows(self, managers_source):
        matrix = await build_matrix(managers_source, ORG_ID, NOW, employee_filter=[2])
        assert [r.employee_id for r in matrix.employees] == [2]
        assert set(matrix.entries) == {2}

    async def test_filter_does_not_orphan_other_employees(self):
        source = make_source(
            employees=[make_employee(id=1), make_employee(id=2, role="pilot")],
            templates=[(make_template(id=10), [make_requirement(id=100)])],
            assignments=[make_assignment(id=1, role="pilot")],
        )
        matrix = await build_matrix(source, ORG_ID, NOW, employee_filter=[1])
        assert matrix.warnings == []

    async def test_unknown_ids_ignored_when_one_matches(self, managers_source):
        matrix = await build_matrix(managers_source, ORG_ID, NOW, employee_filter=[1, 999])
        assert [r.employee_id for r in matrix.employees] == [1]

    async def test_filter_matching_nobody_raises(self, managers_source):
        with pytest.raises(InvalidComplianceInput):
            await build_matrix(managers_source, ORG_ID, NOW, employee_filter=[999])

    async def test_empty_filter_raises(self, managers_source):
        with pytest.raises(InvalidComplianceInput):
            await build_matrix(managers_source, ORG_ID, NOW, employee_filter=[])


class TestMatrixErrors:
    async def test_unknown_organization(self, managers_source):
        with pytest.raises(UnknownOrganization):
            await build_matrix(managers_source, 404, NOW)

    async def test_negative_window(self, managers_source):
        with pytest.raises(InvalidComplianceInput):
            await build_matrix(managers_source, ORG_ID, NOW, expiring_soon_window_days=-1)

    async def test_source_failure_propagates(self, managers_source):
        managers_source.list_records = AsyncMock(
            side_effect=SourceUnavailable("record_store", "list_records")
        )
        with pytest.raises(SourceUnavailable):
            await build_matrix(managers_source, ORG_ID, NOW)


class TestMatrixCaching:
    async def test_second_call_served_from_cache(self, managers_source):
        cache = MatrixCache(ttl_seconds=60)
        first = await build_matrix(managers_source, ORG_ID, NOW, cache=cache)

        managers_source.list_employees = AsyncMock(side_effect=AssertionError("not cached"))
        second = await build_matrix(managers_source, ORG_ID, NOW, cache=cache)

        assert second is first
        assert len(cache) == 1

    async def test_different_filter_is_a_different_entry(self, managers_source):
        cache = MatrixCache(ttl_seconds=60)
        await build_matrix(managers_source, ORG_ID, NOW, cache=cache)
        await build_matrix(managers_source, ORG_ID, NOW, employee_filter=[1], cache=cache)
        assert len(cache) == 2

    async def test_write_during_computation_is_not_cached_stale(self, managers_source):
        """A commit landing between the reads and the put must not leave a stale matrix."""
        cache = MatrixCache(ttl_seconds=60)
        read_records = managers_source.list_records

        async def list_records_then_commit(org_id, employee_ids=None):
            snapshot = await read_records(org_id, employee_ids=employee_ids)
            managers_source.records = [make_record(id=1, employee_id=1, requirement_id=100)]
            cache.invalidate(ORG_ID)
            return snapshot

        managers_source.list_records = list_records_then_commit
        first = await build_matrix(managers_source, ORG_ID, NOW, cache=cache)
        assert first.entries[1][100].status == ComplianceStatus.MISSING
        assert len(cache) == 0

        managers_source.list_records = read_records
        second = await build_matrix(managers_source, ORG_ID, NOW, cache=cache)
        assert second.entries[1][100].status == ComplianceStatus.COMPLIANT
        assert len(cache) == 1


# ---------------------------------------------------------------------------
# Parallel evaluation
# ---------------------------------------------------------------------------


async def test_parallel_matches_sequential():
    employees = [make_employee(id=i, role="manager") for i in range(1, 41)]
    seq = await evaluate_employees(
        employees, lambda e: [e.id], max_workers=1, parallel_threshold=1
    )
    par = await evaluate_employees(
        employees, lambda e: [e.id], max_workers=4, parallel_threshold=10
    )
    assert seq == par == [[i] for i in range(1, 41)]


def test_evaluation_is_sequential_by_default():
    from src.core.config import Settings

    assert Settings.model_fields["COMPLIANCE_MAX_WORKERS"].default == 1


async def test_parallel_path_builds_same_matrix(managers_source, monkeypatch):
    from src.services.compliance import matrix as matrix_module

    sequential = await build_matrix(managers_source, ORG_ID, NOW)
    monkeypatch.setattr(matrix_module.settings, "COMPLIANCE_MAX_WORKERS", 3)
    monkeypatch.setattr(matrix_module.settings, "COMPLIANCE_PARALLEL_THRESHOLD", 1)
    parallel = await build_matrix(managers_source, ORG_ID, NOW)
    assert parallel.model_dump_json() == sequential.model_dump_json()


# ---------------------------------------------------------------------------
# build_checklist
# ---------------------------------------------------------------------------


class TestChecklist:
    async def test_checklist_entries_in_display_order(self, managers_source):
        managers_source.records = [make_record(employee_id=1, requirement_id=100)]
        checklist = await build_checklist(managers_source, 1, ORG_ID, NOW)

        assert [e.requirement_id for e in checklist.entries] == [100, 101, 102]
        assert [e.requirement_id for e in checklist.required] == [100, 101]
        assert [e.requirement_id for e in checklist.optional] == [102]
        assert checklist.summary.compliant == 1
        assert checklist.summary.missing == 1

    async def test_checklist_agrees_with_matrix(self, managers_source):
        managers_source.records = [
            make_record(id=1, employee_id=2, requirement_id=101, expiry_date=days_from_today(4)),
        ]
        matrix = await build_matrix(managers_source, ORG_ID, NOW)
        checklist = await build_checklist(managers_source, 2, ORG_ID, NOW)
        assert {e.requirement_id: e for e in checklist.entries} == matrix.entries[2]

    async def test_unassigned_employee_gets_empty_checklist(self, managers_source):
        checklist = await build_checklist(managers_source, 3, ORG_ID, NOW)
        assert checklist.entries == []
        assert checklist.summary.compliance_rate == 0.0

    async def test_unknown_employee(self, managers_source):
        with pytest.raises(UnknownEmployee):
            await build_checklist(managers_source, 999, ORG_ID, NOW)

    async def test_unknown_organization(self, managers_source):
        with pytest.raises(UnknownOrganization):
            await build_checklist(managers_source, 1, 404, NOW)
