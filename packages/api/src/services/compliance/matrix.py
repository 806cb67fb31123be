# This project was developed with assistance from AI tools.
"""Compliance matrix aggregation.

Drives the resolver and evaluator across every employee x requirement pair of
an organization and assembles the matrix, summary statistics, action list and
data-integrity warnings. Also derives the single-employee checklist from the
same pipeline.

The computation is a pure batch over one snapshot of the sources: the same
inputs and the same ``now`` always produce the same matrix.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable, Collection, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime

from ...core.config import settings
from ...schemas.compliance import (
    ComplianceEntry,
    ComplianceMatrix,
    DocumentRecordSnapshot,
    EmployeeChecklist,
    EmployeeRow,
    EmployeeSnapshot,
    RequirementColumn,
    RequirementSnapshot,
    TemplateGroup,
    TemplateSnapshot,
)
from .cache import MatrixCache, make_key
from .errors import InvalidComplianceInput, UnknownEmployee, UnknownOrganization
from .evaluator import as_of_date, build_entry, ensure_tz, validate_window
from .integrity import PreparedCatalog, prepare_catalog
from .resolver import index_assignments, index_requirements, resolve_from_index
from .sources import ComplianceSource
from .stats import attention_items, compute_stats, status_counts, summarize_employee

logger = logging.getLogger(__name__)


def _presentation_key(
    requirement: RequirementSnapshot, template: TemplateSnapshot
) -> tuple[str, int, int, int]:
    """Template by name, then requirement by display order."""
    return (template.name, template.id, requirement.display_order, requirement.id)


@dataclass
class EvaluationContext:
    """Indexes shared by every per-employee evaluation of one computation.

    Read-only once built, so employees can be evaluated concurrently.
    """

    catalog: PreparedCatalog
    records: dict[tuple[int, int], list[DocumentRecordSnapshot]]
    now: datetime
    window_days: int

    def __post_init__(self):
        self.templates_by_id = self.catalog.template_by_id()
        self.requirements_by_id = self.catalog.requirement_by_id()
        self.requirements_by_template = index_requirements(self.catalog.requirements)
        self.assignments_by_template = index_assignments(self.catalog.assignments)
        self._ordered_requirements = sorted(
            (r for r in self.catalog.requirements if r.template_id in self.templates_by_id),
            key=lambda r: _presentation_key(r, self.templates_by_id[r.template_id]),
        )

    def entries_for(self, employee: EmployeeSnapshot) -> list[ComplianceEntry]:
        """Resolve and evaluate one employee, in presentation order."""
        resolved = resolve_from_index(
            employee,
            self.catalog.templates,
            self.requirements_by_template,
            self.assignments_by_template,
        )
        return [
            build_entry(
                employee.id,
                requirement,
                self.templates_by_id[requirement.template_id],
                self.records.get((employee.id, requirement.id), ()),
                self.now,
                self.window_days,
            )
            for requirement in self._ordered_requirements
            if requirement.id in resolved
        ]

    def template_groups(self, requirement_ids: Collection[int]) -> list[TemplateGroup]:
        """Columns for the given requirements, grouped by owning template."""
        grouped: dict[int, list[RequirementColumn]] = defaultdict(list)
        for requirement in self._ordered_requirements:
            if requirement.id not in requirement_ids:
                continue
            grouped[requirement.template_id].append(
                RequirementColumn(
                    requirement_id=requirement.id,
                    document_name=requirement.document_name,
                    document_type=requirement.document_type,
                    document_type_label=requirement.document_type.label,
                    is_required=requirement.is_required,
                    requires_expiry=requirement.requires_expiry,
                    display_order=requirement.display_order,
                )
            )
        # _ordered_requirements is already template-name ordered, so dict
        # insertion order is the group order.
        return [
            TemplateGroup(
                template_id=template_id,
                template_name=self.templates_by_id[template_id].name,
                requirements=columns,
            )
            for template_id, columns in grouped.items()
        ]


def group_records(
    records: Sequence[DocumentRecordSnapshot],
) -> dict[tuple[int, int], list[DocumentRecordSnapshot]]:
    """Index records by (employee_id, requirement_id)."""
    by_pair: dict[tuple[int, int], list[DocumentRecordSnapshot]] = defaultdict(list)
    for record in records:
        by_pair[(record.employee_id, record.requirement_id)].append(record)
    return dict(by_pair)


async def evaluate_employees(
    employees: Sequence[EmployeeSnapshot],
    evaluate: Callable[[EmployeeSnapshot], list[ComplianceEntry]],
    *,
    max_workers: int | None = None,
    parallel_threshold: int | None = None,
) -> list[list[ComplianceEntry]]:
    """Evaluate every employee, spreading large batches over a thread pool.

    Results come back in employee order: each employee writes only its own
    slot, so no locking is needed.

    Evaluation is pure Python and holds the GIL, so the pool does not speed
    up CPU-bound batches. COMPLIANCE_MAX_WORKERS defaults to 1 for that
    reason; raise it only when ``evaluate`` releases the GIL.
    """
    workers = max_workers if max_workers is not None else settings.COMPLIANCE_MAX_WORKERS
    threshold = (
        parallel_threshold
        if parallel_threshold is not None
        else settings.COMPLIANCE_PARALLEL_THRESHOLD
    )

    if workers <= 1 or len(employees) < threshold:
        return [evaluate(employee) for employee in employees]

    logger.debug("Evaluating %d employees on %d workers", len(employees), workers)
    loop = asyncio.get_running_loop()
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="compliance") as pool:
        return list(
            await asyncio.gather(
                *(loop.run_in_executor(pool, evaluate, employee) for employee in employees)
            )
        )


async def _load_catalog(
    source: ComplianceSource,
    org_id: int,
    directory: Sequence[EmployeeSnapshot],
) -> PreparedCatalog:
    templates = await source.list_templates_with_requirements(org_id)
    assignment_rows = await source.list_assignments(org_id)
    team_ids = await source.list_team_ids(org_id)
    return prepare_catalog(templates, assignment_rows, directory, team_ids)


async def _require_organization(source: ComplianceSource, org_id: int) -> None:
    if not await source.organization_exists(org_id):
        raise UnknownOrganization(org_id)


def _resolve_window(expiring_soon_window_days: int | None) -> int:
    if expiring_soon_window_days is None:
        expiring_soon_window_days = settings.COMPLIANCE_EXPIRING_SOON_DAYS
    return validate_window(expiring_soon_window_days)


async def build_matrix(
    source: ComplianceSource,
    org_id: int,
    now: datetime,
    employee_filter: Collection[int] | None = None,
    *,
    expiring_soon_window_days: int | None = None,
    cache: MatrixCache | None = None,
) -> ComplianceMatrix:
    """Build the compliance matrix for an organization.

    Args:
        source: Directory, catalog and record reads for the organization.
        org_id: Organization to evaluate.
        now: Evaluation time (explicit; never read from a clock here).
        employee_filter: Optional subset of employee ids.
        expiring_soon_window_days: Defaults to COMPLIANCE_EXPIRING_SOON_DAYS.
        cache: Optional read-through cache.

    Raises:
        InvalidComplianceInput: negative window, unknown organization, or an
            employee filter that matches no employee.
        SourceUnavailable: a source read failed; nothing partial is returned.
    """
    window = _resolve_window(expiring_soon_window_days)
    now = ensure_tz(now)
    as_of = as_of_date(now)

    if employee_filter is not None and not employee_filter:
        raise InvalidComplianceInput("employee filter is empty")

    generation = cache.generation(org_id) if cache is not None else None
    await _require_organization(source, org_id)

    cache_key = make_key(org_id, as_of, employee_filter, window)
    if cache is not None:
        cached = cache.get(cache_key)
        if cached is not None:
            logger.debug("Compliance matrix cache hit for org %d (%s)", org_id, as_of)
            return cached

    directory = await source.list_employees(org_id)
    if employee_filter is not None:
        wanted = set(employee_filter)
        employees = [e for e in directory if e.id in wanted]
        if not employees:
            raise InvalidComplianceInput(
                f"employee filter matches no employee of organization {org_id}"
            )
        unknown = wanted - {e.id for e in employees}
        if unknown:
            logger.info("Ignoring %d unknown employee ids in filter for org %d", len(unknown), org_id)
        record_employee_ids: list[int] | None = [e.id for e in employees]
    else:
        employees = list(directory)
        record_employee_ids = None

    catalog = await _load_catalog(source, org_id, directory)
    records = await source.list_records(org_id, employee_ids=record_employee_ids)

    context = EvaluationContext(
        catalog=catalog,
        records=group_records(records),
        now=now,
        window_days=window,
    )

    employees.sort(key=lambda e: (e.name.casefold(), e.id))
    rows = await evaluate_employees(employees, context.entries_for)

    entries: dict[int, dict[int, ComplianceEntry]] = {}
    employee_rows: list[EmployeeRow] = []
    all_entries: list[ComplianceEntry] = []
    for employee, employee_entries in zip(employees, rows, strict=True):
        entries[employee.id] = {e.requirement_id: e for e in employee_entries}
        all_entries.extend(employee_entries)
        employee_rows.append(
            EmployeeRow(
                employee_id=employee.id,
                name=employee.name,
                role=employee.role,
                summary=summarize_employee(employee_entries),
            )
        )

    stats = compute_stats(all_entries)
    matrix = ComplianceMatrix(
        organization_id=org_id,
        as_of=as_of,
        computed_at=now,
        expiring_soon_window_days=window,
        employees=employee_rows,
        template_groups=context.template_groups({e.requirement_id for e in all_entries}),
        entries=entries,
        stats=stats,
        attention=attention_items(all_entries, limit=settings.COMPLIANCE_ATTENTION_LIMIT),
        warnings=catalog.warnings,
    )

    logger.info(
        "Compliance matrix for org %d as of %s: %d employees, %d entries, rate %.1f%%, %d warnings",
        org_id,
        as_of,
        len(employee_rows),
        len(all_entries),
        stats.compliance_rate,
        len(catalog.warnings),
    )
    logger.debug(
        "Status counts for org %d (required and optional): %s",
        org_id,
        {status.value: count for status, count in sorted(status_counts(all_entries).items())},
    )

    if cache is not None:
        cache.put(cache_key, matrix, generation)
    return matrix


async def build_checklist(
    source: ComplianceSource,
    employee_id: int,
    org_id: int,
    now: datetime,
    *,
    expiring_soon_window_days: int | None = None,
) -> EmployeeChecklist:
    """Build one employee's checklist ("my documents").

    Same resolution and evaluation as ``build_matrix``, restricted to one
    employee. Entries are ordered by template name then display order.

    Raises:
        InvalidComplianceInput: negative window, unknown organization or employee.
        SourceUnavailable: a source read failed.
    """
    window = _resolve_window(expiring_soon_window_days)
    now = ensure_tz(now)

    await _require_organization(source, org_id)

    directory = await source.list_employees(org_id)
    employee = next((e for e in directory if e.id == employee_id), None)
    if employee is None:
        raise UnknownEmployee(employee_id, org_id)

    catalog = await _load_catalog(source, org_id, directory)
    records = await source.list_records(org_id, employee_ids=[employee_id])

    context = EvaluationContext(
        catalog=catalog,
        records=group_records(records),
        now=now,
        window_days=window,
    )
    entries = context.entries_for(employee)

    logger.info(
        "Checklist for employee %d (org %d): %d entries",
        employee_id,
        org_id,
        len(entries),
    )
    return EmployeeChecklist(
        organization_id=org_id,
        employee_id=employee_id,
        as_of=as_of_date(now),
        entries=entries,
        summary=summarize_employee(entries),
        warnings=catalog.warnings,
    )
