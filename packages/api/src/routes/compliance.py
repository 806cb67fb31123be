# This project was developed with assistance from AI tools.
"""Document compliance endpoints: organization matrix and personal checklist.

Thin transport over the compliance engine. The only clock read happens here,
when the caller omits ``as_of``. Engine errors are rendered by the handlers
in ``src.main``.
"""

import logging
from datetime import UTC, datetime

from db import get_db
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.compliance import ComplianceMatrix, EmployeeChecklist
from ..services.compliance.cache import get_matrix_cache
from ..services.compliance.matrix import build_checklist, build_matrix
from ..services.compliance.sources import ComplianceSource, SqlComplianceSource

logger = logging.getLogger(__name__)

router = APIRouter()

DATA_ISSUES_HEADER = "X-Data-Issues"


async def get_compliance_source(
    session: AsyncSession = Depends(get_db),
) -> ComplianceSource:
    """Dependency: compliance reads bound to the request's session."""
    return SqlComplianceSource(session)


@router.get(
    "/organizations/{org_id}/compliance/matrix",
    response_model=ComplianceMatrix,
)
async def get_compliance_matrix(
    org_id: int,
    response: Response,
    as_of: datetime | None = Query(default=None, description="Evaluation time (default: now, UTC)"),
    employee_id: list[int] | None = Query(default=None, description="Restrict to these employees"),
    window_days: int | None = Query(
        default=None, description="Expiring-soon window in days (default from settings)"
    ),
    source: ComplianceSource = Depends(get_compliance_source),
) -> ComplianceMatrix:
    """Employee x requirement compliance matrix with summary statistics."""
    now = as_of or datetime.now(UTC)
    matrix = await build_matrix(
        source,
        org_id,
        now,
        employee_filter=employee_id,
        expiring_soon_window_days=window_days,
        cache=get_matrix_cache(),
    )

    response.headers[DATA_ISSUES_HEADER] = str(matrix.warning_count)
    return matrix


@router.get(
    "/organizations/{org_id}/employees/{employee_id}/checklist",
    response_model=EmployeeChecklist,
)
async def get_employee_checklist(
    org_id: int,
    employee_id: int,
    response: Response,
    as_of: datetime | None = Query(default=None, description="Evaluation time (default: now, UTC)"),
    window_days: int | None = Query(default=None),
    source: ComplianceSource = Depends(get_compliance_source),
) -> EmployeeChecklist:
    """One employee's document checklist, ordered by template and display order."""
    now = as_of or datetime.now(UTC)
    checklist = await build_checklist(
        source,
        employee_id,
        org_id,
        now,
        expiring_soon_window_days=window_days,
    )

    response.headers[DATA_ISSUES_HEADER] = str(len(checklist.warnings))
    return checklist
