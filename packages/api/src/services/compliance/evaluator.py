# This project was developed with assistance from AI tools.
"""Compliance status evaluation for one (employee, requirement) pair.

Pure functions that take the current time explicitly. Status precedence,
first match wins:

1. no record                          -> missing
2. expiring requirement, past expiry  -> expired
3. expiring requirement, within window -> expiring_soon
4. record not verified                -> pending_verification
5. otherwise                          -> compliant

An expiry date is taken to start at midnight UTC: a document is expired as
soon as its expiry day begins. The expiring-soon window counts whole days
between the UTC date of ``now`` and the expiry date.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta

from db.enums import ComplianceStatus

from ...schemas.compliance import (
    ComplianceEntry,
    DocumentRecordSnapshot,
    RequirementSnapshot,
    TemplateSnapshot,
)
from .errors import InvalidComplianceInput

logger = logging.getLogger(__name__)

DEFAULT_EXPIRING_SOON_DAYS = 30


def ensure_tz(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware (UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def as_of_date(now: datetime) -> date:
    """Calendar date of ``now`` in UTC."""
    return ensure_tz(now).astimezone(UTC).date()


def expiry_start(expiry: date) -> datetime:
    """Moment an expiry date takes effect (its midnight, UTC)."""
    return datetime.combine(expiry, time.min, tzinfo=UTC)


def validate_window(expiring_soon_window_days: int) -> int:
    if expiring_soon_window_days < 0:
        raise InvalidComplianceInput(
            f"expiring_soon_window_days must be >= 0, got {expiring_soon_window_days}"
        )
    return expiring_soon_window_days


def _record_sort_key(record: DocumentRecordSnapshot) -> tuple[datetime, int]:
    return (ensure_tz(record.uploaded_at), record.id)


def select_current_record(
    records: Iterable[DocumentRecordSnapshot],
) -> DocumentRecordSnapshot | None:
    """Pick the record compliance looks at: latest upload, then highest id."""
    current: DocumentRecordSnapshot | None = None
    for record in records:
        if current is None or _record_sort_key(record) > _record_sort_key(current):
            current = record
    return current


def effective_expiry_date(
    requirement: RequirementSnapshot,
    record: DocumentRecordSnapshot | None,
) -> date | None:
    """Expiry date used for status computation.

    Falls back to upload date plus the requirement's default validity when an
    expiring requirement's record carries no explicit expiry date.
    """
    if record is None or not requirement.requires_expiry:
        return None
    if record.expiry_date is not None:
        return record.expiry_date
    if requirement.default_validity_days:
        uploaded = as_of_date(record.uploaded_at)
        return uploaded + timedelta(days=requirement.default_validity_days)
    return None


def evaluate_status(
    requirement: RequirementSnapshot,
    current_record: DocumentRecordSnapshot | None,
    now: datetime,
    expiring_soon_window_days: int = DEFAULT_EXPIRING_SOON_DAYS,
) -> ComplianceStatus:
    """Compute the compliance status of a requirement given its current record.

    Args:
        requirement: The requirement being evaluated.
        current_record: Output of ``select_current_record`` (or None).
        now: Evaluation time; naive values are treated as UTC.
        expiring_soon_window_days: Days before expiry that count as expiring soon.

    Raises:
        InvalidComplianceInput: negative window.
    """
    validate_window(expiring_soon_window_days)

    if current_record is None:
        return ComplianceStatus.MISSING

    expiry = effective_expiry_date(requirement, current_record)
    if expiry is not None:
        if expiry_start(expiry) < ensure_tz(now):
            return ComplianceStatus.EXPIRED
        if (expiry - as_of_date(now)).days <= expiring_soon_window_days:
            return ComplianceStatus.EXPIRING_SOON

    if not current_record.is_verified:
        return ComplianceStatus.PENDING_VERIFICATION

    return ComplianceStatus.COMPLIANT


def build_entry(
    employee_id: int,
    requirement: RequirementSnapshot,
    template: TemplateSnapshot,
    records: Iterable[DocumentRecordSnapshot],
    now: datetime,
    expiring_soon_window_days: int = DEFAULT_EXPIRING_SOON_DAYS,
) -> ComplianceEntry:
    """Select the current record and evaluate one (employee, requirement) pair."""
    record = select_current_record(records)
    status = evaluate_status(requirement, record, now, expiring_soon_window_days)

    if record is None:
        return ComplianceEntry(
            employee_id=employee_id,
            requirement_id=requirement.id,
            template_id=template.id,
            template_name=template.name,
            document_name=requirement.document_name,
            document_type=requirement.document_type,
            is_required=requirement.is_required,
            status=status,
        )

    expiry = effective_expiry_date(requirement, record)
    if expiry is None and record.expiry_date is not None:
        # Shown for reference even when the requirement does not track expiry.
        expiry = record.expiry_date
    days_until_expiry = (expiry - as_of_date(now)).days if expiry is not None else None

    return ComplianceEntry(
        employee_id=employee_id,
        requirement_id=requirement.id,
        template_id=template.id,
        template_name=template.name,
        document_name=requirement.document_name,
        document_type=requirement.document_type,
        is_required=requirement.is_required,
        status=status,
        expiry_date=expiry,
        days_until_expiry=days_until_expiry,
        uploaded_at=record.uploaded_at,
        is_verified=record.is_verified,
        verified_at=record.verified_at,
        file_ref=record.file_ref,
        record_id=record.id,
    )
