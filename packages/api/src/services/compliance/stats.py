# This project was developed with assistance from AI tools.
"""Summary statistics over compliance entries."""

from collections import Counter
from collections.abc import Iterable

from db.enums import ComplianceStatus

from ...schemas.compliance import ComplianceEntry, ComplianceStats

# Most urgent first when listing entries that need action.
_ATTENTION_ORDER: dict[ComplianceStatus, int] = {
    ComplianceStatus.EXPIRED: 0,
    ComplianceStatus.EXPIRING_SOON: 1,
    ComplianceStatus.MISSING: 2,
    ComplianceStatus.PENDING_VERIFICATION: 3,
}


def status_counts(entries: Iterable[ComplianceEntry]) -> Counter[ComplianceStatus]:
    """Raw count per status, required and optional alike."""
    return Counter(entry.status for entry in entries)


def compliance_rate(compliant: int, total_required: int) -> float:
    """Percentage of required entries that are compliant, 0.0 when none are required."""
    if total_required <= 0:
        return 0.0
    return round(compliant / total_required * 100, 1)


def compute_stats(entries: Iterable[ComplianceEntry]) -> ComplianceStats:
    """Per-status counts and compliance rate over required entries.

    Optional entries are only counted in ``total_optional``.
    """
    required = Counter()
    total_required = 0
    total_optional = 0
    for entry in entries:
        if not entry.is_required:
            total_optional += 1
            continue
        total_required += 1
        required[entry.status] += 1

    compliant = required[ComplianceStatus.COMPLIANT]
    return ComplianceStats(
        compliant=compliant,
        missing=required[ComplianceStatus.MISSING],
        expired=required[ComplianceStatus.EXPIRED],
        expiring_soon=required[ComplianceStatus.EXPIRING_SOON],
        pending_verification=required[ComplianceStatus.PENDING_VERIFICATION],
        total_required=total_required,
        total_optional=total_optional,
        compliance_rate=compliance_rate(compliant, total_required),
    )


def summarize_employee(entries: Iterable[ComplianceEntry]) -> ComplianceStats:
    """Stats for a single employee's entries."""
    return compute_stats(entries)


def attention_items(
    entries: Iterable[ComplianceEntry],
    limit: int | None = None,
) -> list[ComplianceEntry]:
    """Required entries needing action, most urgent first.

    Expired before expiring soon (soonest expiry first), then missing, then
    pending verification. Ties fall back to employee and requirement id so
    the order is stable.
    """
    needs_action = ComplianceStatus.needs_action()
    pending = [e for e in entries if e.is_required and e.status in needs_action]
    pending.sort(
        key=lambda e: (
            _ATTENTION_ORDER[e.status],
            e.days_until_expiry if e.days_until_expiry is not None else 0,
            e.employee_id,
            e.requirement_id,
        )
    )
    if limit is not None:
        return pending[:limit]
    return pending
