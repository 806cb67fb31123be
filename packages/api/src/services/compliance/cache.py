# This project was developed with assistance from AI tools.
"""Read-through cache for computed compliance matrices.

Entries are keyed by organization and as-of date (statuses only change at
day granularity) and live for ``COMPLIANCE_CACHE_TTL`` seconds. Any committed
write to a directory, catalog or record row of an organization drops that
organization's entries; freshness takes priority over hit rate.
"""

import logging
import threading
import time
from collections.abc import Collection
from datetime import date

from db import (
    DocumentTemplate,
    Employee,
    EmployeeDocumentRecord,
    EmployeeTeam,
    Team,
    TemplateAssignment,
    TemplateRequirement,
)
from sqlalchemy import event
from sqlalchemy.orm import Session

from ...core.config import settings
from ...schemas.compliance import ComplianceMatrix

logger = logging.getLogger(__name__)

CacheKey = tuple[int, date, frozenset[int] | None, int]

# Models whose writes change compliance results.
_TRACKED_MODELS = (
    DocumentTemplate,
    Employee,
    EmployeeDocumentRecord,
    EmployeeTeam,
    Team,
    TemplateAssignment,
    TemplateRequirement,
)

# Sentinel meaning "cannot tell which org; drop everything".
_ALL_ORGS = -1
_SESSION_INFO_KEY = "compliance_dirty_orgs"


def make_key(
    org_id: int,
    as_of: date,
    employee_filter: Collection[int] | None,
    window_days: int,
) -> CacheKey:
    return (
        org_id,
        as_of,
        frozenset(employee_filter) if employee_filter is not None else None,
        window_days,
    )


class MatrixCache:
    """Thread-safe TTL cache of ``ComplianceMatrix`` objects.

    Each organization carries a generation bumped by ``invalidate`` and
    ``clear``. A matrix computed under an older generation is never stored.
    """

    def __init__(self, ttl_seconds: float, clock=time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[CacheKey, tuple[float, ComplianceMatrix]] = {}
        self._generations: dict[int, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> ComplianceMatrix | None:
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                return None
            stored_at, matrix = cached
            if self._clock() - stored_at > self._ttl:
                del self._entries[key]
                return None
            return matrix

    def generation(self, org_id: int) -> tuple[int, int]:
        """Token to take before reading the sources of a computation."""
        with self._lock:
            return (self._epoch, self._generations.get(org_id, 0))

    def put(
        self,
        key: CacheKey,
        matrix: ComplianceMatrix,
        generation: tuple[int, int] | None = None,
    ) -> bool:
        """Store a matrix. Returns False when it was not stored.

        With ``generation``, the matrix is dropped if its organization was
        invalidated since that token was taken.
        """
        if self._ttl <= 0:
            return False
        org_id = key[0]
        with self._lock:
            if generation is not None and generation != (
                self._epoch,
                self._generations.get(org_id, 0),
            ):
                logger.debug("Dropping matrix for org %d computed before a write", org_id)
                return False
            self._entries[key] = (self._clock(), matrix)
        return True

    def invalidate(self, org_id: int) -> int:
        """Drop every entry for an organization. Returns the number dropped."""
        with self._lock:
            self._generations[org_id] = self._generations.get(org_id, 0) + 1
            stale = [k for k in self._entries if k[0] == org_id]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Invalidated %d cached matrices for org %d", len(stale), org_id)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_matrix_cache: MatrixCache | None = None


def get_matrix_cache() -> MatrixCache | None:
    """Process-wide cache, or None when caching is disabled."""
    global _matrix_cache  # noqa: PLW0603
    if not settings.COMPLIANCE_CACHE_ENABLED:
        return None
    if _matrix_cache is None:
        _matrix_cache = MatrixCache(settings.COMPLIANCE_CACHE_TTL)
    return _matrix_cache


# ---------------------------------------------------------------------------
# Write-driven invalidation
# ---------------------------------------------------------------------------


def _org_of(instance) -> int | None:
    if not isinstance(instance, _TRACKED_MODELS):
        return None
    org_id = getattr(instance, "organization_id", None)
    # Requirements carry no org column; their template's org is not safe to
    # lazy-load inside a flush, so fall back to a full invalidation.
    return org_id if org_id is not None else _ALL_ORGS


def collect_dirty_orgs(session: Session) -> set[int]:
    """Organizations touched by the pending changes of a session."""
    orgs: set[int] = set()
    for instance in (*session.new, *session.dirty, *session.deleted):
        org_id = _org_of(instance)
        if org_id is not None:
            orgs.add(org_id)
    return orgs


def _after_flush(session: Session, _flush_context) -> None:
    orgs = collect_dirty_orgs(session)
    if orgs:
        session.info.setdefault(_SESSION_INFO_KEY, set()).update(orgs)


def _after_commit(session: Session) -> None:
    orgs = session.info.pop(_SESSION_INFO_KEY, None)
    cache = get_matrix_cache()
    if not orgs or cache is None:
        return
    if _ALL_ORGS in orgs:
        cache.clear()
        logger.debug("Cleared compliance matrix cache after catalog write")
        return
    for org_id in orgs:
        cache.invalidate(org_id)


def _after_rollback(session: Session) -> None:
    session.info.pop(_SESSION_INFO_KEY, None)


_hooks_installed = False


def install_invalidation_hooks() -> None:
    """Register session listeners that invalidate the cache on committed writes."""
    global _hooks_installed  # noqa: PLW0603
    if _hooks_installed:
        return
    event.listen(Session, "after_flush", _after_flush)
    event.listen(Session, "after_commit", _after_commit)
    event.listen(Session, "after_rollback", _after_rollback)
    _hooks_installed = True
    logger.info("Compliance cache invalidation hooks installed")
