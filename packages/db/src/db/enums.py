# This project was developed with assistance from AI tools.
"""
Domain enums for HR document compliance.

Shared domain types used by both SQLAlchemy models (db package)
and Pydantic schemas (api package).
"""

import enum


class DocumentType(str, enum.Enum):
    CONTRACT = "contract"
    ID = "id"
    TAX_FORM = "tax_form"
    CERTIFICATION = "certification"
    PERFORMANCE_REVIEW = "performance_review"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Human-readable label shown next to a requirement."""
        return _DOCUMENT_TYPE_LABELS[self]


_DOCUMENT_TYPE_LABELS: dict[DocumentType, str] = {
    DocumentType.CONTRACT: "Employment Contract",
    DocumentType.ID: "ID Document",
    DocumentType.TAX_FORM: "Tax Form",
    DocumentType.CERTIFICATION: "Certification",
    DocumentType.PERFORMANCE_REVIEW: "Performance Review",
    DocumentType.OTHER: "Other",
}


class VerificationStatus(str, enum.Enum):
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


class AssignmentTargetKind(str, enum.Enum):
    """Dimension a template assignment targets."""

    EMPLOYEE = "employee"
    ROLE = "role"
    TEAM = "team"


class ComplianceStatus(str, enum.Enum):
    """Per (employee, requirement) compliance state."""

    MISSING = "missing"
    EXPIRED = "expired"
    EXPIRING_SOON = "expiring_soon"
    PENDING_VERIFICATION = "pending_verification"
    COMPLIANT = "compliant"

    @classmethod
    def needs_action(cls) -> frozenset["ComplianceStatus"]:
        """Statuses that require someone to upload or verify a document."""
        return frozenset({cls.MISSING, cls.EXPIRED, cls.EXPIRING_SOON, cls.PENDING_VERIFICATION})
