# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, DatabaseService, SessionLocal, get_db, get_db_service
from .enums import (
    AssignmentTargetKind,
    ComplianceStatus,
    DocumentType,
    VerificationStatus,
)
from .models import (
    DocumentTemplate,
    Employee,
    EmployeeDocumentRecord,
    EmployeeTeam,
    Organization,
    Team,
    TemplateAssignment,
    TemplateRequirement,
)

__all__ = [
    "Base",
    "DatabaseService",
    "SessionLocal",
    "get_db",
    "get_db_service",
    "__version__",
    # Enums
    "AssignmentTargetKind",
    "ComplianceStatus",
    "DocumentType",
    "VerificationStatus",
    # Models
    "DocumentTemplate",
    "Employee",
    "EmployeeDocumentRecord",
    "EmployeeTeam",
    "Organization",
    "Team",
    "TemplateAssignment",
    "TemplateRequirement",
]
