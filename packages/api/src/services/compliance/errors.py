# This project was developed with assistance from AI tools.
"""Error kinds raised by the document compliance engine.

Data-integrity problems are not errors: they become ``DataIntegrityWarning``
entries on the result. Only collaborator failures and caller mistakes raise.
"""


class ComplianceError(Exception):
    """Base class for compliance engine failures."""


class SourceUnavailable(ComplianceError):
    """A directory, catalog or record store read failed.

    Fatal to the current request; no partial matrix is returned and the
    engine does not retry.
    """

    def __init__(self, source: str, operation: str, cause: BaseException | None = None):
        self.source = source
        self.operation = operation
        self.cause = cause
        detail = f"{source} unavailable during {operation}"
        if cause is not None:
            detail = f"{detail}: {cause.__class__.__name__}"
        super().__init__(detail)


class InvalidComplianceInput(ComplianceError):
    """Caller error detected before any computation starts."""

    status_code = 422


class UnknownOrganization(InvalidComplianceInput):
    status_code = 404

    def __init__(self, org_id: int):
        self.org_id = org_id
        super().__init__(f"Organization {org_id} not found")


class UnknownEmployee(InvalidComplianceInput):
    status_code = 404

    def __init__(self, employee_id: int, org_id: int):
        self.employee_id = employee_id
        self.org_id = org_id
        super().__init__(f"Employee {employee_id} not found in organization {org_id}")


class InvalidAssignmentError(ValueError):
    """Assignment row does not target exactly one of employee, role, team."""

    def __init__(self, assignment_id: int, target_count: int):
        self.assignment_id = assignment_id
        self.target_count = target_count
        super().__init__(
            f"Assignment {assignment_id} has {target_count} targets; exactly one of "
            "employee_id, role, team_id must be set"
        )
