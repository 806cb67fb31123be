# This project was developed with assistance from AI tools.
"""
HR document compliance -- domain models

Organizations, employees and team membership (directory), document
templates with their requirements and assignments (catalog), and the
uploaded employee document records (record store).
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from .enums import DocumentType, VerificationStatus


class Organization(Base):
    """Tenant boundary; every other row belongs to exactly one organization."""

    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    employees = relationship("Employee", back_populates="organization")
    teams = relationship("Team", back_populates="organization")
    templates = relationship("DocumentTemplate", back_populates="organization")

    def __repr__(self):
        return f"<Organization(id={self.id}, name='{self.name}')>"


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = Column(String(255), nullable=False)

    organization = relationship("Organization", back_populates="teams")
    members = relationship(
        "EmployeeTeam", back_populates="team", cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}')>"


class Employee(Base):
    """Employee directory entry with a single role string."""

    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    role = Column(String(100), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    organization = relationship("Organization", back_populates="employees")
    team_memberships = relationship(
        "EmployeeTeam", back_populates="employee", cascade="all, delete-orphan",
    )
    document_records = relationship(
        "EmployeeDocumentRecord", back_populates="employee", cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<Employee(id={self.id}, name='{self.first_name} {self.last_name}')>"


class EmployeeTeam(Base):
    """Junction table linking employees to teams (an employee may be in several)."""

    __tablename__ = "employee_teams"
    __table_args__ = (UniqueConstraint("employee_id", "team_id", name="uq_employee_team"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    employee_id = Column(
        Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    team_id = Column(
        Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True,
    )

    employee = relationship("Employee", back_populates="team_memberships")
    team = relationship("Team", back_populates="members")


class DocumentTemplate(Base):
    """Named, reusable bundle of document requirements."""

    __tablename__ = "document_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    organization = relationship("Organization", back_populates="templates")
    requirements = relationship(
        "TemplateRequirement",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateRequirement.display_order",
    )
    assignments = relationship(
        "TemplateAssignment", back_populates="template", cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<DocumentTemplate(id={self.id}, name='{self.name}', active={self.is_active})>"


class TemplateRequirement(Base):
    """One document a template demands, with its optional renewal policy."""

    __tablename__ = "template_requirements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    template_id = Column(
        Integer, ForeignKey("document_templates.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    document_name = Column(String(255), nullable=False)
    document_type = Column(
        Enum(DocumentType, name="document_type", native_enum=False),
        nullable=False,
        default=DocumentType.OTHER,
    )
    description = Column(Text, nullable=True)
    is_required = Column(Boolean, nullable=False, default=True)
    requires_expiry = Column(Boolean, nullable=False, default=False)
    default_validity_days = Column(Integer, nullable=True)
    max_file_size_mb = Column(Integer, nullable=False, default=10)
    display_order = Column(Integer, nullable=False, default=0)

    template = relationship("DocumentTemplate", back_populates="requirements")

    def __repr__(self):
        return f"<TemplateRequirement(id={self.id}, name='{self.document_name}')>"


class TemplateAssignment(Base):
    """Binds a template to exactly one of: an employee, a role, or a team."""

    __tablename__ = "template_assignments"
    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN employee_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN role IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN team_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="ck_assignment_single_target",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    template_id = Column(
        Integer, ForeignKey("document_templates.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    employee_id = Column(
        Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    role = Column(String(100), nullable=True)
    team_id = Column(
        Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    template = relationship("DocumentTemplate", back_populates="assignments")

    def __repr__(self):
        return f"<TemplateAssignment(id={self.id}, template_id={self.template_id})>"


class EmployeeDocumentRecord(Base):
    """Uploaded document instance for one employee against one requirement.

    Re-uploads add rows; the newest upload is the one compliance looks at.
    """

    __tablename__ = "employee_document_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    employee_id = Column(
        Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    requirement_id = Column(
        Integer, ForeignKey("template_requirements.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    file_ref = Column(String(500), nullable=False)
    file_name = Column(String(255), nullable=True)
    uploaded_by = Column(String(255), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expiry_date = Column(Date, nullable=True)
    verification_status = Column(
        Enum(VerificationStatus, name="verification_status", native_enum=False),
        nullable=False,
        default=VerificationStatus.UNVERIFIED,
    )
    verified_by = Column(String(255), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    employee = relationship("Employee", back_populates="document_records")
    requirement = relationship("TemplateRequirement")

    def __repr__(self):
        return (
            f"<EmployeeDocumentRecord(id={self.id}, employee_id={self.employee_id}, "
            f"requirement_id={self.requirement_id})>"
        )
