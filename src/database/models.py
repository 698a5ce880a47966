"""
SQLAlchemy ORM Models for the Staffing Back Office.

Architecture:
- Primary Keys: UUID for all tables (globally unique)
- Secondary Keys: natural business keys (company name, position code,
  invoice number, assignment + week)
- Status columns: short strings constrained to the matching enum values
- Data Types: Numeric(10, 2) for every monetary amount and hour total
- Denormalized: positions.assigned_jobseekers mirrors the seat-holding
  rows of position_assignments and is rewritten by the position service
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Numeric, Boolean, Date, DateTime,
    Text, ForeignKey, Index, CheckConstraint, UniqueConstraint, JSON
)
from sqlalchemy.dialects.postgresql import UUID, JSONB as PG_JSONB
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator

from .encrypted_fields import EncryptedString


# Cross-database compatible JSON type
# Uses JSONB on PostgreSQL, JSON on SQLite/others
class JSONB(TypeDecorator):
    """A portable JSONB type that works with both PostgreSQL and SQLite."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_JSONB())
        else:
            return dialect.type_descriptor(JSON())


Base = declarative_base()


# =============================================================================
# ENUMERATIONS
# =============================================================================

class UserType(str, PyEnum):
    """Account types carried in the access token."""
    ADMIN = "admin"
    RECRUITER = "recruiter"
    JOBSEEKER = "jobseeker"


class AssignmentStatus(str, PyEnum):
    """Lifecycle of a candidate's seat on a position."""
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that occupy one of a position's seats
SEAT_HOLDING_STATUSES = (AssignmentStatus.ACTIVE.value, AssignmentStatus.UPCOMING.value)


class VerificationStatus(str, PyEnum):
    """Jobseeker profile review status."""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class EmploymentTerm(str, PyEnum):
    PERMANENT = "Permanent"
    CONTRACT = "Contract"
    TEMPORARY = "Temporary"


class EmploymentType(str, PyEnum):
    FULL_TIME = "Full-Time"
    PART_TIME = "Part-Time"


class PayrateType(str, PyEnum):
    HOURLY = "Hourly"
    DAILY = "Daily"
    MONTHLY = "Monthly"


# Keys of positions.documents_required
REQUIRED_DOCUMENT_KEYS = (
    "license",
    "driverAbstract",
    "tdgCertificate",
    "sin",
    "immigrationStatus",
    "passport",
    "cvor",
    "resume",
    "articlesOfIncorporation",
    "directDeposit",
)


def _values(enum_cls) -> str:
    return ", ".join(f"'{member.value}'" for member in enum_cls)


# =============================================================================
# CLIENTS
# =============================================================================

class _ClientColumns:
    """Client fields shared by clients and client_drafts."""

    company_name = Column(String(255))
    billing_name = Column(String(255))
    short_code = Column(String(3))
    list_name = Column(String(255))
    website = Column(String(255))
    client_manager = Column(String(255))
    sales_person = Column(String(255))
    accounting_person = Column(String(255))
    merge_invoice = Column(Boolean, default=False)
    currency = Column(String(3), default="CAD")
    work_province = Column(String(50))

    # Contacts
    contact_person_name1 = Column(String(255))
    email_address1 = Column(String(255))
    mobile1 = Column(String(50))
    invoice_cc1 = Column(Boolean, default=False)
    contact_person_name2 = Column(String(255))
    email_address2 = Column(String(255))
    mobile2 = Column(String(50))
    invoice_cc2 = Column(Boolean, default=False)
    contact_person_name3 = Column(String(255))
    email_address3 = Column(String(255))
    mobile3 = Column(String(50))
    invoice_cc3 = Column(Boolean, default=False)
    dispatch_dept_email = Column(String(255))
    accounts_dept_email = Column(String(255))
    invoice_cc_dispatch = Column(Boolean, default=False)
    invoice_cc_accounts = Column(Boolean, default=False)
    invoice_language = Column(String(20), default="English")

    # Addresses
    street_address1 = Column(String(255))
    city1 = Column(String(100))
    province1 = Column(String(50))
    postal_code1 = Column(String(20))
    street_address2 = Column(String(255))
    city2 = Column(String(100))
    province2 = Column(String(50))
    postal_code2 = Column(String(20))
    street_address3 = Column(String(255))
    city3 = Column(String(100))
    province3 = Column(String(50))
    postal_code3 = Column(String(20))

    # Billing
    preferred_payment_method = Column(String(50))
    terms = Column(String(50))
    pay_cycle = Column(String(50))
    credit_limit = Column(Numeric(12, 2))
    notes = Column(Text)
    wsib_code = Column(String(2))


class Client(_ClientColumns, Base):
    """
    Client company that staffing positions are opened for.

    Primary Key: id (UUID)
    Secondary Key: company_name (unique)
    """
    __tablename__ = "clients"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)

    company_name = Column(String(255), nullable=False, unique=True, index=True)
    billing_name = Column(String(255), nullable=False)
    contact_person_name1 = Column(String(255), nullable=False)
    email_address1 = Column(String(255), nullable=False)
    mobile1 = Column(String(50), nullable=False)
    street_address1 = Column(String(255), nullable=False)
    city1 = Column(String(100), nullable=False)
    province1 = Column(String(50), nullable=False)
    postal_code1 = Column(String(20), nullable=False)

    created_by_user_id = Column(UUID(as_uuid=True), nullable=True)
    updated_by_user_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    positions = relationship("Position", back_populates="client")

    __table_args__ = (
        CheckConstraint("credit_limit IS NULL OR credit_limit >= 0", name="ck_client_credit_limit"),
        Index("ix_client_short_code", "short_code"),
        Index("ix_client_list_name", "list_name"),
    )

    def __repr__(self):
        return f"<Client(id={self.id}, company={self.company_name})>"


class ClientDraft(_ClientColumns, Base):
    """Partially completed client form, owned by the user who saved it."""
    __tablename__ = "client_drafts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# =============================================================================
# POSITIONS
# =============================================================================

class _PositionColumns:
    """Position fields shared by positions and position_drafts."""

    client_name = Column(String(255))
    title = Column(String(255))
    position_code = Column(String(10))
    start_date = Column(Date)
    end_date = Column(Date)
    show_on_job_portal = Column(Boolean, default=False)
    client_manager = Column(String(255))
    sales_manager = Column(String(255))
    position_number = Column(String(50))
    description = Column(Text)

    street_address = Column(String(255))
    city = Column(String(100))
    province = Column(String(50))
    postal_code = Column(String(20))

    employment_term = Column(String(20))
    employment_type = Column(String(20))
    position_category = Column(String(100))
    experience = Column(String(20))
    documents_required = Column(JSONB, default=dict)

    payrate_type = Column(String(20))
    number_of_positions = Column(Integer)
    regular_pay_rate = Column(Numeric(10, 2))
    markup = Column(Numeric(6, 2))
    bill_rate = Column(Numeric(10, 2))
    overtime_enabled = Column(Boolean, default=False)
    overtime_hours = Column(Numeric(5, 2))
    overtime_bill_rate = Column(Numeric(10, 2))
    overtime_pay_rate = Column(Numeric(10, 2))

    preferred_payment_method = Column(String(50))
    terms = Column(String(50))
    notes = Column(Text)
    assigned_to = Column(String(255))
    proj_comp_date = Column(Date)
    task_time = Column(String(20))


class Position(_PositionColumns, Base):
    """
    Job opening at a client, with pay/bill rates and a seat capacity.

    Primary Key: id (UUID)
    Secondary Key: position_code (client short code + 3 digits)
    """
    __tablename__ = "positions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    client_id = Column(
        UUID(as_uuid=True),
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    title = Column(String(255), nullable=False)
    position_code = Column(String(10), nullable=False, unique=True, index=True)
    start_date = Column(Date, nullable=False)
    employment_term = Column(String(20), nullable=False)
    employment_type = Column(String(20), nullable=False)
    position_category = Column(String(100), nullable=False)
    experience = Column(String(20), nullable=False)
    payrate_type = Column(String(20), nullable=False)
    number_of_positions = Column(Integer, nullable=False, default=1)
    regular_pay_rate = Column(Numeric(10, 2), nullable=False)
    bill_rate = Column(Numeric(10, 2), nullable=False)

    # Mirror of seat-holding candidate ids (strings), rebuilt from position_assignments
    assigned_jobseekers = Column(JSONB, nullable=False, default=list)

    created_by_user_id = Column(UUID(as_uuid=True), nullable=True)
    updated_by_user_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client", back_populates="positions")
    assignments = relationship("PositionAssignment", back_populates="position")

    __table_args__ = (
        CheckConstraint("number_of_positions >= 1", name="ck_position_capacity"),
        CheckConstraint("regular_pay_rate >= 0 AND bill_rate >= 0", name="ck_position_rates"),
        CheckConstraint("end_date IS NULL OR end_date > start_date", name="ck_position_dates"),
        Index("ix_position_client_start", "client_id", "start_date"),
    )

    def __repr__(self):
        return f"<Position(id={self.id}, code={self.position_code}, seats={self.number_of_positions})>"


class PositionDraft(_PositionColumns, Base):
    """Partially completed position form, owned by the user who saved it."""
    __tablename__ = "position_drafts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    client_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# =============================================================================
# JOBSEEKERS & ASSIGNMENTS
# =============================================================================

class JobseekerProfile(Base):
    """
    Jobseeker profile.

    Primary Key: id (UUID)
    Secondary Key: user_id (identity-provider account, unique)
    """
    __tablename__ = "jobseeker_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, unique=True, index=True)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    mobile = Column(String(50))
    dob = Column(Date)

    license_number = Column(EncryptedString("license"))
    passport_number = Column(EncryptedString("passport"))
    sin_number = Column(EncryptedString("sin"))

    street = Column(String(255))
    city = Column(String(100))
    province = Column(String(50))
    postal_code = Column(String(20))

    work_preference = Column(String(255))
    license_type = Column(String(50))
    experience = Column(String(20))
    availability = Column(String(20))
    weekend_availability = Column(Boolean, default=False)
    payment_method = Column(String(50))
    hst_gst = Column(String(50))
    bio = Column(Text)

    verification_status = Column(
        String(20),
        nullable=False,
        default=VerificationStatus.PENDING.value,
        index=True
    )
    rejection_reason = Column(Text)
    employee_id = Column(String(20), unique=True)

    created_by_user_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            f"verification_status IN ({_values(VerificationStatus)})",
            name="ck_jobseeker_verification_status"
        ),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class JobseekerProfileDraft(Base):
    """
    Partially completed jobseeker profile form.

    A recruiter may hold several (one per jobseeker being onboarded); a
    jobseeker normally keeps one for their own profile. The form is stored
    as submitted, minus the identity numbers.
    """
    __tablename__ = "jobseeker_profile_drafts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    email = Column(String(255), index=True)
    form_data = Column(JSONB, nullable=False, default=dict)
    current_step = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PositionAssignment(Base):
    """
    A candidate's seat on a position for a date range.

    Rows are never deleted; removal sets status to cancelled.
    """
    __tablename__ = "position_assignments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    position_id = Column(
        UUID(as_uuid=True),
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False
    )
    # Jobseeker account id (jobseeker_profiles.user_id)
    candidate_id = Column(UUID(as_uuid=True), nullable=False)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=AssignmentStatus.ACTIVE.value)

    created_by_user_id = Column(UUID(as_uuid=True), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    position = relationship("Position", back_populates="assignments")

    __table_args__ = (
        CheckConstraint(f"status IN ({_values(AssignmentStatus)})", name="ck_assignment_status"),
        CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_assignment_dates"),
        Index("ix_assignment_position_status", "position_id", "status"),
        Index("ix_assignment_candidate_status", "candidate_id", "status"),
    )

    def __repr__(self):
        return f"<PositionAssignment(position={self.position_id}, candidate={self.candidate_id}, status={self.status})>"


# =============================================================================
# TIMESHEETS
# =============================================================================

class Timesheet(Base):
    """
    Weekly timesheet for one jobseeker on one assignment.

    Primary Key: id (UUID)
    Secondary Keys: invoice_number (unique), (assignment_id, week_start_date)
    """
    __tablename__ = "timesheets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)

    jobseeker_profile_id = Column(
        UUID(as_uuid=True),
        ForeignKey("jobseeker_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    jobseeker_user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    assignment_id = Column(
        UUID(as_uuid=True),
        ForeignKey("position_assignments.id", ondelete="CASCADE"),
        nullable=False
    )
    position_id = Column(
        UUID(as_uuid=True),
        ForeignKey("positions.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    week_start_date = Column(Date, nullable=False)
    week_end_date = Column(Date, nullable=False)
    # [{"date": "2024-01-01", "hours": 8.0}, ...]
    daily_hours = Column(JSONB, nullable=False, default=list)

    total_regular_hours = Column(Numeric(6, 2), nullable=False, default=0)
    total_overtime_hours = Column(Numeric(6, 2), nullable=False, default=0)
    regular_pay_rate = Column(Numeric(10, 2), nullable=False, default=0)
    overtime_pay_rate = Column(Numeric(10, 2), nullable=False, default=0)
    regular_bill_rate = Column(Numeric(10, 2), nullable=False, default=0)
    overtime_bill_rate = Column(Numeric(10, 2), nullable=False, default=0)
    total_jobseeker_pay = Column(Numeric(10, 2), nullable=False, default=0)
    total_client_bill = Column(Numeric(10, 2), nullable=False, default=0)
    overtime_enabled = Column(Boolean, default=False)
    markup = Column(Numeric(6, 2))
    bonus_amount = Column(Numeric(10, 2), nullable=False, default=0)
    deduction_amount = Column(Numeric(10, 2), nullable=False, default=0)

    document = Column(Text)
    notes = Column(Text)
    invoice_number = Column(String(20), nullable=False, unique=True, index=True)
    email_sent = Column(Boolean, default=False)

    version = Column(Integer, nullable=False, default=1)
    version_history = Column(JSONB, nullable=False, default=list)

    created_by_user_id = Column(UUID(as_uuid=True), nullable=True)
    updated_by_user_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    jobseeker_profile = relationship("JobseekerProfile")
    position = relationship("Position")

    __table_args__ = (
        UniqueConstraint("assignment_id", "week_start_date", name="uq_timesheet_assignment_week"),
        CheckConstraint("total_regular_hours >= 0 AND total_overtime_hours >= 0", name="ck_timesheet_hours"),
        CheckConstraint("bonus_amount >= 0 AND deduction_amount >= 0", name="ck_timesheet_adjustments"),
        CheckConstraint("total_jobseeker_pay >= 0 AND total_client_bill >= 0", name="ck_timesheet_totals"),
        CheckConstraint("version > 0", name="ck_timesheet_version"),
        Index("ix_timesheet_week", "week_start_date", "week_end_date"),
    )

    def __repr__(self):
        return f"<Timesheet(id={self.id}, invoice={self.invoice_number}, week={self.week_start_date})>"


class BulkTimesheet(Base):
    """
    Aggregated weekly timesheet for several jobseekers on one position.

    Per-jobseeker rows live in jobseeker_timesheets (JSON array);
    grand totals are stored alongside for listing and reporting.
    """
    __tablename__ = "bulk_timesheets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)

    client_id = Column(
        UUID(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position_id = Column(
        UUID(as_uuid=True),
        ForeignKey("positions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    invoice_number = Column(String(20), nullable=False, unique=True, index=True)
    week_start_date = Column(Date, nullable=False, index=True)
    week_end_date = Column(Date, nullable=False)
    week_period = Column(String(64), nullable=False)
    email_sent = Column(Boolean, default=False)

    # Grand totals
    total_hours = Column(Numeric(10, 2), default=0)
    total_regular_hours = Column(Numeric(10, 2), default=0)
    total_overtime_hours = Column(Numeric(10, 2), default=0)
    total_overtime_pay = Column(Numeric(10, 2), default=0)
    total_jobseeker_pay = Column(Numeric(10, 2), default=0)
    total_client_bill = Column(Numeric(10, 2), default=0)
    total_bonus = Column(Numeric(10, 2), default=0)
    total_deductions = Column(Numeric(10, 2), default=0)
    net_pay = Column(Numeric(10, 2), default=0)

    # Summary counts
    number_of_jobseekers = Column(Integer, default=0)
    average_hours_per_jobseeker = Column(Numeric(10, 2), default=0)
    average_pay_per_jobseeker = Column(Numeric(10, 2), default=0)

    jobseeker_timesheets = Column(JSONB, nullable=False, default=list)

    version = Column(Integer, nullable=False, default=1)
    version_history = Column(JSONB, nullable=False, default=list)

    created_by_user_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    updated_by_user_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client")
    position = relationship("Position")

    __table_args__ = (
        CheckConstraint("week_end_date >= week_start_date", name="ck_bulk_week_dates"),
        CheckConstraint("total_hours >= 0", name="ck_bulk_total_hours"),
        CheckConstraint("number_of_jobseekers >= 0", name="ck_bulk_jobseeker_count"),
        CheckConstraint("version > 0", name="ck_bulk_version"),
    )


# =============================================================================
# ACTIVITY HISTORY
# =============================================================================

class RecentActivity(Base):
    """Human-readable activity feed entry (who did what to which entity)."""
    __tablename__ = "recent_activities"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    actor_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    actor_name = Column(String(255), nullable=False)
    actor_type = Column(String(20), nullable=False, default=UserType.RECRUITER.value)

    action_type = Column(String(50), nullable=False, index=True)
    action_verb = Column(String(50), nullable=False)

    primary_entity_type = Column(String(50), nullable=False)
    primary_entity_id = Column(String(64))
    primary_entity_name = Column(String(255))
    secondary_entity_type = Column(String(50))
    secondary_entity_id = Column(String(64))
    secondary_entity_name = Column(String(255))
    tertiary_entity_type = Column(String(50))
    tertiary_entity_id = Column(String(64))
    tertiary_entity_name = Column(String(255))

    display_message = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    priority = Column(String(10), nullable=False, default="normal")
    status = Column(String(20), nullable=False, default="completed")
    # "metadata" is reserved on declarative classes
    activity_metadata = Column("metadata", JSONB, default=dict)

    __table_args__ = (
        CheckConstraint("priority IN ('low', 'normal', 'high', 'urgent')", name="ck_activity_priority"),
    )
