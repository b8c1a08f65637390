"""
Talaty eKYC - SQLAlchemy ORM Models
PostgreSQL database models for persistent storage
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column, String, Integer, DateTime, Text, JSON, ForeignKey, Enum as SQLEnum,
    Boolean, Date, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from ..database import Base


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    REVIEWER = "reviewer"


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    PENDING = "pending"
    REJECTED = "rejected"


class KycStatus(str, Enum):
    """Identity verification state, owned by the account/auth side."""
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentType(str, Enum):
    ID_CARD = "id_card"
    PASSPORT = "passport"
    DRIVING_LICENSE = "driving_license"
    BUSINESS_LICENSE = "business_license"
    TAX_CERTIFICATE = "tax_certificate"
    BANK_STATEMENT = "bank_statement"
    UTILITY_BILL = "utility_bill"
    INSURANCE_DOCUMENT = "insurance_document"
    LEGAL_DOCUMENT = "legal_document"
    OTHER = "other"


class DocumentStatus(str, Enum):
    """States in the document verification state machine."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class FormType(str, Enum):
    PERSONAL_INFO = "personal_info"
    BUSINESS_INFO = "business_info"
    FINANCIAL_INFO = "financial_info"
    COMPLIANCE_INFO = "compliance_info"


class FormStatus(str, Enum):
    """Form status. DRAFT/SUBMITTED are derived from completion on every write."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ERROR = "error"


def enum_value(obj):
    """Plain value of an enum member; anything else is returned unchanged."""
    return obj.value if isinstance(obj, Enum) else obj


# =============================================================================
# ACCOUNTS
# =============================================================================

class UserDB(Base):
    """User account. Verification flags are read by the score engine."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)  # UUID
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(20), nullable=True)
    business_name = Column(String(255), nullable=True)

    role = Column(SQLEnum(UserRole), default=UserRole.USER, nullable=False, index=True)
    status = Column(SQLEnum(UserStatus), default=UserStatus.PENDING, nullable=False, index=True)

    # ==========================================================================
    # VERIFICATION - fuels the verification component of the business score
    # ==========================================================================
    email_verified = Column(Boolean, default=False, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)
    kyc_status = Column(SQLEnum(KycStatus), default=KycStatus.PENDING, nullable=False, index=True)

    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    documents = relationship(
        "DocumentDB", back_populates="user", cascade="all, delete-orphan",
        foreign_keys="DocumentDB.user_id",
    )
    forms = relationship("FormDB", back_populates="user", cascade="all, delete-orphan")
    score = relationship("ScoreDB", back_populates="user", uselist=False, cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# =============================================================================
# DOCUMENTS
# =============================================================================

class DocumentDB(Base):
    """One uploaded file claim. Created PENDING, verified once by a reviewer."""
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    document_type = Column(SQLEnum(DocumentType), nullable=False, index=True)
    document_name = Column(String(255), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_size = Column(Integer, nullable=False)
    file_type = Column(String(100), nullable=False)

    status = Column(SQLEnum(DocumentStatus), default=DocumentStatus.PENDING, nullable=False, index=True)
    verification_notes = Column(Text, nullable=True)
    verified_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    verified_at = Column(DateTime, nullable=True)

    document_number = Column(String(100), nullable=True)
    issuing_authority = Column(String(255), nullable=True)
    issue_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)  # Drives the expiry sweep

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="documents", foreign_keys=[user_id])


# =============================================================================
# FORMS
# =============================================================================

class FormDB(Base):
    """Exactly one row per (user, form_type); resubmission updates in place."""
    __tablename__ = "forms"
    __table_args__ = (
        UniqueConstraint("user_id", "form_type", name="uix_form_user_type"),
    )

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    form_type = Column(SQLEnum(FormType), nullable=False, index=True)
    form_data = Column(JSON, nullable=False, default=dict)
    status = Column(SQLEnum(FormStatus), default=FormStatus.DRAFT, nullable=False, index=True)
    completion_percentage = Column(Integer, default=0, nullable=False)  # 0-100
    version = Column(Integer, default=1, nullable=False)
    submitted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="forms")


# =============================================================================
# SCORES
# =============================================================================

class ScoreDB(Base):
    """
    Business score, 1:1 with user.

    Derived projection of documents, forms and verification flags.
    Written only by the score engine.
    """
    __tablename__ = "scores"

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    total_score = Column(Integer, default=35, nullable=False, index=True)
    registration_score = Column(Integer, default=35, nullable=False)
    document_score = Column(Integer, default=0, nullable=False)      # 0-40
    form_score = Column(Integer, default=0, nullable=False)          # 0-40
    verification_score = Column(Integer, default=0, nullable=False)  # 0-20
    risk_level = Column(SQLEnum(RiskLevel), default=RiskLevel.HIGH, nullable=False, index=True)

    last_calculated = Column(DateTime, default=datetime.utcnow)
    calculation_details = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="score")


# =============================================================================
# AUDIT LOG
# =============================================================================

class AuditLogDB(Base):
    """Append-only record of mutating operations. Never blocks the operation itself."""
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True)  # UUID
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action = Column(String(100), nullable=False, index=True)
    resource_type = Column(String(50), nullable=False, index=True)
    resource_id = Column(String(36), nullable=True)

    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    status = Column(SQLEnum(AuditStatus), default=AuditStatus.SUCCESS, nullable=False, index=True)
    error_message = Column(Text, nullable=True)
    event_metadata = Column(JSON, nullable=True)  # Additional context

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
