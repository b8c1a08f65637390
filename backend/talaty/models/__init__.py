"""Talaty eKYC - Data Models"""
from .db_models import (
    # Enums
    UserRole, UserStatus, KycStatus, DocumentType, DocumentStatus,
    FormType, FormStatus, RiskLevel, AuditStatus,
    # Tables
    UserDB, DocumentDB, FormDB, ScoreDB, AuditLogDB,
)
from .scoring import ScoreComponents, Recommendation, RecalculationResult

__all__ = [
    "UserRole", "UserStatus", "KycStatus", "DocumentType", "DocumentStatus",
    "FormType", "FormStatus", "RiskLevel", "AuditStatus",
    "UserDB", "DocumentDB", "FormDB", "ScoreDB", "AuditLogDB",
    "ScoreComponents", "Recommendation", "RecalculationResult",
]
