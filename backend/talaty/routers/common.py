"""
Shared router helpers: service error translation, request context for the
audit log, and ORM-to-JSON serializers.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status

from ..models.db_models import DocumentDB, FormDB, ScoreDB, UserDB, AuditLogDB, enum_value
from ..services.errors import (
    ServiceError, NotFoundError, InvalidTransitionError,
    PermissionDeniedError, ValidationError,
)


ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_400_BAD_REQUEST,
}


def service_http_error(error: ServiceError) -> HTTPException:
    """Map a service exception onto the HTTP status clients see."""
    for error_class, status_code in ERROR_STATUS.items():
        if isinstance(error, error_class):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(error) or "Internal server error",
    )


def request_context(request: Request) -> Dict[str, Optional[str]]:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def _iso(value) -> Optional[str]:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value

def serialize_user(user: UserDB) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "business_name": user.business_name,
        "role": enum_value(user.role),
        "status": enum_value(user.status),
        "email_verified": bool(user.email_verified),
        "phone_verified": bool(user.phone_verified),
        "kyc_status": enum_value(user.kyc_status),
        "last_login": _iso(user.last_login),
        "created_at": _iso(user.created_at),
    }


def serialize_document(document: DocumentDB) -> Dict[str, Any]:
    return {
        "id": document.id,
        "user_id": document.user_id,
        "document_type": enum_value(document.document_type),
        "document_name": document.document_name,
        "file_name": document.file_name,
        "file_size": document.file_size,
        "file_type": document.file_type,
        "status": enum_value(document.status),
        "verification_notes": document.verification_notes,
        "verified_by": document.verified_by,
        "verified_at": _iso(document.verified_at),
        "document_number": document.document_number,
        "issuing_authority": document.issuing_authority,
        "issue_date": _iso(document.issue_date),
        "expiry_date": _iso(document.expiry_date),
        "created_at": _iso(document.created_at),
        "updated_at": _iso(document.updated_at),
    }


def serialize_form(form: FormDB) -> Dict[str, Any]:
    return {
        "id": form.id,
        "user_id": form.user_id,
        "form_type": enum_value(form.form_type),
        "form_data": form.form_data or {},
        "status": enum_value(form.status),
        "completion_percentage": form.completion_percentage,
        "version": form.version,
        "submitted_at": _iso(form.submitted_at),
        "created_at": _iso(form.created_at),
        "updated_at": _iso(form.updated_at),
    }


def serialize_score(score: ScoreDB) -> Dict[str, Any]:
    return {
        "id": score.id,
        "user_id": score.user_id,
        "total_score": score.total_score,
        "registration_score": score.registration_score,
        "document_score": score.document_score,
        "form_score": score.form_score,
        "verification_score": score.verification_score,
        "risk_level": enum_value(score.risk_level),
        "last_calculated": _iso(score.last_calculated),
        "calculation_details": score.calculation_details or {},
    }


def serialize_audit_log(entry: AuditLogDB) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "action": entry.action,
        "resource_type": entry.resource_type,
        "resource_id": entry.resource_id,
        "old_values": entry.old_values,
        "new_values": entry.new_values,
        "ip_address": entry.ip_address,
        "user_agent": entry.user_agent,
        "status": enum_value(entry.status),
        "error_message": entry.error_message,
        "metadata": entry.event_metadata,
        "created_at": _iso(entry.created_at),
    }

