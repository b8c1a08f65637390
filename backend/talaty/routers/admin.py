"""
Talaty eKYC - Admin Router
Document review queue, user verification status and platform analytics.
Reviewers may read and verify documents; everything else is admin-only.
"""
from typing import Optional
import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.db_models import (
    UserDB, DocumentDB, FormDB, ScoreDB,
    UserStatus, KycStatus, DocumentStatus, DocumentType, FormStatus,
)
from ..auth import require_admin, require_reviewer
from ..services.audit_service import AuditService
from ..services.errors import ServiceError
from ..services.scoring import ScoreEngine
from ..services.workflow import VerificationWorkflow
from .common import (
    request_context, service_http_error,
    serialize_user, serialize_document, serialize_form, serialize_score, serialize_audit_log,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class VerifyDocumentRequest(BaseModel):
    status: str  # approved | rejected
    verification_notes: Optional[str] = None


class UpdateUserStatusRequest(BaseModel):
    status: Optional[UserStatus] = None
    kyc_status: Optional[KycStatus] = None
    email_verified: Optional[bool] = None
    phone_verified: Optional[bool] = None
    notes: Optional[str] = None


def _pagination(total: int, page: int, limit: int) -> dict:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if limit else 0,
    }


# =============================================================================
# DOCUMENT REVIEW
# =============================================================================

@router.get("/documents")
async def list_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[DocumentStatus] = None,
    document_type: Optional[DocumentType] = None,
    reviewer: UserDB = Depends(require_reviewer),
    db: Session = Depends(get_db)
):
    """
    Review queue, newest first, optionally filtered by status and type.
    """
    query = db.query(DocumentDB)
    if status:
        query = query.filter(DocumentDB.status == status)
    if document_type:
        query = query.filter(DocumentDB.document_type == document_type)

    total = query.count()
    documents = (
        query.order_by(DocumentDB.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    items = []
    for document in documents:
        item = serialize_document(document)
        owner = document.user
        item["user"] = {
            "id": owner.id,
            "email": owner.email,
            "first_name": owner.first_name,
            "last_name": owner.last_name,
        } if owner else None
        items.append(item)

    return {"documents": items, "pagination": _pagination(total, page, limit)}


@router.put("/documents/{document_id}/verify")
async def verify_document(
    document_id: str,
    payload: VerifyDocumentRequest,
    request: Request,
    reviewer: UserDB = Depends(require_reviewer),
    db: Session = Depends(get_db)
):
    """
    Approve or reject a pending document. A document is reviewed once.
    """
    workflow = VerificationWorkflow(db)
    try:
        document = workflow.verify_document(
            document_id,
            payload.status,
            reviewer_id=reviewer.id,
            notes=payload.verification_notes,
            request_context=request_context(request),
        )
    except ServiceError as e:
        raise service_http_error(e)

    return {"message": "Document verified successfully", "document": serialize_document(document)}


# =============================================================================
# USERS
# =============================================================================

@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[UserStatus] = None,
    kyc_status: Optional[KycStatus] = None,
    admin: UserDB = Depends(require_admin),
    db: Session = Depends(get_db)
):
    query = db.query(UserDB)
    if status:
        query = query.filter(UserDB.status == status)
    if kyc_status:
        query = query.filter(UserDB.kyc_status == kyc_status)

    total = query.count()
    users = (
        query.order_by(UserDB.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    items = []
    for user in users:
        item = serialize_user(user)
        item["score"] = serialize_score(user.score) if user.score else None
        items.append(item)

    return {"users": items, "pagination": _pagination(total, page, limit)}


@router.get("/users/{user_id}")
async def get_user_detail(
    user_id: str,
    reviewer: UserDB = Depends(require_reviewer),
    db: Session = Depends(get_db)
):
    """
    One user with score, documents, forms and recent activity.
    """
    user = db.query(UserDB).filter(UserDB.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    activity = AuditService(db).get_activity_log(user_id, limit=20)

    return {
        "user": serialize_user(user),
        "score": serialize_score(user.score) if user.score else None,
        "documents": [serialize_document(d) for d in user.documents],
        "forms": [serialize_form(f) for f in user.forms],
        "activity": [serialize_audit_log(a) for a in activity],
    }


@router.put("/users/{user_id}/status")
async def update_user_status(
    user_id: str,
    payload: UpdateUserStatusRequest,
    request: Request,
    admin: UserDB = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Set account status, KYC status and contact verification flags.
    """
    workflow = VerificationWorkflow(db)
    try:
        user = workflow.update_user_status(
            user_id,
            actor_id=admin.id,
            status=payload.status,
            kyc_status=payload.kyc_status,
            email_verified=payload.email_verified,
            phone_verified=payload.phone_verified,
            notes=payload.notes,
            request_context=request_context(request),
        )
    except ServiceError as e:
        raise service_http_error(e)

    return {"message": "User status updated successfully", "user": serialize_user(user)}


# =============================================================================
# ANALYTICS & AUDIT
# =============================================================================

@router.get("/analytics")
async def get_analytics(
    admin: UserDB = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Platform-wide counts, average score and risk distribution.
    """
    def count_users(status: UserStatus) -> int:
        return db.query(UserDB).filter(UserDB.status == status).count()

    def count_documents(status: DocumentStatus) -> int:
        return db.query(DocumentDB).filter(DocumentDB.status == status).count()

    def count_forms(status: FormStatus) -> int:
        return db.query(FormDB).filter(FormDB.status == status).count()

    average = db.query(func.avg(ScoreDB.total_score)).scalar()
    risk_rows = (
        db.query(ScoreDB.risk_level, func.count(ScoreDB.id))
        .group_by(ScoreDB.risk_level)
        .all()
    )

    return {
        "users": {
            "total": db.query(UserDB).count(),
            "active": count_users(UserStatus.ACTIVE),
            "pending": count_users(UserStatus.PENDING),
            "suspended": count_users(UserStatus.SUSPENDED),
        },
        "documents": {
            "total": db.query(DocumentDB).count(),
            "pending": count_documents(DocumentStatus.PENDING),
            "approved": count_documents(DocumentStatus.APPROVED),
            "rejected": count_documents(DocumentStatus.REJECTED),
            "expired": count_documents(DocumentStatus.EXPIRED),
        },
        "forms": {
            "total": db.query(FormDB).count(),
            "completed": count_forms(FormStatus.SUBMITTED),
            "draft": count_forms(FormStatus.DRAFT),
        },
        "scores": {
            "average": round(float(average or 0), 2),
            "risk_distribution": [
                {"level": level.value, "count": count} for level, count in risk_rows
            ],
        },
    }


@router.get("/audit-logs")
async def get_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    admin: UserDB = Depends(require_admin),
    db: Session = Depends(get_db)
):
    logs, total = AuditService(db).get_system_logs(
        filters={"user_id": user_id, "action": action, "resource_type": resource_type},
        page=page,
        limit=limit,
    )
    return {
        "logs": [serialize_audit_log(entry) for entry in logs],
        "pagination": _pagination(total, page, limit),
    }


@router.post("/scores/recalculate-all")
async def recalculate_all_scores(
    admin: UserDB = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Recalculate every user's score. Failures are reported per user.
    """
    try:
        results = ScoreEngine(db).recalculate_all()
    except ServiceError as e:
        raise service_http_error(e)

    logger.info(f"Admin {admin.id} triggered bulk recalculation")
    return {
        "total": len(results),
        "succeeded": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
        "results": [r.to_dict() for r in results],
    }
