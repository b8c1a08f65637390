"""
Talaty eKYC - Users Router
Dashboard summary for the authenticated user.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.db_models import (
    UserDB, DocumentDB, FormDB, ScoreDB, DocumentStatus, FormStatus, FormType,
)
from ..auth import get_current_user
from .common import serialize_user, serialize_score, serialize_document, serialize_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

RECENT_DOCUMENT_LIMIT = 5


@router.get("/dashboard")
async def get_dashboard(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Score, document and form counts plus recent documents.
    """
    documents = db.query(DocumentDB).filter(
        DocumentDB.user_id == current_user.id
    ).order_by(DocumentDB.created_at.desc()).all()
    forms = db.query(FormDB).filter(FormDB.user_id == current_user.id).all()
    score = db.query(ScoreDB).filter(ScoreDB.user_id == current_user.id).first()

    stats = {
        "total_documents": len(documents),
        "approved_documents": sum(1 for d in documents if d.status == DocumentStatus.APPROVED),
        "pending_documents": sum(1 for d in documents if d.status == DocumentStatus.PENDING),
        "completed_forms": sum(1 for f in forms if f.status == FormStatus.SUBMITTED),
        "total_forms": len(FormType),
    }

    return {
        "user": serialize_user(current_user),
        "score": serialize_score(score) if score else None,
        "stats": stats,
        "recent_documents": [serialize_document(d) for d in documents[:RECENT_DOCUMENT_LIMIT]],
        "forms": [serialize_form(f) for f in forms],
    }
