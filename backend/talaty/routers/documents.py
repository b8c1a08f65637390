"""
Talaty eKYC - Documents Router

Upload, list, download and delete the authenticated user's documents.
Every mutation goes through the verification workflow so the business
score follows.
"""
from datetime import date
from typing import Optional
import logging
import os

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.db_models import DocumentDB, UserDB
from ..auth import get_current_user
from ..services import file_storage
from ..services.audit_service import AuditService
from ..services.errors import ServiceError
from ..services.workflow import VerificationWorkflow
from .common import request_context, serialize_document, service_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def _get_own_document(db: Session, document_id: str, user: UserDB) -> DocumentDB:
    document = db.query(DocumentDB).filter(
        DocumentDB.id == document_id,
        DocumentDB.user_id == user.id,
    ).first()
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    return document


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.get("")
async def list_documents(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List all documents for the authenticated user, newest first.
    """
    documents = db.query(DocumentDB).filter(
        DocumentDB.user_id == current_user.id
    ).order_by(DocumentDB.created_at.desc()).all()

    return {"documents": [serialize_document(d) for d in documents]}


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    document_type: str = Form(...),
    document_name: str = Form(...),
    document_number: Optional[str] = Form(None),
    expiry_date: Optional[date] = Form(None),
    issue_date: Optional[date] = Form(None),
    issuing_authority: Optional[str] = Form(None),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Upload a document file. The document starts pending review.
    """
    try:
        stored = file_storage.save_upload(current_user.id, file)
    except ServiceError as e:
        raise service_http_error(e)

    workflow = VerificationWorkflow(db)
    try:
        document = workflow.upload_document(
            user_id=current_user.id,
            document_type=document_type,
            document_name=document_name,
            file_name=stored.file_name,
            file_path=stored.file_path,
            file_size=stored.file_size,
            file_type=stored.file_type,
            document_number=document_number,
            expiry_date=expiry_date,
            issue_date=issue_date,
            issuing_authority=issuing_authority,
            request_context=request_context(request),
        )
    except ServiceError as e:
        file_storage.delete_file(stored.file_path)
        raise service_http_error(e)

    return {"message": "Document uploaded successfully", "document": serialize_document(document)}


@router.get("/{document_id}")
async def get_document(
    document_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    document = _get_own_document(db, document_id, current_user)
    return {"document": serialize_document(document)}


@router.get("/{document_id}/download")
async def download_document(
    document_id: str,
    request: Request,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Stream the stored file back to its owner.
    """
    document = _get_own_document(db, document_id, current_user)

    if not os.path.exists(document.file_path):
        raise HTTPException(status_code=404, detail="File not found on server")

    AuditService(db).log(
        user_id=current_user.id,
        action="download_document",
        resource_type="document",
        resource_id=document.id,
        **request_context(request),
    )

    return FileResponse(
        document.file_path,
        filename=document.file_name,
        media_type=document.file_type,
    )


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    request: Request,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Delete a document and its stored file.
    """
    workflow = VerificationWorkflow(db)
    try:
        document = workflow.delete_document(
            document_id,
            owner_id=current_user.id,
            request_context=request_context(request),
        )
    except ServiceError as e:
        raise service_http_error(e)

    file_storage.delete_file(document.file_path)
    return {"message": "Document deleted successfully", "document_id": document_id}
