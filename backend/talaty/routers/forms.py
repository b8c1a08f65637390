"""
Talaty eKYC - Forms Router

One form per type per user. Status and completion are derived from the
submitted data on every write.
"""
from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.db_models import FormDB, UserDB
from ..auth import get_current_user
from ..services.errors import ServiceError
from ..services.workflow import VerificationWorkflow, missing_fields
from ..services.workflow.state_machine import parse_form_type
from .common import request_context, serialize_form, service_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forms", tags=["forms"])


class FormSubmitRequest(BaseModel):
    form_type: str
    form_data: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.get("")
async def list_forms(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    forms = db.query(FormDB).filter(
        FormDB.user_id == current_user.id
    ).order_by(FormDB.created_at.desc()).all()

    return {"forms": [serialize_form(f) for f in forms]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_form(
    payload: FormSubmitRequest,
    request: Request,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create or update the user's form of this type.
    """
    workflow = VerificationWorkflow(db)
    try:
        form = workflow.submit_form(
            current_user.id,
            payload.form_type,
            payload.form_data,
            request_context=request_context(request),
        )
    except ServiceError as e:
        raise service_http_error(e)

    return {
        "message": "Form saved successfully",
        "form": serialize_form(form),
        "missing_fields": missing_fields(form.form_type, form.form_data),
    }


@router.get("/{form_type}")
async def get_form(
    form_type: str,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        ftype = parse_form_type(form_type)
    except ServiceError as e:
        raise service_http_error(e)

    form = db.query(FormDB).filter(
        FormDB.user_id == current_user.id,
        FormDB.form_type == ftype,
    ).first()
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")

    return {
        "form": serialize_form(form),
        "missing_fields": missing_fields(ftype, form.form_data),
    }


@router.delete("/{form_id}")
async def delete_form(
    form_id: str,
    request: Request,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    workflow = VerificationWorkflow(db)
    try:
        workflow.delete_form(form_id, owner_id=current_user.id, request_context=request_context(request))
    except ServiceError as e:
        raise service_http_error(e)

    return {"message": "Form deleted successfully", "form_id": form_id}
