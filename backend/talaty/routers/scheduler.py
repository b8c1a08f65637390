"""
Scheduler API Routes

Internal endpoints for system-automatic tasks, called by an external
scheduler: bulk score recalculation and the document expiry sweep.
"""
from datetime import date, datetime, timezone
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session

from ..config import INTERNAL_API_KEY
from ..database import get_db
from ..services.errors import ServiceError
from ..services.scoring import ScoreEngine
from ..services.workflow import VerificationWorkflow
from .common import service_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", tags=["scheduler"])


# =============================================================================
# INTERNAL API KEY VALIDATION
# =============================================================================

async def verify_internal_key(x_internal_key: str = Header(...)):
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != INTERNAL_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


# =============================================================================
# SCHEDULER ENDPOINTS (SYSTEM-ONLY)
# =============================================================================

@router.post("/recalculate-scores", response_model=dict)
async def run_score_recalculation(
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Recalculate every user's score.

    System-automatic. A failing user is reported and the batch continues.
    """
    try:
        results = ScoreEngine(db).recalculate_all()
    except ServiceError as e:
        raise service_http_error(e)

    failures = [r.to_dict() for r in results if not r.success]
    return {
        "task": "recalculate_scores",
        "run_date": datetime.now(timezone.utc).isoformat(),
        "users_processed": len(results),
        "users_failed": len(failures),
        "failures": failures,
    }


@router.post("/expire-documents", response_model=dict)
async def run_document_expiry(
    today: Optional[date] = None,
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """
    Expire pending/approved documents whose expiry date has passed.

    System-automatic. `today` overrides the run date for backfills.
    """
    try:
        return VerificationWorkflow(db).expire_documents(today)
    except ServiceError as e:
        raise service_http_error(e)
