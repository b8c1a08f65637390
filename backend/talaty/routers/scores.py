"""
Talaty eKYC - Scores Router

Read the business score, force a recalculation, or get the
component-by-component explanation with recommendations.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.db_models import UserDB
from ..auth import get_current_user
from ..services.errors import ServiceError
from ..services.scoring import ScoreEngine
from .common import serialize_score, service_http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scores", tags=["scores"])


@router.get("")
async def get_score(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        score = ScoreEngine(db).get_or_create_score(current_user.id)
    except ServiceError as e:
        raise service_http_error(e)
    return {"score": serialize_score(score)}


@router.post("/recalculate")
async def recalculate_score(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        score = ScoreEngine(db).calculate_score(current_user.id)
    except ServiceError as e:
        raise service_http_error(e)
    return {"message": "Score recalculated successfully", "score": serialize_score(score)}


@router.get("/breakdown")
async def get_score_breakdown(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Explain the stored score and list ways to raise it.
    """
    try:
        breakdown = ScoreEngine(db).get_score_breakdown(current_user.id)
    except ServiceError as e:
        raise service_http_error(e)
    return {"breakdown": breakdown}
