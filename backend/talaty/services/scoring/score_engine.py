"""
Business Score Engine

Deterministic, explainable additive rubric:

    registration (35) + documents (0-40) + forms (0-40) + verification (0-20)

capped at 100. The persisted ScoreDB row is a cached projection of the
user's documents, forms and verification flags. It is recomputed on every
relevant mutation and never edited by hand.
"""
from datetime import datetime
from typing import Any, Dict, List, Sequence
from uuid import uuid4
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.db_models import (
    UserDB, DocumentDB, FormDB, ScoreDB,
    DocumentStatus, FormStatus, KycStatus, RiskLevel, enum_value,
)
from ...models.scoring import ScoreComponents, RecalculationResult
from ..errors import NotFoundError, StorageError, ScoreIntegrityError
from .recommendations import generate_recommendations
from .rubric import (
    REGISTRATION_SCORE,
    POINTS_PER_APPROVED_DOCUMENT, MAX_DOCUMENT_SCORE,
    POINTS_PER_SUBMITTED_FORM, MAX_FORM_SCORE,
    EMAIL_VERIFIED_POINTS, PHONE_VERIFIED_POINTS, KYC_APPROVED_POINTS, MAX_VERIFICATION_SCORE,
    MAX_TOTAL_SCORE, LOW_RISK_THRESHOLD, MEDIUM_RISK_THRESHOLD,
)


logger = logging.getLogger(__name__)


# =============================================================================
# COMPONENTS
# =============================================================================


def calculate_document_score(documents: Sequence[DocumentDB]) -> int:
    approved = [d for d in documents if d.status == DocumentStatus.APPROVED]
    return min(MAX_DOCUMENT_SCORE, len(approved) * POINTS_PER_APPROVED_DOCUMENT)


def calculate_form_score(forms: Sequence[FormDB]) -> int:
    submitted = [f for f in forms if f.status == FormStatus.SUBMITTED]
    return min(MAX_FORM_SCORE, len(submitted) * POINTS_PER_SUBMITTED_FORM)


def calculate_verification_score(user: UserDB) -> int:
    score = 0
    if user.email_verified:
        score += EMAIL_VERIFIED_POINTS
    if user.phone_verified:
        score += PHONE_VERIFIED_POINTS
    if user.kyc_status == KycStatus.APPROVED:
        score += KYC_APPROVED_POINTS
    return min(MAX_VERIFICATION_SCORE, score)


def calculate_risk_level(total_score: int) -> RiskLevel:
    if total_score >= LOW_RISK_THRESHOLD:
        return RiskLevel.LOW
    if total_score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def compute_components(
    documents: Sequence[DocumentDB],
    forms: Sequence[FormDB],
    user: UserDB,
) -> ScoreComponents:
    """
    Compute every score component from a snapshot of user state.

    Pure and order-independent over its inputs: the same snapshot always
    yields an identical ScoreComponents, calculation_details included.
    """
    document_score = calculate_document_score(documents)
    form_score = calculate_form_score(forms)
    verification_score = calculate_verification_score(user)

    total_score = min(
        MAX_TOTAL_SCORE,
        REGISTRATION_SCORE + document_score + form_score + verification_score,
    )

    _check_bounds(document_score, form_score, verification_score, total_score)

    calculation_details = {
        "registration": REGISTRATION_SCORE,
        "documents": document_score,
        "forms": form_score,
        "verification": verification_score,
        "breakdown": {
            "approved_documents": sum(1 for d in documents if d.status == DocumentStatus.APPROVED),
            "completed_forms": sum(1 for f in forms if f.status == FormStatus.SUBMITTED),
            "email_verified": bool(user.email_verified),
            "phone_verified": bool(user.phone_verified),
            "kyc_approved": user.kyc_status == KycStatus.APPROVED,
        },
    }

    return ScoreComponents(
        registration=REGISTRATION_SCORE,
        documents=document_score,
        forms=form_score,
        verification=verification_score,
        total=total_score,
        risk_level=calculate_risk_level(total_score),
        calculation_details=calculation_details,
    )


def _check_bounds(document_score: int, form_score: int, verification_score: int, total_score: int) -> None:
    limits = (
        ("document_score", document_score, MAX_DOCUMENT_SCORE),
        ("form_score", form_score, MAX_FORM_SCORE),
        ("verification_score", verification_score, MAX_VERIFICATION_SCORE),
        ("total_score", total_score, MAX_TOTAL_SCORE),
    )
    for name, value, upper in limits:
        if not 0 <= value <= upper:
            raise ScoreIntegrityError(f"{name}={value} outside [0, {upper}]")


# =============================================================================
# ENGINE
# =============================================================================

class ScoreEngine:
    """
    Owns the ScoreDB row of every user.

    Other components request recalculation; only this class writes
    score fields.
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_user(self, user_id: str) -> UserDB:
        user = self.db.query(UserDB).filter(UserDB.id == user_id).first()
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def _load_snapshot(self, user_id: str):
        user = self._get_user(user_id)
        documents = self.db.query(DocumentDB).filter(DocumentDB.user_id == user_id).all()
        forms = self.db.query(FormDB).filter(FormDB.user_id == user_id).all()
        return user, documents, forms

    def calculate_score(self, user_id: str) -> ScoreDB:
        """
        Recompute and upsert the score for a user.

        All-or-nothing: either every component and the total are written in
        one commit, or the session is rolled back and StorageError raised.

        Raises:
            NotFoundError: user does not exist
            StorageError: read or write failed
        """
        try:
            user, documents, forms = self._load_snapshot(user_id)
            components = compute_components(documents, forms, user)

            score = self.db.query(ScoreDB).filter(ScoreDB.user_id == user_id).first()
            if score is None:
                score = ScoreDB(id=str(uuid4()), user_id=user_id)
                self.db.add(score)

            score.registration_score = components.registration
            score.document_score = components.documents
            score.form_score = components.forms
            score.verification_score = components.verification
            score.total_score = components.total
            score.risk_level = components.risk_level
            score.calculation_details = components.calculation_details
            score.last_calculated = datetime.utcnow()

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Score calculation failed for user {user_id}: {e}")
            raise StorageError(f"Score calculation failed for user {user_id}") from e

        logger.info(
            f"Score recalculated for user {user_id}: total={components.total} "
            f"risk={components.risk_level.value}"
        )
        return score

    def recalculate_all(self) -> List[RecalculationResult]:
        """
        Recalculate every user's score.

        Partial-failure tolerant: a failing user is recorded and the batch
        continues.
        """
        try:
            user_ids = [row.id for row in self.db.query(UserDB.id).all()]
        except SQLAlchemyError as e:
            raise StorageError("Could not list users for recalculation") from e

        results = []
        for user_id in user_ids:
            try:
                score = self.calculate_score(user_id)
                results.append(RecalculationResult(user_id=user_id, success=True, score=score.total_score))
            except Exception as e:
                logger.error(f"Recalculation failed for user {user_id}: {e}")
                results.append(RecalculationResult(user_id=user_id, success=False, error=str(e)))

        failed = sum(1 for r in results if not r.success)
        logger.info(f"Bulk score recalculation complete: {len(results)} users, {failed} failed")
        return results

    def get_or_create_score(self, user_id: str) -> ScoreDB:
        """Return the user's score, creating the registration default if absent."""
        self._get_user(user_id)
        score = self.db.query(ScoreDB).filter(ScoreDB.user_id == user_id).first()
        if score is not None:
            return score

        try:
            score = create_default_score(self.db, user_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Could not create score for user {user_id}") from e
        return score

    def get_score_breakdown(self, user_id: str) -> Dict[str, Any]:
        """
        Explain the stored score component by component.

        Returns:
            {total_score, risk_level, components, recommendations}
        """
        user, documents, forms = self._load_snapshot(user_id)
        score = self.db.query(ScoreDB).filter(ScoreDB.user_id == user_id).first()
        if score is None:
            raise NotFoundError(f"Score for user {user_id} not found")

        def count_documents(status: DocumentStatus) -> int:
            return sum(1 for d in documents if d.status == status)

        def count_forms(status: FormStatus) -> int:
            return sum(1 for f in forms if f.status == status)

        recommendations = generate_recommendations(score, documents, forms, user)

        return {
            "total_score": score.total_score,
            "risk_level": enum_value(score.risk_level),
            "components": {
                "registration": {
                    "score": score.registration_score,
                    "max_score": REGISTRATION_SCORE,
                    "description": "Base registration score",
                },
                "documents": {
                    "score": score.document_score,
                    "max_score": MAX_DOCUMENT_SCORE,
                    "description": "Document verification score",
                    "details": {
                        "uploaded": len(documents),
                        "approved": count_documents(DocumentStatus.APPROVED),
                        "pending": count_documents(DocumentStatus.PENDING),
                        "rejected": count_documents(DocumentStatus.REJECTED),
                        "expired": count_documents(DocumentStatus.EXPIRED),
                    },
                },
                "forms": {
                    "score": score.form_score,
                    "max_score": MAX_FORM_SCORE,
                    "description": "Form completion score",
                    "details": {
                        "total": len(forms),
                        "completed": count_forms(FormStatus.SUBMITTED),
                        "draft": count_forms(FormStatus.DRAFT),
                        "completion_rates": [
                            {"type": enum_value(f.form_type), "completion": f.completion_percentage}
                            for f in sorted(forms, key=lambda f: enum_value(f.form_type))
                        ],
                    },
                },
                "verification": {
                    "score": score.verification_score,
                    "max_score": MAX_VERIFICATION_SCORE,
                    "description": "Account verification score",
                    "details": {
                        "email_verified": bool(user.email_verified),
                        "phone_verified": bool(user.phone_verified),
                        "kyc_status": enum_value(user.kyc_status),
                    },
                },
            },
            "recommendations": [r.to_dict() for r in recommendations],
        }


def create_default_score(db: Session, user_id: str) -> ScoreDB:
    """Add (without committing) the score row a freshly registered user starts with."""
    score = ScoreDB(
        id=str(uuid4()),
        user_id=user_id,
        total_score=REGISTRATION_SCORE,
        registration_score=REGISTRATION_SCORE,
        document_score=0,
        form_score=0,
        verification_score=0,
        risk_level=calculate_risk_level(REGISTRATION_SCORE),
        last_calculated=datetime.utcnow(),
        calculation_details={},
    )
    db.add(score)
    return score
