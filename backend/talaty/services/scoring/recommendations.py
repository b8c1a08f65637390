"""
Recommendation Generator

Turns score gaps into actionable next steps. Pure: no database access,
no side effects. Output order is fixed (documents, forms, email, phone,
kyc) so the dashboard renders the same list for the same state.
"""
from typing import List, Sequence

from ...models.db_models import DocumentStatus, FormStatus, KycStatus
from ...models.scoring import Recommendation
from .rubric import (
    TARGET_APPROVED_DOCUMENTS, MAX_DOCUMENT_SCORE, MAX_FORM_SCORE,
    POINTS_PER_APPROVED_DOCUMENT, POINTS_PER_SUBMITTED_FORM,
    EMAIL_VERIFIED_POINTS, PHONE_VERIFIED_POINTS, KYC_APPROVED_POINTS,
)


def generate_recommendations(score, documents: Sequence, forms: Sequence, user) -> List[Recommendation]:
    """
    Build the ordered recommendation list for a user.

    Args:
        score: object exposing document_score and form_score
        documents: the user's documents (status attribute)
        forms: the user's forms (status attribute)
        user: object exposing email_verified, phone_verified, kyc_status

    Returns:
        Recommendations in rule order; rules whose condition is false are omitted.
    """
    recommendations = []

    if score.document_score < MAX_DOCUMENT_SCORE:
        approved = sum(1 for d in documents if d.status == DocumentStatus.APPROVED)
        missing_docs = max(0, TARGET_APPROVED_DOCUMENTS - approved)
        if missing_docs > 0:
            recommendations.append(Recommendation(
                type="documents",
                priority="high",
                message=f"Upload {missing_docs} more document(s) to improve your score",
                action="upload_documents",
                potential_points=missing_docs * POINTS_PER_APPROVED_DOCUMENT,
            ))

    if score.form_score < MAX_FORM_SCORE:
        incomplete = [f for f in forms if f.status != FormStatus.SUBMITTED]
        if incomplete:
            recommendations.append(Recommendation(
                type="forms",
                priority="high",
                message=f"Complete {len(incomplete)} remaining form(s)",
                action="complete_forms",
                potential_points=len(incomplete) * POINTS_PER_SUBMITTED_FORM,
            ))

    if not user.email_verified:
        recommendations.append(Recommendation(
            type="verification",
            priority="medium",
            message="Verify your email address",
            action="verify_email",
            potential_points=EMAIL_VERIFIED_POINTS,
        ))

    if not user.phone_verified:
        recommendations.append(Recommendation(
            type="verification",
            priority="medium",
            message="Verify your phone number",
            action="verify_phone",
            potential_points=PHONE_VERIFIED_POINTS,
        ))

    if user.kyc_status == KycStatus.PENDING:
        recommendations.append(Recommendation(
            type="kyc",
            priority="low",
            message="Your KYC verification is in progress",
            action="wait_kyc",
            potential_points=KYC_APPROVED_POINTS,
        ))

    return recommendations
