"""
Business score rubric.

Shared by the score engine and the recommendation generator so the
points a recommendation promises are the points the engine awards.
"""

REGISTRATION_SCORE = 35

POINTS_PER_APPROVED_DOCUMENT = 8
MAX_DOCUMENT_SCORE = 40
# Approved documents needed to fill the document component
TARGET_APPROVED_DOCUMENTS = MAX_DOCUMENT_SCORE // POINTS_PER_APPROVED_DOCUMENT

POINTS_PER_SUBMITTED_FORM = 10
MAX_FORM_SCORE = 40

EMAIL_VERIFIED_POINTS = 5
PHONE_VERIFIED_POINTS = 5
KYC_APPROVED_POINTS = 10
MAX_VERIFICATION_SCORE = 20

MAX_TOTAL_SCORE = 100

LOW_RISK_THRESHOLD = 80
MEDIUM_RISK_THRESHOLD = 60
