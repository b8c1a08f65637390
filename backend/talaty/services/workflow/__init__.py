"""
Verification Workflow Services

Document state machine, form status projection, recompute-on-write
dispatch and the workflow that ties them to the score engine.
"""

from .state_machine import (
    DocumentStateMachine,
    DOCUMENT_STATE_CONFIG,
    REQUIRED_FIELDS,
    calculate_completion,
    derive_status,
    is_expired,
    missing_fields,
)
from .recalculation import ScoreRecalculationDispatcher, ScoreRecalculationRequested
from .verification_workflow import VerificationWorkflow

__all__ = [
    'DocumentStateMachine',
    'DOCUMENT_STATE_CONFIG',
    'REQUIRED_FIELDS',
    'calculate_completion',
    'derive_status',
    'is_expired',
    'missing_fields',
    'ScoreRecalculationDispatcher',
    'ScoreRecalculationRequested',
    'VerificationWorkflow',
]
