"""
Score Recalculation Dispatch

Recompute-on-write: every document, form or verification mutation ends by
dispatching a ScoreRecalculationRequested event through one dispatcher.
Handlers never call the score engine directly.
"""
from dataclasses import dataclass
import logging

from sqlalchemy.orm import Session

from ...models.db_models import ScoreDB
from ..errors import StorageError
from ..scoring import ScoreEngine


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreRecalculationRequested:
    """A mutation changed state the score depends on."""
    user_id: str
    trigger: str


class ScoreRecalculationDispatcher:
    """
    Single entry point from mutations to the score engine.

    A StorageError is retried once synchronously, then re-raised.
    """

    MAX_ATTEMPTS = 2

    def __init__(self, db: Session, engine: ScoreEngine = None):
        self.db = db
        self.engine = engine or ScoreEngine(db)

    def dispatch(self, event: ScoreRecalculationRequested) -> ScoreDB:
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            try:
                score = self.engine.calculate_score(event.user_id)
                logger.debug(f"Recalculated score for {event.user_id} (trigger={event.trigger})")
                return score
            except StorageError as e:
                if attempt == self.MAX_ATTEMPTS:
                    raise
                logger.warning(
                    f"Score recalculation for {event.user_id} failed "
                    f"(trigger={event.trigger}), retrying: {e}"
                )
