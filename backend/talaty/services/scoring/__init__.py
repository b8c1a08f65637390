"""
Scoring Services

Score engine (rubric, persistence, batch recalculation) and the
recommendation generator derived from its breakdown.
"""

from .score_engine import ScoreEngine, compute_components, create_default_score
from .recommendations import generate_recommendations

__all__ = [
    'ScoreEngine',
    'compute_components',
    'create_default_score',
    'generate_recommendations',
]
