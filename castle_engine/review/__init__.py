"""
Review Module

Post-game move classification and accuracy.
"""

from castle_engine.review.game_review import (
    GameReview,
    MoveQuality,
    ReviewedMove,
    classify_delta,
    review_game,
)

__all__ = [
    'GameReview',
    'MoveQuality',
    'ReviewedMove',
    'classify_delta',
    'review_game',
]
