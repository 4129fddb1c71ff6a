"""
Play Module

Difficulty tiers and the computer player built on top of the search.

Key Components:
    - Difficulty: EASY, MEDIUM or HARD
    - DifficultyProfile: Depth, time budget and randomness for one tier
    - allocate_time_ms: Clock-aware budget and depth cap for one move
    - EnginePlayer: Book, search and difficulty randomness combined
"""

from castle_engine.play.config import (
    Difficulty,
    DifficultyProfile,
    PROFILES,
    allocate_time_ms,
    get_profile,
)
from castle_engine.play.player import EnginePlayer

__all__ = [
    'Difficulty',
    'DifficultyProfile',
    'EnginePlayer',
    'PROFILES',
    'allocate_time_ms',
    'get_profile',
]
