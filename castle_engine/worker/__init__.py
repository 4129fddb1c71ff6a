"""
Worker Module

Background move service used by game clients.

Key Components:
    - EngineWorker: Thread-backed request queue with a response ceiling
    - MoveReply: Move and White-perspective evaluation returned to callers
"""

from castle_engine.worker.service import EngineWorker, MoveReply

__all__ = ['EngineWorker', 'MoveReply']
