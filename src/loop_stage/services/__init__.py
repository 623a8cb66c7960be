# src/loop_stage/services/__init__.py
"""Business logic services for the Loop Stage application."""

from .thread import ThreadAssembler
from .votes import VoteService

__all__ = [
    "ThreadAssembler",
    "VoteService",
]
