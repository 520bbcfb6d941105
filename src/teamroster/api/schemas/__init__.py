"""Pydantic models for API I/O."""

from .player import PlayerPayload, PlayerResponse, RosterResponse

__all__ = [
    "PlayerPayload",
    "PlayerResponse",
    "RosterResponse",
]
