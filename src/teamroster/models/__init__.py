"""Player models."""

from .player import PlayerFields, PlayerRecord, Size

__all__ = ["PlayerFields", "PlayerRecord", "Size"]
