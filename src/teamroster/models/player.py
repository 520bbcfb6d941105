"""Canonical player models shared by validation, storage and the API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


Size = Literal["XS", "S", "M", "L", "XL", "XXL"]


class PlayerFields(BaseModel):
    """Editable player payload; everything but the store-assigned identifier."""

    name: str = Field(..., min_length=2)
    jersey_name: str = Field(..., alias="jerseyName", min_length=1, max_length=15)
    number: str = Field(..., pattern=r"^[0-9]{1,2}$")
    size: Size
    position: str = Field(..., min_length=1)
    notes: Optional[str] = None

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class PlayerRecord(PlayerFields):
    """Stored player as delivered in roster snapshots."""

    id: str = Field(..., min_length=1)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def fields(self) -> PlayerFields:
        return PlayerFields.model_validate(self.model_dump(include=set(PlayerFields.model_fields)))
