from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from teamroster.config.positions import get_position_short_name
from teamroster.models import PlayerRecord


# JSON clients may send numbers as numbers; the field rules see them as text.
Scalar = Union[str, int, float]


class PlayerPayload(BaseModel):
    name: Optional[Scalar] = None
    jersey_name: Optional[Scalar] = Field(default=None, alias="jerseyName")
    number: Optional[Scalar] = None
    size: Optional[Scalar] = None
    position: Optional[Scalar] = None
    notes: Optional[Scalar] = None

    model_config = ConfigDict(populate_by_name=True)

    def form_values(self) -> Dict[str, str]:
        """Fields the client sent, as form text. An explicit null clears the field."""

        values = self.model_dump(by_alias=False)
        return {
            key: "" if values[key] is None else str(values[key])
            for key in self.model_fields_set
        }


class PlayerResponse(BaseModel):
    id: str
    name: str
    jersey_name: str = Field(..., alias="jerseyName")
    number: str
    size: str
    position: str
    position_code: str = Field(..., alias="positionCode")
    notes: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, player: PlayerRecord) -> "PlayerResponse":
        return cls(
            id=player.id,
            name=player.name,
            jersey_name=player.jersey_name,
            number=player.number,
            size=player.size,
            position=player.position,
            position_code=get_position_short_name(player.position),
            notes=player.notes,
            created_at=player.created_at,
            updated_at=player.updated_at,
        )


class RosterResponse(BaseModel):
    count: int
    returned: int
    sort_by: Optional[str] = None
    sort_direction: Optional[Literal["asc", "desc"]] = None
    players: List[PlayerResponse]
