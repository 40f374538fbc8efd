from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    player = "player"
    coach = "coach"
    admin = "admin"


STAFF_ROLES = frozenset({UserRole.coach.value, UserRole.admin.value})


class TeamRole(str, Enum):
    player = "player"
    coach = "coach"


class ContactType(str, Enum):
    email = "email"
    phone = "phone"


class EventType(str, Enum):
    game = "game"
    practice = "practice"
    workout = "workout"
    meal = "meal"


class HomeAway(str, Enum):
    home = "home"
    away = "away"


class MealType(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snack = "snack"


class ExerciseCategory(str, Enum):
    hitting = "hitting"
    pitching = "pitching"
    fielding = "fielding"
    conditioning = "conditioning"
    recovery = "recovery"
    other = "other"


class TeamScope(BaseModel):
    kind: Literal["team"] = "team"
    team_id: int

    def columns(self) -> dict:
        return {"team_id": self.team_id, "player_id": None}


class PlayerScope(BaseModel):
    kind: Literal["player"] = "player"
    player_id: str

    def columns(self) -> dict:
        return {"team_id": None, "player_id": self.player_id}


Scope = Annotated[Union[TeamScope, PlayerScope], Field(discriminator="kind")]


def scope_from_row(row) -> TeamScope | PlayerScope:
    if row.team_id is not None:
        return TeamScope(team_id=row.team_id)
    return PlayerScope(player_id=row.player_id)
