from __future__ import annotations

import datetime as dt
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, computed_field, model_validator

from .common import EventType, HomeAway, MealType, PlayerScope, Scope, TeamScope


class ScheduleEventResponse(BaseModel):
    id: int
    event_type: EventType
    event_date: dt.date
    event_time: dt.time | None = None
    title: str | None = None
    opponent: str | None = None
    location: str | None = None
    address: str | None = None
    home_away: HomeAway | None = None
    is_optional: bool = False
    notes: str | None = None
    team_id: int | None = None
    player_id: str | None = None
    training_day_id: int | None = None
    meal_id: int | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def display_text(self) -> str:
        return self.title or self.opponent or self.event_type.value


class MealFields(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    meal_type: MealType = MealType.breakfast
    calories: int | None = Field(None, ge=0)
    protein_g: float | None = Field(None, ge=0)
    carbs_g: float | None = Field(None, ge=0)
    fat_g: float | None = Field(None, ge=0)


class TeamEventSubmission(BaseModel):
    kind: Literal["team_event"] = "team_event"
    team_id: int
    event_date: dt.date
    event_type: Literal["game", "practice"] = "practice"
    opponent: str = Field(..., min_length=1, max_length=255)
    event_time: dt.time | None = None
    location: str | None = None
    address: str | None = None
    home_away: HomeAway | None = None
    is_optional: bool = False
    notes: str | None = None

    @property
    def scope(self) -> TeamScope:
        return TeamScope(team_id=self.team_id)


class _PlayerSubmission(BaseModel):
    player_id: str

    @property
    def scope(self) -> PlayerScope:
        return PlayerScope(player_id=self.player_id)


class WorkoutDaySubmission(_PlayerSubmission):
    kind: Literal["workout_day"] = "workout_day"
    event_date: dt.date
    training_day_id: int


class NewWorkoutSubmission(_PlayerSubmission):
    kind: Literal["workout_new"] = "workout_new"
    event_date: dt.date
    title: str = Field(..., min_length=1, max_length=255)
    notes: str | None = None


class ProgramAssignmentSubmission(_PlayerSubmission):
    kind: Literal["workout_program"] = "workout_program"
    start_date: dt.date
    end_date: dt.date | None = None
    program_id: int


class MealSubmission(_PlayerSubmission):
    kind: Literal["meal_existing"] = "meal_existing"
    event_date: dt.date
    meal_id: int


class NewMealSubmission(_PlayerSubmission):
    kind: Literal["meal_new"] = "meal_new"
    event_date: dt.date
    meal: MealFields


class MealPlanSubmission(_PlayerSubmission):
    kind: Literal["meal_plan"] = "meal_plan"
    start_date: dt.date
    end_date: dt.date | None = None
    meal_plan_id: int


EventSubmission = Annotated[
    Union[
        TeamEventSubmission,
        WorkoutDaySubmission,
        NewWorkoutSubmission,
        ProgramAssignmentSubmission,
        MealSubmission,
        NewMealSubmission,
        MealPlanSubmission,
    ],
    Field(discriminator="kind"),
]


class SubmissionResult(BaseModel):
    kind: str
    event: ScheduleEventResponse | None = None
    assignment_id: int | None = None
    meal_id: int | None = None


class ScheduleEventUpdate(BaseModel):
    title: str | None = Field(None, max_length=255)
    event_time: dt.time | None = None
    location: str | None = None
    notes: str | None = None
    meal: MealFields | None = None

    @model_validator(mode="after")
    def check_title(self) -> "ScheduleEventUpdate":
        if self.meal is None and not (self.title or "").strip():
            raise ValueError("title is required")
        return self


class CalendarCell(BaseModel):
    date: dt.date
    in_current_month: bool
    is_today: bool
    events: list[ScheduleEventResponse] = Field(default_factory=list)
    badges: list[str] = Field(default_factory=list)
    more_count: int = 0


class MonthGridResponse(BaseModel):
    year: int
    month: int
    scope: Scope
    cells: list[CalendarCell]


class WeekResponse(BaseModel):
    start: dt.date
    end: dt.date
    scope: Scope
    days: list[CalendarCell]
