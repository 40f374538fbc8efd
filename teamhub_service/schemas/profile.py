from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

from .calendar import ScheduleEventResponse
from .common import ContactType
from .directory import (
    MembershipResponse,
    PlayerProfileFields,
    PlayerProfileResponse,
    TeamMemberResponse,
    TeamResponse,
    UserResponse,
)
from .messaging import MessageResponse
from .programs import MealPlanAssignmentResponse, ProgramAssignmentResponse

MAX_CONTACTS_PER_TYPE = 3


class ContactUpsert(BaseModel):
    id: int | None = None
    contact_type: ContactType
    value: str = Field(..., min_length=1, max_length=320)
    label: str | None = Field(None, max_length=64)


class ContactResponse(BaseModel):
    id: int
    contact_type: ContactType
    value: str
    label: str | None = None
    sort_order: int

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = None
    player_profile: PlayerProfileFields | None = None
    contacts: list[ContactUpsert] | None = None


class PerformanceStatCreate(BaseModel):
    date: dt.date
    exit_velocity: float | None = None
    launch_angle: float | None = None
    spin_rate: float | None = None
    avg_distance: float | None = None
    hard_hit_rate: float | None = None
    line_drive_rate: float | None = None
    recovery_score: float | None = None
    strain: float | None = None
    sleep_hours: float | None = None


class PerformanceStatResponse(PerformanceStatCreate):
    id: int
    player_id: str

    class Config:
        from_attributes = True


class ProfileResponse(BaseModel):
    user: UserResponse
    player_profile: PlayerProfileResponse | None = None
    teams: list[MembershipResponse] = Field(default_factory=list)
    active_programs: list[ProgramAssignmentResponse] = Field(default_factory=list)
    completed_programs: list[ProgramAssignmentResponse] = Field(default_factory=list)
    active_meal_plans: list[MealPlanAssignmentResponse] = Field(default_factory=list)
    completed_meal_plans: list[MealPlanAssignmentResponse] = Field(default_factory=list)
    contacts: list[ContactResponse] = Field(default_factory=list)


class AnnouncementPreview(BaseModel):
    conversation_id: int
    title: str | None = None
    created_at: dt.datetime
    messages: list[MessageResponse] = Field(default_factory=list)


class MyTeamResponse(BaseModel):
    team: TeamResponse
    players: list[TeamMemberResponse] = Field(default_factory=list)
    coaches: list[TeamMemberResponse] = Field(default_factory=list)
    upcoming_events: list[ScheduleEventResponse] = Field(default_factory=list)
    announcements: list[AnnouncementPreview] = Field(default_factory=list)


class DashboardResponse(BaseModel):
    user: UserResponse
    team: TeamResponse | None = None
    upcoming_events: list[ScheduleEventResponse] = Field(default_factory=list)
    latest_stats: PerformanceStatResponse | None = None
