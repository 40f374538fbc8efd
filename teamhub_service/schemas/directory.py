from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .common import TeamRole, UserRole


class TeamBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    photo_url: str | None = None


class TeamCreate(TeamBase):
    pass


class TeamUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    photo_url: str | None = None


class TeamResponse(TeamBase):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class PlayerProfileFields(BaseModel):
    jersey_number: str | None = None
    position: str | None = None
    grade: str | None = None
    height: str | None = None
    weight: str | None = None
    bats: str | None = None
    throws: str | None = None


class PlayerProfileResponse(PlayerProfileFields):
    id: int
    user_id: str

    class Config:
        from_attributes = True


class MembershipResponse(BaseModel):
    id: int
    team_id: int
    user_id: str
    role: TeamRole
    team_name: str | None = None


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: str
    phone: str | None = None
    avatar_url: str | None = None
    role: UserRole
    created_at: datetime
    player_profile: PlayerProfileResponse | None = None
    memberships: list[MembershipResponse] = Field(default_factory=list)


class UserCreate(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = None
    role: UserRole = UserRole.player
    team_id: int | None = None
    player_profile: PlayerProfileFields | None = None


class RoleChange(BaseModel):
    role: UserRole


class MembershipAssignment(BaseModel):
    team_id: int
    role: TeamRole | None = None


class MembershipsReplace(BaseModel):
    memberships: list[MembershipAssignment] = Field(default_factory=list)


class TeamMemberResponse(BaseModel):
    membership_id: int
    user_id: str
    full_name: str
    email: str
    avatar_url: str | None = None
    team_role: TeamRole
    user_role: UserRole
    jersey_number: str | None = None
    position: str | None = None
