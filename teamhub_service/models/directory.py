from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(64), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    role = Column(String(16), nullable=False, default="player", index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    player_profile = relationship("PlayerProfile", back_populates="user", uselist=False, passive_deletes=True)
    memberships = relationship("TeamMembership", back_populates="user", passive_deletes=True)
    contacts = relationship("UserContact", back_populates="user", passive_deletes=True)


class PlayerProfile(Base):
    __tablename__ = "player_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    jersey_number = Column(String(8), nullable=True)
    position = Column(String(64), nullable=True)
    grade = Column(String(32), nullable=True)
    height = Column(String(32), nullable=True)
    weight = Column(String(32), nullable=True)
    bats = Column(String(8), nullable=True)
    throws = Column(String(8), nullable=True)

    user = relationship("User", back_populates="player_profile")


class UserContact(Base):
    __tablename__ = "user_contacts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    contact_type = Column(String(16), nullable=False)
    value = Column(String(320), nullable=False)
    label = Column(String(64), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    user = relationship("User", back_populates="contacts")

    __table_args__ = (Index("ix_user_contacts_user_type", "user_id", "contact_type"),)


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    photo_url = Column(String(1024), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    memberships = relationship("TeamMembership", back_populates="team", passive_deletes=True)


class TeamMembership(Base):
    __tablename__ = "team_members"

    id = Column(Integer, primary_key=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(16), nullable=False, default="player")

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    team = relationship("Team", back_populates="memberships")
    user = relationship("User", back_populates="memberships")

    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_member"),)


class PerformanceStat(Base):
    __tablename__ = "performance_stats"

    id = Column(Integer, primary_key=True, index=True)
    player_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    exit_velocity = Column(Float, nullable=True)
    launch_angle = Column(Float, nullable=True)
    spin_rate = Column(Float, nullable=True)
    avg_distance = Column(Float, nullable=True)
    hard_hit_rate = Column(Float, nullable=True)
    line_drive_rate = Column(Float, nullable=True)
    recovery_score = Column(Float, nullable=True)
    strain = Column(Float, nullable=True)
    sleep_hours = Column(Float, nullable=True)

    __table_args__ = (Index("ix_performance_stats_player_date", "player_id", "date"),)
