from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship

from ..database import Base

# exactly one of team_id / player_id is set
SCOPE_XOR = "(team_id IS NULL) <> (player_id IS NULL)"


class ScheduleEvent(Base):
    __tablename__ = "schedule_events"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String(16), nullable=False)
    event_date = Column(Date, nullable=False)
    event_time = Column(Time, nullable=True)
    title = Column(String(255), nullable=True)
    opponent = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    address = Column(String(512), nullable=True)
    home_away = Column(String(8), nullable=True)
    is_optional = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True)
    player_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    training_day_id = Column(Integer, ForeignKey("training_days.id", ondelete="SET NULL"), nullable=True)
    meal_id = Column(Integer, ForeignKey("meals.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(SCOPE_XOR, name="ck_schedule_events_scope"),
        Index("ix_schedule_events_team_date", "team_id", "event_date"),
        Index("ix_schedule_events_player_date", "player_id", "event_date"),
    )


class TrainingProgram(Base):
    __tablename__ = "training_programs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration_weeks = Column(Integer, nullable=True)
    created_by = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    days = relationship(
        "TrainingDay",
        back_populates="program",
        order_by="TrainingDay.day_number",
        passive_deletes=True,
    )


class TrainingDay(Base):
    __tablename__ = "training_days"

    id = Column(Integer, primary_key=True, index=True)
    program_id = Column(Integer, ForeignKey("training_programs.id", ondelete="CASCADE"), nullable=False, index=True)
    day_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    program = relationship("TrainingProgram", back_populates="days")
    exercises = relationship(
        "TrainingExercise",
        back_populates="day",
        order_by="TrainingExercise.sort_order",
        passive_deletes=True,
    )


class TrainingExercise(Base):
    __tablename__ = "training_exercises"

    id = Column(Integer, primary_key=True, index=True)
    day_id = Column(Integer, ForeignKey("training_days.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(32), nullable=False, default="other")
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    sets = Column(Integer, nullable=True)
    reps = Column(String(32), nullable=True)
    weight = Column(String(64), nullable=True)
    video_url = Column(String(1024), nullable=True)
    image_url = Column(String(1024), nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    day = relationship("TrainingDay", back_populates="exercises")


class TrainingProgramAssignment(Base):
    __tablename__ = "training_program_assignments"

    id = Column(Integer, primary_key=True, index=True)
    program_id = Column(Integer, ForeignKey("training_programs.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True, index=True)
    player_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    assigned_by = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    program = relationship("TrainingProgram")

    __table_args__ = (CheckConstraint(SCOPE_XOR, name="ck_training_program_assignments_scope"),)


class Meal(Base):
    __tablename__ = "meals"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    meal_type = Column(String(16), nullable=False, default="breakfast")
    calories = Column(Integer, nullable=True)
    protein_g = Column(Float, nullable=True)
    carbs_g = Column(Float, nullable=True)
    fat_g = Column(Float, nullable=True)
    created_by = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class MealPlan(Base):
    __tablename__ = "meal_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    items = relationship(
        "MealPlanItem",
        back_populates="plan",
        order_by="MealPlanItem.sort_order",
        passive_deletes=True,
    )


class MealPlanItem(Base):
    __tablename__ = "meal_plan_items"

    id = Column(Integer, primary_key=True, index=True)
    meal_plan_id = Column(Integer, ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    meal_id = Column(Integer, ForeignKey("meals.id", ondelete="CASCADE"), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    plan = relationship("MealPlan", back_populates="items")
    meal = relationship("Meal")


class MealPlanAssignment(Base):
    __tablename__ = "meal_plan_assignments"

    id = Column(Integer, primary_key=True, index=True)
    meal_plan_id = Column(Integer, ForeignKey("meal_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True, index=True)
    player_id = Column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    assigned_by = Column(String(128), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)

    plan = relationship("MealPlan")

    __table_args__ = (CheckConstraint(SCOPE_XOR, name="ck_meal_plan_assignments_scope"),)
