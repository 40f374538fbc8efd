from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, model_validator

from .calendar import MealFields
from .common import ExerciseCategory, Scope


class TrainingProgramCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    duration_weeks: int | None = Field(None, ge=1)


class TrainingProgramUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    duration_weeks: int | None = Field(None, ge=1)


class TrainingDayCreate(BaseModel):
    title: str | None = Field(None, max_length=255)
    notes: str | None = None


class TrainingExerciseCreate(BaseModel):
    category: ExerciseCategory = ExerciseCategory.other
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    sets: int | None = Field(None, ge=1)
    reps: str | None = None
    weight: str | None = None
    video_url: str | None = None
    image_url: str | None = None


class TrainingExerciseResponse(TrainingExerciseCreate):
    id: int
    day_id: int
    sort_order: int

    class Config:
        from_attributes = True


class TrainingDayResponse(BaseModel):
    id: int
    program_id: int
    day_number: int
    title: str | None = None
    notes: str | None = None
    exercises: list[TrainingExerciseResponse] = Field(default_factory=list)
    exercises_by_category: dict[str, list[TrainingExerciseResponse]] = Field(default_factory=dict)

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def group_exercises(self) -> "TrainingDayResponse":
        grouped: dict[str, list[TrainingExerciseResponse]] = {}
        for exercise in self.exercises:
            grouped.setdefault(exercise.category.value, []).append(exercise)
        self.exercises_by_category = {c.value: grouped[c.value] for c in ExerciseCategory if c.value in grouped}
        return self


class TrainingProgramResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    duration_weeks: int | None = None
    created_by: str | None = None
    created_at: dt.datetime
    days: list[TrainingDayResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class _AssignmentWindow(BaseModel):
    start_date: dt.date | None = None
    end_date: dt.date | None = None

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ProgramAssignmentCreate(_AssignmentWindow):
    program_id: int
    scope: Scope


class MealPlanAssignmentCreate(_AssignmentWindow):
    meal_plan_id: int
    scope: Scope


class AssignmentResponse(BaseModel):
    id: int
    team_id: int | None = None
    player_id: str | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    assigned_by: str | None = None
    created_at: dt.datetime


class ProgramAssignmentResponse(AssignmentResponse):
    program_id: int
    program_name: str | None = None
    day_count: int = 0


class MealPlanAssignmentResponse(AssignmentResponse):
    meal_plan_id: int
    meal_plan_name: str | None = None


class MealCreate(MealFields):
    pass


class MealResponse(MealFields):
    id: int
    created_by: str | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class MealsByType(BaseModel):
    breakfast: list[MealResponse] = Field(default_factory=list)
    lunch: list[MealResponse] = Field(default_factory=list)
    dinner: list[MealResponse] = Field(default_factory=list)
    snack: list[MealResponse] = Field(default_factory=list)


class MealPlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    meal_ids: list[int] = Field(..., min_length=1)


class NutritionTotals(BaseModel):
    calories: int = 0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0


class MealPlanItemResponse(BaseModel):
    id: int
    sort_order: int
    meal: MealResponse


class MealPlanResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    created_by: str | None = None
    created_at: dt.datetime
    items: list[MealPlanItemResponse] = Field(default_factory=list)
    totals: NutritionTotals = Field(default_factory=NutritionTotals)
