"""Step-by-step builder for calendar submissions.

The flow mirrors the "add to calendar" dialog::

    type -> (workout/meal only) sub type -> (single only) selection mode -> details -> submit

``back()`` undoes one step. Leaving the sub-type step also drops the selection
mode and any details, so a stale pick can never be submitted under a new type.

``AddEventFlow`` is the client-side model of that dialog: clients (and scripted
callers) walk it and post the result of ``build()``. The submission endpoints
only see finished submissions and re-check them with
``validate_submission_scope``.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any

from pydantic import TypeAdapter

from .schemas.calendar import EventSubmission, TeamEventSubmission
from .schemas.common import PlayerScope, TeamScope


class FlowError(ValueError):
    pass


class EventKind(str, Enum):
    team_event = "team_event"
    workout = "workout"
    meal = "meal"


class SubType(str, Enum):
    single = "single"
    full = "full"


class SelectionMode(str, Enum):
    existing = "existing"
    create = "create"


class FlowStep(str, Enum):
    type = "type"
    sub_type = "sub_type"
    mode = "mode"
    details = "details"


_submission_adapter = TypeAdapter(EventSubmission)


def allowed_kinds(view: TeamScope | PlayerScope) -> tuple[EventKind, ...]:
    if isinstance(view, TeamScope):
        return (EventKind.team_event,)
    return (EventKind.workout, EventKind.meal)


def validate_submission_scope(view: TeamScope | PlayerScope, submission) -> None:
    """Reject submissions whose kind or target does not belong to the calendar being viewed."""
    if isinstance(submission, TeamEventSubmission):
        if not isinstance(view, TeamScope):
            raise FlowError("Team events can only be added from a team calendar")
        if submission.team_id != view.team_id:
            raise FlowError("Submission targets a different team")
        return
    if not isinstance(view, PlayerScope):
        raise FlowError("Workouts and meals can only be added from a player calendar")
    if submission.player_id != view.player_id:
        raise FlowError("Submission targets a different player")


class AddEventFlow:
    def __init__(self, view: TeamScope | PlayerScope, event_date: dt.date) -> None:
        self.view = view
        self.event_date = event_date
        self.kind: EventKind | None = None
        self.sub_type: SubType | None = None
        self.mode: SelectionMode | None = None
        self.details: dict[str, Any] = {}

    @property
    def step(self) -> FlowStep:
        if self.kind is None:
            return FlowStep.type
        if self.kind == EventKind.team_event:
            return FlowStep.details
        if self.sub_type is None:
            return FlowStep.sub_type
        if self.sub_type == SubType.single and self.mode is None:
            return FlowStep.mode
        return FlowStep.details

    def choose_type(self, kind: EventKind | str) -> FlowStep:
        self._expect(FlowStep.type)
        kind = EventKind(kind)
        if kind not in allowed_kinds(self.view):
            raise FlowError(f"{kind.value} cannot be added from a {self.view.kind} calendar")
        self.kind = kind
        return self.step

    def choose_sub_type(self, sub_type: SubType | str) -> FlowStep:
        self._expect(FlowStep.sub_type)
        self.sub_type = SubType(sub_type)
        return self.step

    def choose_mode(self, mode: SelectionMode | str) -> FlowStep:
        self._expect(FlowStep.mode)
        self.mode = SelectionMode(mode)
        return self.step

    def fill(self, **fields: Any) -> FlowStep:
        self._expect(FlowStep.details)
        self.details.update(fields)
        return self.step

    def back(self) -> FlowStep:
        if self.mode is not None:
            # details stay; submission only reads the fields of the chosen mode
            self.mode = None
        elif self.sub_type is not None:
            self.sub_type = None
            self.details = {}
        elif self.kind is not None:
            self.kind = None
            self.details = {}
        else:
            raise FlowError("Already at the first step")
        return self.step

    def build(self):
        """Validate the collected answers and return the matching submission model."""
        self._expect(FlowStep.details)
        payload = self._payload()
        submission = _submission_adapter.validate_python(payload)
        validate_submission_scope(self.view, submission)
        return submission

    def _payload(self) -> dict[str, Any]:
        d = self.details
        if self.kind == EventKind.team_event:
            return {**d, "kind": "team_event", "team_id": self.view.team_id, "event_date": self.event_date}

        base = {"player_id": self.view.player_id}
        if self.kind == EventKind.workout:
            if self.sub_type == SubType.full:
                return {
                    **base,
                    "kind": "workout_program",
                    "program_id": d.get("program_id"),
                    "start_date": self.event_date,
                    "end_date": d.get("end_date"),
                }
            if self.mode == SelectionMode.existing:
                return {
                    **base,
                    "kind": "workout_day",
                    "event_date": self.event_date,
                    "training_day_id": d.get("training_day_id"),
                }
            return {
                **base,
                "kind": "workout_new",
                "event_date": self.event_date,
                "title": d.get("title"),
                "notes": d.get("notes"),
            }

        if self.sub_type == SubType.full:
            return {
                **base,
                "kind": "meal_plan",
                "meal_plan_id": d.get("meal_plan_id"),
                "start_date": self.event_date,
                "end_date": d.get("end_date"),
            }
        if self.mode == SelectionMode.existing:
            return {**base, "kind": "meal_existing", "event_date": self.event_date, "meal_id": d.get("meal_id")}
        return {**base, "kind": "meal_new", "event_date": self.event_date, "meal": d.get("meal")}

    def _expect(self, step: FlowStep) -> None:
        if self.step != step:
            raise FlowError(f"Flow is at the {self.step.value} step, not {step.value}")
