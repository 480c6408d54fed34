from __future__ import annotations

import logging
from typing import List

from pydantic import BaseModel, Field

from models import MAX_SETS_PLANNED, MIN_SETS_PLANNED, SessionExerciseEntry, SetEntry, WorkoutSession
from stats_service import last_session_for_template, prefill_sets
from tools import MathTools, format_kg, format_number, now_iso, parse_number_or_null, uid
from workout_store import WorkoutStore

logger = logging.getLogger(__name__)


class DraftSet(BaseModel):
    """A set as typed into the form; values stay text until the draft is saved."""

    reps: str = ""
    weight_kg: str = ""


class DraftEntry(BaseModel):
    exercise_id: str
    exercise_name: str
    target_reps: str = ""
    sets: List[DraftSet] = Field(default_factory=list)


class SessionDraft(BaseModel):
    id: str
    date_iso: str
    template_id: str
    template_name: str
    entries: List[DraftEntry] = Field(default_factory=list)
    comment: str = ""
    created_at: str
    updated_at: str


class PlannerService:
    """Turns templates into session drafts and drafts into recorded sessions."""

    def __init__(self, store: WorkoutStore) -> None:
        self.store = store

    def start_session_from_template(self, template_id: str, date_iso: str) -> SessionDraft:
        template = self.store.get_template(template_id)
        if template is None:
            raise ValueError(f"unknown template: {template_id}")
        last = last_session_for_template(self.store.sessions, template.id)

        entries: List[DraftEntry] = []
        for row in template.exercise_rows:
            exercise = self.store.get_exercise(row.exercise_id)
            if exercise is None:
                continue
            count = MathTools.clamp_int(row.sets_planned, MIN_SETS_PLANNED, MAX_SETS_PLANNED)
            prev = None
            if last is not None:
                prev = next(
                    (e for e in last.entries if e.exercise_id == row.exercise_id), None
                )
            sets = [
                DraftSet(reps=format_number(s.reps), weight_kg=format_kg(s.weight_kg))
                for s in prefill_sets(prev.sets if prev else [], count)
            ]
            entries.append(
                DraftEntry(
                    exercise_id=row.exercise_id,
                    exercise_name=exercise.name,
                    target_reps=row.target_reps,
                    sets=sets,
                )
            )

        ts = now_iso()
        logger.debug(
            "started draft for %s (prefilled from %s)",
            template.name,
            last.id if last else "nothing",
        )
        return SessionDraft(
            id=uid(),
            date_iso=date_iso,
            template_id=template.id,
            template_name=template.name,
            entries=entries,
            created_at=ts,
            updated_at=ts,
        )

    @staticmethod
    def update_draft_set(
        draft: SessionDraft, entry_index: int, set_index: int, field: str, value: str
    ) -> SessionDraft:
        if field not in ("reps", "weight_kg"):
            raise ValueError(f"unknown set field: {field}")
        entries = []
        for e_idx, entry in enumerate(draft.entries):
            if e_idx == entry_index:
                sets = [
                    s.model_copy(update={field: value}) if s_idx == set_index else s
                    for s_idx, s in enumerate(entry.sets)
                ]
                entry = entry.model_copy(update={"sets": sets})
            entries.append(entry)
        return draft.model_copy(update={"entries": entries})

    @staticmethod
    def draft_to_entries(draft: SessionDraft) -> List[SessionExerciseEntry]:
        return [
            SessionExerciseEntry(
                exercise_id=e.exercise_id,
                exercise_name=e.exercise_name,
                target_reps=e.target_reps,
                sets=[
                    SetEntry(
                        reps=parse_number_or_null(s.reps),
                        weight_kg=parse_number_or_null(s.weight_kg),
                    )
                    for s in e.sets
                ],
            )
            for e in draft.entries
        ]

    def save_draft(self, draft: SessionDraft) -> WorkoutSession:
        return self.store.add_session(
            date_iso=draft.date_iso,
            template_id=draft.template_id,
            template_name=draft.template_name,
            entries=self.draft_to_entries(draft),
            session_id=draft.id,
            comment=draft.comment.strip() or None,
        )
