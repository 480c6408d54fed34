from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from db import DocumentRepository
from models import (
    Exercise,
    SessionExerciseEntry,
    StoreDocument,
    TemplateExerciseRow,
    WorkoutSession,
    WorkoutTemplate,
)
from seed_sample_data import ensure_seed
from tools import now_iso, uid

logger = logging.getLogger(__name__)


class WorkoutStore:
    """Owns the current workout document and persists every mutation.

    All changes go through the methods below. Each one builds a new
    :class:`StoreDocument` value, makes it current and saves it.
    """

    def __init__(self, repo: DocumentRepository, seed: bool = True) -> None:
        self.repo = repo
        self.seed = seed
        doc = repo.load()
        if seed:
            seeded = ensure_seed(doc)
            if seeded is not doc:
                repo.save(seeded)
            doc = seeded
        self._document = doc

    @property
    def document(self) -> StoreDocument:
        return self._document

    @property
    def exercises(self) -> list[Exercise]:
        return self._document.exercises

    @property
    def templates(self) -> list[WorkoutTemplate]:
        return self._document.templates

    @property
    def sessions(self) -> list[WorkoutSession]:
        return self._document.sessions

    def _commit(self, **changes) -> None:
        self._document = self._document.model_copy(update=changes)
        self.repo.save(self._document)

    # lookups

    def get_exercise(self, exercise_id: str) -> Optional[Exercise]:
        return next((e for e in self.exercises if e.id == exercise_id), None)

    def get_template(self, template_id: str) -> Optional[WorkoutTemplate]:
        return next((t for t in self.templates if t.id == template_id), None)

    def get_session(self, session_id: str) -> Optional[WorkoutSession]:
        return next((s for s in self.sessions if s.id == session_id), None)

    # exercises

    def upsert_exercise(
        self, name: str, exercise_id: str | None = None, notes: str | None = None
    ) -> Exercise:
        ts = now_iso()
        existing = self.get_exercise(exercise_id) if exercise_id else None
        if existing is not None:
            updated = existing.model_copy(
                update={"name": name.strip(), "notes": notes, "updated_at": ts}
            )
            exercises = [updated if e.id == updated.id else e for e in self.exercises]
            logger.debug("updated exercise %s", updated.id)
        else:
            updated = Exercise(
                id=uid(), name=name.strip(), notes=notes, created_at=ts, updated_at=ts
            )
            exercises = [updated, *self.exercises]
            logger.debug("created exercise %s", updated.id)
        self._commit(exercises=exercises)
        return updated

    def delete_exercise(self, exercise_id: str) -> None:
        """Remove an exercise and strip template rows that use it.

        Sessions keep their entries; they carry their own name snapshot.
        """
        ts = now_iso()
        templates = []
        for template in self.templates:
            rows = [r for r in template.exercise_rows if r.exercise_id != exercise_id]
            if len(rows) != len(template.exercise_rows):
                template = template.model_copy(
                    update={"exercise_rows": rows, "updated_at": ts}
                )
            templates.append(template)
        exercises = [e for e in self.exercises if e.id != exercise_id]
        logger.debug("deleted exercise %s", exercise_id)
        self._commit(exercises=exercises, templates=templates)

    # templates

    def upsert_template(
        self,
        name: str,
        exercise_rows: Iterable[TemplateExerciseRow | dict],
        template_id: str | None = None,
        created_at: str | None = None,
    ) -> WorkoutTemplate:
        ts = now_iso()
        rows = [
            r if isinstance(r, TemplateExerciseRow) else TemplateExerciseRow.model_validate(r)
            for r in exercise_rows
        ]
        existing = self.get_template(template_id) if template_id else None
        if existing is not None:
            updated = existing.model_copy(
                update={"name": name, "exercise_rows": rows, "updated_at": ts}
            )
            templates = [updated if t.id == updated.id else t for t in self.templates]
        else:
            updated = WorkoutTemplate(
                id=template_id or uid(),
                name=name,
                exercise_rows=rows,
                created_at=created_at or ts,
                updated_at=ts,
            )
            templates = [updated, *self.templates]
        logger.debug("saved template %s with %d row(s)", updated.id, len(rows))
        self._commit(templates=templates)
        return updated

    def delete_template(self, template_id: str) -> None:
        """Remove a template together with every session recorded against it."""
        templates = [t for t in self.templates if t.id != template_id]
        sessions = [s for s in self.sessions if s.template_id != template_id]
        logger.debug(
            "deleted template %s and %d session(s)",
            template_id,
            len(self.sessions) - len(sessions),
        )
        self._commit(templates=templates, sessions=sessions)

    # sessions

    def add_session(
        self,
        date_iso: str,
        template_id: str,
        template_name: str,
        entries: Iterable[SessionExerciseEntry | dict],
        session_id: str | None = None,
        comment: str | None = None,
        is_draft: bool | None = None,
    ) -> WorkoutSession:
        ts = now_iso()
        session = WorkoutSession(
            id=session_id or uid(),
            date_iso=date_iso,
            template_id=template_id,
            template_name=template_name,
            entries=[
                e if isinstance(e, SessionExerciseEntry) else SessionExerciseEntry.model_validate(e)
                for e in entries
            ],
            comment=comment,
            is_draft=is_draft,
            created_at=ts,
            updated_at=ts,
        )
        logger.debug("added session %s on %s", session.id, session.date_iso)
        self._commit(sessions=[session, *self.sessions])
        return session

    def update_session(
        self, session_id: str, mutator: Callable[[WorkoutSession], WorkoutSession]
    ) -> Optional[WorkoutSession]:
        """Apply ``mutator`` to the matching session and bump its ``updatedAt``.

        Returns the updated session, or ``None`` (without saving) when no
        session has ``session_id``.
        """
        current = self.get_session(session_id)
        if current is None:
            return None
        updated = mutator(current).model_copy(update={"updated_at": now_iso()})
        sessions = [updated if s.id == session_id else s for s in self.sessions]
        self._commit(sessions=sessions)
        return updated

    def delete_session(self, session_id: str) -> None:
        self._commit(sessions=[s for s in self.sessions if s.id != session_id])

    # whole document

    def replace_document(self, doc: StoreDocument) -> None:
        """Swap in ``doc`` wholesale. Callers validate it first."""
        logger.info(
            "replacing document: %d exercises, %d templates, %d sessions",
            len(doc.exercises),
            len(doc.templates),
            len(doc.sessions),
        )
        self._document = doc
        self.repo.save(doc)

    def reset(self) -> None:
        """Clear stored data; reseed the starter library when seeding is enabled."""
        self.repo.reset()
        doc = StoreDocument()
        if self.seed:
            doc = ensure_seed(doc)
            self.repo.save(doc)
        self._document = doc
