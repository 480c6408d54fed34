import logging

from db import DocumentRepository
from models import Exercise, StoreDocument, TemplateExerciseRow, WorkoutTemplate
from tools import now_iso, uid

logger = logging.getLogger(__name__)

STARTER_EXERCISES = [
    "Barbell bench press",
    "Dumbbell overhead press",
    "Incline dumbbell press",
    "Weighted dips",
    "Lateral raises",
]

STARTER_TEMPLATE_NAME = "Day1_Push"

# (sets planned, target reps) per starter exercise, in template order
STARTER_ROWS = [
    (4, "6-8"),
    (3, "6-8"),
    (3, "8-10"),
    (3, "8-10"),
    (3, "12-15"),
]


def ensure_seed(doc: StoreDocument) -> StoreDocument:
    """Return ``doc`` with a starter library if it has no exercises and no templates."""
    if doc.exercises or doc.templates:
        return doc

    ts = now_iso()
    exercises = [
        Exercise(id=uid(), name=name, created_at=ts, updated_at=ts)
        for name in STARTER_EXERCISES
    ]
    rows = [
        TemplateExerciseRow(
            id=uid(), exercise_id=ex.id, sets_planned=sets, target_reps=reps
        )
        for ex, (sets, reps) in zip(exercises, STARTER_ROWS)
    ]
    template = WorkoutTemplate(
        id=uid(),
        name=STARTER_TEMPLATE_NAME,
        exercise_rows=rows,
        created_at=ts,
        updated_at=ts,
    )
    logger.info("seeded %d starter exercises and template %r", len(exercises), template.name)
    return doc.model_copy(update={"exercises": exercises, "templates": [template]})


def seed(db_path: str = "workout.db") -> None:
    repo = DocumentRepository(db_path)
    doc = repo.load()
    if doc.exercises or doc.templates:
        print("Database already contains exercises or templates")
        return
    repo.save(ensure_seed(doc))
    print("Seed data inserted")


if __name__ == "__main__":
    seed()
