from __future__ import annotations

from collections import OrderedDict
from typing import Iterable, List, NamedTuple, Optional

from models import Exercise, SessionExerciseEntry, SetEntry, WorkoutSession
from tools import round_half_up

DEFAULT_CHART_WINDOW = 10


class TimelinePoint(NamedTuple):
    date_iso: str
    top_set: Optional[SetEntry]
    top_weight_kg: float
    top_reps: float
    volume: float
    sets: List[SetEntry]


def set_volume(entry: SetEntry) -> float:
    """Reps times weight; a missing value counts as zero."""
    return (entry.reps or 0) * (entry.weight_kg or 0)


def entry_volume(entry: SessionExerciseEntry) -> float:
    return sum(set_volume(s) for s in entry.sets)


def session_volume(session: WorkoutSession) -> float:
    return sum(entry_volume(e) for e in session.entries)


def top_set(sets: Iterable[SetEntry]) -> Optional[SetEntry]:
    """First set carrying the heaviest weight (missing weight counts as zero)."""
    best: Optional[SetEntry] = None
    for s in sets:
        if best is None or (s.weight_kg or 0) > (best.weight_kg or 0):
            best = s
    return best


def exercise_timeline(
    sessions: Iterable[WorkoutSession], exercise_id: str
) -> List[TimelinePoint]:
    """One point per session that has an entry for ``exercise_id``, in input order."""
    points: List[TimelinePoint] = []
    for session in sessions:
        entry = next((e for e in session.entries if e.exercise_id == exercise_id), None)
        if entry is None:
            continue
        best = top_set(entry.sets)
        points.append(
            TimelinePoint(
                date_iso=session.date_iso,
                top_set=best,
                top_weight_kg=(best.weight_kg or 0) if best else 0,
                top_reps=(best.reps or 0) if best else 0,
                volume=entry_volume(entry),
                sets=list(entry.sets),
            )
        )
    return points


def sort_sessions_desc(sessions: Iterable[WorkoutSession]) -> List[WorkoutSession]:
    return sorted(sessions, key=lambda s: s.date_iso, reverse=True)


def last_session_for_template(
    sessions: Iterable[WorkoutSession], template_id: str
) -> Optional[WorkoutSession]:
    matching = [s for s in sessions if s.template_id == template_id]
    if not matching:
        return None
    return sort_sessions_desc(matching)[0]


def prefill_sets(previous: Iterable[SetEntry], count: int) -> List[SetEntry]:
    """``count`` sets copying ``previous`` positionally; extra slots stay blank."""
    copied = [SetEntry(reps=s.reps, weight_kg=s.weight_kg) for s in list(previous)[:count]]
    return copied + [SetEntry() for _ in range(count - len(copied))]


def chart_window(
    sessions: Iterable[WorkoutSession], size: int = DEFAULT_CHART_WINDOW
) -> List[WorkoutSession]:
    """Most recent ``size`` sessions, oldest first for left-to-right charts."""
    recent = sort_sessions_desc(sessions)[:size]
    recent.reverse()
    return recent


def sessions_by_template(
    sessions: Iterable[WorkoutSession],
) -> "OrderedDict[str, List[WorkoutSession]]":
    grouped: "OrderedDict[str, List[WorkoutSession]]" = OrderedDict()
    for s in sessions:
        grouped.setdefault(s.template_id, []).append(s)
    for key, items in grouped.items():
        grouped[key] = sort_sessions_desc(items)
    return grouped


def _chart_label(date_iso: str) -> str:
    return date_iso[5:]


class StatisticsService:
    """Compute progress figures for the presentation layer."""

    def __init__(self, store, window: int = DEFAULT_CHART_WINDOW) -> None:
        self.store = store
        self.window = window

    def template_sessions(self, template_id: str) -> List[WorkoutSession]:
        return sessions_by_template(self.store.sessions).get(template_id, [])

    def template_exercises(self, template_id: str) -> List[Exercise]:
        """Distinct, still-existing exercises of a template in row order."""
        template = self.store.get_template(template_id)
        if template is None:
            return []
        seen: set[str] = set()
        result: List[Exercise] = []
        for row in template.exercise_rows:
            if row.exercise_id in seen:
                continue
            seen.add(row.exercise_id)
            exercise = self.store.get_exercise(row.exercise_id)
            if exercise is not None:
                result.append(exercise)
        return result

    def progress_summary(self, template_id: str) -> dict:
        sessions = self.template_sessions(template_id)
        points = self.volume_points(template_id)
        avg = round_half_up(sum(v for _l, v in points) / len(points)) if points else 0
        return {
            "sessions": len(sessions),
            "last_date": sessions[0].date_iso if sessions else None,
            "latest_volume": round_half_up(session_volume(sessions[0])) if sessions else 0,
            "avg_volume": avg,
        }

    def volume_points(self, template_id: str) -> List[tuple[str, int]]:
        window = chart_window(self.template_sessions(template_id), self.window)
        return [(_chart_label(s.date_iso), round_half_up(session_volume(s))) for s in window]

    def exercise_points(self, template_id: str, exercise_id: str) -> List[dict]:
        window = chart_window(self.template_sessions(template_id), self.window)
        return [
            {
                "label": _chart_label(p.date_iso),
                "top_weight_kg": p.top_weight_kg or None,
                "volume": round_half_up(p.volume) if p.volume else None,
                "top_reps": p.top_reps,
            }
            for p in exercise_timeline(window, exercise_id)
        ]

    def last_session_summary(self) -> Optional[dict]:
        """Per-exercise volume and top set of the most recently recorded session.

        Exercises are ordered by volume, largest first.
        """
        if not self.store.sessions:
            return None
        session = self.store.sessions[0]
        per_exercise = []
        for entry in session.entries:
            best = top_set(entry.sets)
            per_exercise.append(
                {
                    "exercise_name": entry.exercise_name,
                    "volume": entry_volume(entry),
                    "top_weight_kg": (best.weight_kg or 0) if best else 0,
                    "top_reps": (best.reps or 0) if best else 0,
                }
            )
        per_exercise.sort(key=lambda ex: ex["volume"], reverse=True)
        return {
            "session": session,
            "total": session_volume(session),
            "per_exercise": per_exercise,
        }
