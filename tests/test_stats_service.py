import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import DocumentRepository
from models import SessionExerciseEntry, SetEntry, WorkoutSession
from stats_service import (
    StatisticsService,
    chart_window,
    entry_volume,
    exercise_timeline,
    last_session_for_template,
    prefill_sets,
    session_volume,
    sessions_by_template,
    set_volume,
    sort_sessions_desc,
    top_set,
)
from workout_store import WorkoutStore


def _session(session_id, date_iso, template_id="t1", entries=()):
    return WorkoutSession(
        id=session_id,
        date_iso=date_iso,
        template_id=template_id,
        template_name="Push",
        entries=list(entries),
    )


def _entry(exercise_id, *sets):
    return SessionExerciseEntry(
        exercise_id=exercise_id,
        exercise_name=exercise_id.title(),
        sets=[SetEntry(reps=r, weight_kg=w) for r, w in sets],
    )


class VolumeTest(unittest.TestCase):
    def test_set_volume_treats_missing_as_zero(self) -> None:
        self.assertEqual(set_volume(SetEntry(reps=5, weight_kg=100)), 500)
        self.assertEqual(set_volume(SetEntry(reps=None, weight_kg=100)), 0)
        self.assertEqual(set_volume(SetEntry(reps=5, weight_kg=None)), 0)

    def test_session_volume(self) -> None:
        session = _session(
            "s1",
            "2024-01-01",
            entries=[_entry("bench", (5, 100), (5, None)), _entry("fly", (8, 60))],
        )
        self.assertEqual(entry_volume(session.entries[0]), 500)
        self.assertEqual(session_volume(session), 980)

    def test_empty_session_volume(self) -> None:
        self.assertEqual(session_volume(_session("s1", "2024-01-01")), 0)


class TimelineTest(unittest.TestCase):
    def test_top_set_keeps_first_of_equal_weights(self) -> None:
        sets = [SetEntry(reps=8, weight_kg=100), SetEntry(reps=5, weight_kg=100), SetEntry(reps=3, weight_kg=90)]
        self.assertIs(top_set(sets), sets[0])
        self.assertIsNone(top_set([]))

    def test_top_set_missing_weight_counts_as_zero(self) -> None:
        sets = [SetEntry(reps=8), SetEntry(reps=5, weight_kg=20)]
        self.assertIs(top_set(sets), sets[1])

    def test_timeline_skips_sessions_without_exercise(self) -> None:
        sessions = [
            _session("s1", "2024-01-08", entries=[_entry("bench", (5, 105), (5, 100))]),
            _session("s2", "2024-01-04", entries=[_entry("squat", (5, 140))]),
            _session("s3", "2024-01-01", entries=[_entry("bench", (5, 100))]),
        ]
        points = exercise_timeline(sessions, "bench")
        self.assertEqual([p.date_iso for p in points], ["2024-01-08", "2024-01-01"])
        self.assertEqual(points[0].top_weight_kg, 105)
        self.assertEqual(points[0].top_reps, 5)
        self.assertEqual(points[0].volume, 1025)
        self.assertEqual(len(points[0].sets), 2)

    def test_timeline_point_without_sets(self) -> None:
        points = exercise_timeline([_session("s1", "2024-01-01", entries=[_entry("bench")])], "bench")
        self.assertIsNone(points[0].top_set)
        self.assertEqual(points[0].top_weight_kg, 0)
        self.assertEqual(points[0].volume, 0)


class SessionOrderingTest(unittest.TestCase):
    def test_last_session_for_template_uses_date(self) -> None:
        sessions = [
            _session("s1", "2024-01-01"),
            _session("s2", "2024-01-15"),
            _session("s3", "2024-02-01", template_id="t2"),
            _session("s4", "2024-01-08"),
        ]
        self.assertEqual(last_session_for_template(sessions, "t1").id, "s2")
        self.assertIsNone(last_session_for_template(sessions, "t9"))

    def test_sort_sessions_desc(self) -> None:
        sessions = [_session("a", "2024-01-01"), _session("b", "2024-03-01"), _session("c", "2024-02-01")]
        self.assertEqual([s.id for s in sort_sessions_desc(sessions)], ["b", "c", "a"])

    def test_chart_window_oldest_first(self) -> None:
        sessions = [_session(str(i), f"2024-01-{i:02d}") for i in range(1, 13)]
        window = chart_window(sessions, 10)
        self.assertEqual(len(window), 10)
        self.assertEqual(window[0].date_iso, "2024-01-03")
        self.assertEqual(window[-1].date_iso, "2024-01-12")

    def test_sessions_by_template(self) -> None:
        sessions = [
            _session("a", "2024-01-01"),
            _session("b", "2024-01-02", template_id="t2"),
            _session("c", "2024-01-03"),
        ]
        grouped = sessions_by_template(sessions)
        self.assertEqual(list(grouped), ["t1", "t2"])
        self.assertEqual([s.id for s in grouped["t1"]], ["c", "a"])

    def test_prefill_sets(self) -> None:
        filled = prefill_sets([SetEntry(reps=5, weight_kg=100)], 3)
        self.assertEqual(filled, [SetEntry(reps=5, weight_kg=100), SetEntry(), SetEntry()])
        self.assertEqual(len(prefill_sets([SetEntry(reps=1)] * 5, 2)), 2)


class StatisticsServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_stats.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.store = WorkoutStore(DocumentRepository(self.db_path), seed=False)
        self.bench = self.store.upsert_exercise("Bench")
        self.template = self.store.upsert_template(
            "Push",
            [
                {"id": "r1", "exercise_id": self.bench.id, "sets_planned": 3},
                {"id": "r2", "exercise_id": self.bench.id, "sets_planned": 2},
            ],
        )
        for date_iso, weight in (("2024-01-01", 100), ("2024-01-08", 105)):
            self.store.add_session(
                date_iso,
                self.template.id,
                self.template.name,
                [_entry(self.bench.id, (5, weight), (5, 100))],
            )
        self.stats = StatisticsService(self.store)

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_progress_summary(self) -> None:
        summary = self.stats.progress_summary(self.template.id)
        self.assertEqual(summary["sessions"], 2)
        self.assertEqual(summary["last_date"], "2024-01-08")
        self.assertEqual(summary["latest_volume"], 1025)
        self.assertEqual(summary["avg_volume"], 1013)

    def test_progress_summary_without_sessions(self) -> None:
        summary = self.stats.progress_summary("unknown")
        self.assertEqual(summary, {"sessions": 0, "last_date": None, "latest_volume": 0, "avg_volume": 0})

    def test_template_exercises_are_distinct(self) -> None:
        self.assertEqual(self.stats.template_exercises(self.template.id), [self.bench])

    def test_volume_points(self) -> None:
        self.assertEqual(
            self.stats.volume_points(self.template.id), [("01-01", 1000), ("01-08", 1025)]
        )

    def test_exercise_points(self) -> None:
        points = self.stats.exercise_points(self.template.id, self.bench.id)
        self.assertEqual([p["top_weight_kg"] for p in points], [100, 105])
        self.assertEqual(points[0]["label"], "01-01")

    def test_last_session_summary(self) -> None:
        summary = self.stats.last_session_summary()
        self.assertEqual(summary["session"].date_iso, "2024-01-08")
        self.assertEqual(summary["total"], 1025)
        self.assertEqual(summary["per_exercise"][0]["top_weight_kg"], 105)

    def test_last_session_summary_orders_by_volume(self) -> None:
        self.store.add_session(
            "2024-01-15",
            self.template.id,
            self.template.name,
            [
                _entry("curl", (10, 10)),
                _entry("bench", (5, 100)),
                _entry("fly", (10, 20)),
                _entry("dip", (10, 10)),
            ],
        )
        names = [ex["exercise_name"] for ex in self.stats.last_session_summary()["per_exercise"]]
        self.assertEqual(names, ["Bench", "Fly", "Curl", "Dip"])

    def test_template_sessions_most_recent_first(self) -> None:
        self.assertEqual(
            [s.date_iso for s in self.stats.template_sessions(self.template.id)],
            ["2024-01-08", "2024-01-01"],
        )
        self.assertEqual(self.stats.template_sessions("unknown"), [])


if __name__ == "__main__":
    unittest.main()
