import json
import os
import shutil
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import DocumentRepository
from export_service import (
    CSV_HEADER,
    INVALID_JSON_MESSAGE,
    INVALID_SHAPE_MESSAGE,
    ExportService,
    InvalidImportError,
    csv_escape,
)
from models import SessionExerciseEntry, SetEntry
from workout_store import WorkoutStore


class ExportServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_export.db"
        self.export_dir = "test_exports"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        shutil.rmtree(self.export_dir, ignore_errors=True)
        self.store = WorkoutStore(DocumentRepository(self.db_path), seed=False)
        self.exporter = ExportService(self.store, self.export_dir)

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        shutil.rmtree(self.export_dir, ignore_errors=True)

    def _add(self, template_name, exercise_name, *sets):
        self.store.add_session(
            "2024-01-01",
            "t1",
            template_name,
            [
                SessionExerciseEntry(
                    exercise_id="e1",
                    exercise_name=exercise_name,
                    sets=[SetEntry(reps=r, weight_kg=w) for r, w in sets],
                )
            ],
        )

    def test_csv_row_per_set(self) -> None:
        self._add("Day1_Push", "Bench", (5, 100.0), (None, 80))
        lines = self.exporter.export_sessions_csv().split("\n")
        self.assertEqual(lines[0], ",".join(CSV_HEADER))
        self.assertEqual(lines[1], "2024-01-01,Day1_Push,Bench,1,5,100,500")
        self.assertEqual(lines[2], "2024-01-01,Day1_Push,Bench,2,,80,0")
        self.assertEqual(len(lines), 3)

    def test_csv_header_only_when_empty(self) -> None:
        self.assertEqual(
            self.exporter.export_sessions_csv(),
            "date,template,exercise,setIndex,reps,weightKg,volume",
        )

    def test_csv_escaping(self) -> None:
        self._add('Push "A"', "Press, incline", (5, 62.5))
        line = self.exporter.export_sessions_csv().split("\n")[1]
        self.assertEqual(line, '2024-01-01,"Push ""A""","Press, incline",1,5,62.5,312.5')

    def test_csv_escape(self) -> None:
        self.assertEqual(csv_escape("plain"), "plain")
        self.assertEqual(csv_escape("a\nb"), '"a\nb"')

    def test_json_export_matches_document(self) -> None:
        self._add("Day1_Push", "Bench", (5, 100))
        text = self.exporter.export_json()
        self.assertIn('\n  "version": 1', text)
        self.assertEqual(json.loads(text), self.store.document.to_wire())

    def test_written_export_filenames(self) -> None:
        json_path = self.exporter.write_json_export()
        csv_path = self.exporter.write_csv_export()
        self.assertRegex(os.path.basename(json_path), r"^workouts-\d{4}-\d{2}-\d{2}\.json$")
        self.assertRegex(os.path.basename(csv_path), r"^workout-sessions-\d{4}-\d{2}-\d{2}\.csv$")
        self.assertTrue(os.path.exists(json_path))

    def test_import_rejects_invalid_json(self) -> None:
        with self.assertRaises(InvalidImportError) as ctx:
            self.exporter.import_document("{oops")
        self.assertEqual(str(ctx.exception), INVALID_JSON_MESSAGE)

    def test_import_rejects_deeply_nested_json(self) -> None:
        before = self.store.document
        with self.assertRaises(InvalidImportError) as ctx:
            self.exporter.import_document("[" * 200000 + "]" * 200000)
        self.assertEqual(str(ctx.exception), INVALID_JSON_MESSAGE)
        self.assertIs(self.store.document, before)

    def test_import_rejects_wrong_shape_without_changes(self) -> None:
        self._add("Day1_Push", "Bench", (5, 100))
        before = self.store.document
        for payload in (
            {"version": 1, "exercises": [], "templates": []},
            {"version": 2, "exercises": [], "templates": [], "sessions": []},
            {"version": True, "exercises": [], "templates": [], "sessions": []},
            [1, 2, 3],
            {"version": 1, "exercises": [{"name": "no id"}], "templates": [], "sessions": []},
        ):
            with self.assertRaises(InvalidImportError) as ctx:
                self.exporter.import_document(json.dumps(payload))
            self.assertEqual(str(ctx.exception), INVALID_SHAPE_MESSAGE)
        self.assertIs(self.store.document, before)
        self.assertEqual(DocumentRepository(self.db_path).load(), before)
        self.assertFalse(os.path.exists(self.export_dir))

    def test_import_replaces_document_and_backs_up(self) -> None:
        self._add("Old", "Bench", (5, 100))
        old_text = self.exporter.export_json()
        payload = {
            "version": 1,
            "exercises": [{"id": "e9", "name": "Row", "createdAt": "a", "updatedAt": "a"}],
            "templates": [],
            "sessions": [],
        }
        backup = self.exporter.import_document(json.dumps(payload))
        self.assertEqual([e.name for e in self.store.exercises], ["Row"])
        self.assertEqual(self.store.sessions, [])
        self.assertEqual(DocumentRepository(self.db_path).load(), self.store.document)
        with open(backup, encoding="utf-8") as f:
            self.assertEqual(f.read(), old_text)

    def test_import_without_backup(self) -> None:
        text = json.dumps({"version": 1, "exercises": [], "templates": [], "sessions": []})
        self.assertIsNone(self.exporter.import_document(text, backup=False))
        self.assertFalse(os.path.exists(self.export_dir))

    def test_export_then_import_restores(self) -> None:
        self._add("Day1_Push", "Bench", (5, 100), (None, None))
        text = self.exporter.export_json()
        doc = self.store.document
        self.store.reset()
        self.exporter.import_document(text, backup=False)
        self.assertEqual(self.store.document, doc)


if __name__ == "__main__":
    unittest.main()
