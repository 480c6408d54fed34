from __future__ import annotations

import datetime
import json
import logging
import os
from typing import Iterable, Optional

from models import StoreDocument, WorkoutSession, decode_document, is_supported_version
from stats_service import set_volume
from tools import format_number
from workout_store import WorkoutStore

logger = logging.getLogger(__name__)

CSV_HEADER = ["date", "template", "exercise", "setIndex", "reps", "weightKg", "volume"]

INVALID_JSON_MESSAGE = "Invalid JSON file."
INVALID_SHAPE_MESSAGE = "This does not look like a valid export from this app (expected version=1)."


class InvalidImportError(ValueError):
    """Raised when an import file is rejected; the message is meant for the user."""


def csv_escape(value: str) -> str:
    if any(ch in value for ch in (",", '"', "\n")):
        return '"' + value.replace('"', '""') + '"'
    return value


def _stamp() -> str:
    return datetime.date.today().isoformat()


class ExportService:
    """JSON and CSV export plus validated JSON import for a :class:`WorkoutStore`."""

    def __init__(self, store: WorkoutStore, export_dir: str = ".") -> None:
        self.store = store
        self.export_dir = export_dir

    def export_json(self, doc: Optional[StoreDocument] = None) -> str:
        doc = doc if doc is not None else self.store.document
        return json.dumps(doc.to_wire(), indent=2, ensure_ascii=False)

    def export_sessions_csv(self, sessions: Optional[Iterable[WorkoutSession]] = None) -> str:
        """One row per set. Rows are joined with ``\\n`` and have no trailing newline."""
        if sessions is None:
            sessions = self.store.sessions
        rows = [list(CSV_HEADER)]
        for session in sessions:
            for entry in session.entries:
                for idx, s in enumerate(entry.sets):
                    rows.append(
                        [
                            session.date_iso,
                            session.template_name,
                            entry.exercise_name,
                            str(idx + 1),
                            format_number(s.reps),
                            format_number(s.weight_kg),
                            format_number(set_volume(s)),
                        ]
                    )
        return "\n".join(",".join(csv_escape(v) for v in row) for row in rows)

    def _write(self, filename: str, text: str) -> str:
        os.makedirs(self.export_dir, exist_ok=True)
        path = os.path.join(self.export_dir, filename)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        logger.info("wrote %s", path)
        return path

    def write_json_export(self, doc: Optional[StoreDocument] = None) -> str:
        return self._write(f"workouts-{_stamp()}.json", self.export_json(doc))

    def write_csv_export(self) -> str:
        return self._write(f"workout-sessions-{_stamp()}.csv", self.export_sessions_csv())

    @staticmethod
    def parse_import(text: str) -> StoreDocument:
        try:
            data = json.loads(text)
        except (ValueError, RecursionError):
            raise InvalidImportError(INVALID_JSON_MESSAGE)
        if not isinstance(data, dict):
            raise InvalidImportError(INVALID_SHAPE_MESSAGE)
        if not is_supported_version(data.get("version")) or not all(
            isinstance(data.get(key), list) for key in ("exercises", "templates", "sessions")
        ):
            raise InvalidImportError(INVALID_SHAPE_MESSAGE)
        try:
            return decode_document(data)
        except ValueError as e:
            logger.debug("import failed validation: %s", e)
            raise InvalidImportError(INVALID_SHAPE_MESSAGE) from e

    def import_document(self, text: str, backup: bool = True) -> Optional[str]:
        """Replace the whole document with the contents of ``text``.

        Validation happens before anything is touched; when ``backup`` is set
        the current document is written out as a JSON export first. Returns the
        backup path, if one was written.
        """
        doc = self.parse_import(text)
        backup_path = self.write_json_export(self.store.document) if backup else None
        self.store.replace_document(doc)
        logger.info("import complete")
        return backup_path
