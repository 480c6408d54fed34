import argparse
import datetime
import shutil
import sys

from config import APP_VERSION, configure_logging
from db import DocumentRepository
from export_service import INVALID_JSON_MESSAGE, ExportService, InvalidImportError
from models import SessionExerciseEntry, SetEntry
from stats_service import StatisticsService, session_volume, sort_sessions_desc
from tools import format_number
from workout_store import WorkoutStore


def _store(db_path: str, seed: bool = False) -> WorkoutStore:
    return WorkoutStore(DocumentRepository(db_path), seed=seed)


def export_data(db_path: str, fmt: str, output_dir: str = ".") -> str:
    exporter = ExportService(_store(db_path), output_dir)
    if fmt == "json":
        return exporter.write_json_export()
    return exporter.write_csv_export()


def import_data(file_path: str, db_path: str, backup: bool = True, output_dir: str = ".") -> None:
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            text = f.read()
    except UnicodeDecodeError:
        raise InvalidImportError(INVALID_JSON_MESSAGE)
    ExportService(_store(db_path), output_dir).import_document(text, backup=backup)


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def reset_data(db_path: str) -> None:
    DocumentRepository(db_path).reset()


def recover_corrupt(db_path: str, out_path: str) -> bool:
    """Write the last unreadable stored document to ``out_path``, if one was kept."""
    repo = DocumentRepository(db_path)
    raw = repo.fetch_raw(repo.quarantine_key)
    if raw is None:
        print("No unreadable document has been kept")
        return False
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(raw)
    print(out_path)
    return True


def demo_data(db_path: str) -> None:
    """Populate the document with the starter library and one demo session if empty."""
    repo = DocumentRepository(db_path)
    if repo.load().sessions:
        print("Database already contains sessions")
        return
    store = WorkoutStore(repo, seed=True)
    template = next((t for t in store.templates if t.exercise_rows), None)
    if template is None:
        print("No template with exercises to attach a demo session to")
        return
    row = template.exercise_rows[0]
    exercise = store.get_exercise(row.exercise_id)
    store.add_session(
        date_iso=datetime.date.today().isoformat(),
        template_id=template.id,
        template_name=template.name,
        entries=[
            SessionExerciseEntry(
                exercise_id=exercise.id,
                exercise_name=exercise.name,
                target_reps=row.target_reps,
                sets=[SetEntry(reps=8, weight_kg=60.0), SetEntry(reps=6, weight_kg=65.0)],
            )
        ],
    )
    print("Demo data inserted")


def print_summary(db_path: str, template_name: str | None = None) -> None:
    store = _store(db_path)
    stats = StatisticsService(store)
    for template in store.templates:
        if template_name and template.name != template_name:
            continue
        summary = stats.progress_summary(template.id)
        print(
            f"{template.name}: {summary['sessions']} session(s), "
            f"last {summary['last_date'] or '-'}, "
            f"latest volume {summary['latest_volume']}, "
            f"avg {summary['avg_volume']}"
        )


def print_sessions(db_path: str) -> None:
    store = _store(db_path)
    for session in sort_sessions_desc(store.sessions):
        print(
            f"{session.date_iso}  {session.template_name}  "
            f"{format_number(session_volume(session))} kg*reps"
        )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Workout log utility commands")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default="workout.db")
    exp.add_argument("--fmt", choices=["json", "csv"], default="json")
    exp.add_argument("--out", default=".")

    imp = sub.add_parser("import")
    imp.add_argument("--file", required=True)
    imp.add_argument("--db", default="workout.db")
    imp.add_argument("--out", default=".")
    imp.add_argument("--no-backup", action="store_true")

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default="workout.db")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default="workout.db")

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default="workout.db")

    reset = sub.add_parser("reset")
    reset.add_argument("--db", default="workout.db")

    rec = sub.add_parser("recover")
    rec.add_argument("--db", default="workout.db")
    rec.add_argument("--out", default="recovered.json")

    summ = sub.add_parser("summary")
    summ.add_argument("--db", default="workout.db")
    summ.add_argument("--template")

    sess = sub.add_parser("sessions")
    sess.add_argument("--db", default="workout.db")

    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "WARNING")

    if args.cmd == "export":
        print(export_data(args.db, args.fmt, args.out))
    elif args.cmd == "import":
        try:
            import_data(args.file, args.db, backup=not args.no_backup, output_dir=args.out)
        except InvalidImportError as e:
            print(str(e), file=sys.stderr)
            return 1
        except OSError as e:
            print(f"Could not import {args.file}: {e.strerror or e}", file=sys.stderr)
            return 1
        print("Import complete.")
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "demo":
        demo_data(args.db)
    elif args.cmd == "reset":
        reset_data(args.db)
    elif args.cmd == "recover":
        return 0 if recover_corrupt(args.db, args.out) else 1
    elif args.cmd == "summary":
        print_summary(args.db, args.template)
    elif args.cmd == "sessions":
        print_sessions(args.db)
    return 0


if __name__ == "__main__":
    sys.exit(main())
