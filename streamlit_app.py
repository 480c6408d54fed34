import datetime
import os

import altair as alt
import pandas as pd
import streamlit as st

from config import configure_logging
from db import STORAGE_KEY, DocumentRepository, SettingsRepository
from export_service import ExportService, InvalidImportError
from models import MAX_SETS_PLANNED, MIN_SETS_PLANNED
from planner_service import PlannerService
from stats_service import StatisticsService, session_volume, set_volume
from tools import (
    MathTools,
    format_kg,
    format_number,
    round_half_up,
    sort_by_name,
    today_iso_date,
    uid,
)
from workout_store import WorkoutStore

TABS = ["Track", "Templates", "Exercises", "Progress", "Export"]


class GymApp:
    """Streamlit application for workout logging."""

    def __init__(
        self, db_path: str = "workout.db", yaml_path: str = "settings.yaml"
    ) -> None:
        self.settings_repo = SettingsRepository(db_path, yaml_path)
        configure_logging(self.settings_repo.get_text("log_level", "INFO"))
        self.chart_window = self.settings_repo.get_int("chart_window", 10)
        self.seed_on_first_run = self.settings_repo.get_bool("seed_on_first_run", True)
        self.backup_on_import = self.settings_repo.get_bool("backup_on_import", True)
        self.export_dir = self.settings_repo.get_text("export_dir", ".")
        self.store = WorkoutStore(
            DocumentRepository(
                db_path, self.settings_repo.get_text("storage_key", STORAGE_KEY)
            ),
            seed=self.seed_on_first_run,
        )
        self.planner = PlannerService(self.store)
        self.stats = StatisticsService(self.store, self.chart_window)
        self.exporter = ExportService(self.store, self.export_dir)
        self._state_init()

    def _state_init(self) -> None:
        if "session_draft" not in st.session_state:
            st.session_state.session_draft = None
        if "template_editor" not in st.session_state:
            st.session_state.template_editor = {"id": None, "name": "", "rows": []}

    def _flash(self, message: str) -> None:
        st.session_state.flash = message

    def _show_flash(self) -> None:
        message = st.session_state.pop("flash", None)
        if message:
            st.success(message)

    def _line_chart(
        self,
        data: dict[str, list],
        x: list[str],
        *,
        x_label: str = "x",
        y_label: str = "value",
    ) -> None:
        """Render a consistent line chart with accessible labels."""
        df = pd.DataFrame({"x": x})
        for key, values in data.items():
            df[key] = values
        long_df = df.melt("x", var_name="series", value_name="value")
        chart = (
            alt.Chart(long_df)
            .mark_line(point=True)
            .encode(
                x=alt.X("x", title=x_label, sort=None),
                y=alt.Y("value", title=y_label),
                color=alt.Color(
                    "series",
                    scale=alt.Scale(scheme="dark2"),
                    legend=None if len(data) == 1 else alt.Legend(title="Series"),
                ),
            )
        )
        st.altair_chart(chart, use_container_width=True)

    def _metric_grid(self, metrics: list[tuple[str, str]]) -> None:
        cols = st.columns(len(metrics))
        for col, (label, val) in zip(cols, metrics):
            col.metric(label, val)

    def run(self) -> None:
        st.title("Workout Logger")
        self._show_flash()
        track_tab, templates_tab, exercises_tab, progress_tab, export_tab = st.tabs(TABS)
        with track_tab:
            self._track_tab()
        with templates_tab:
            self._templates_tab()
        with exercises_tab:
            self._exercises_tab()
        with progress_tab:
            self._progress_tab()
        with export_tab:
            self._export_tab()
            self._settings_panel()

    # track

    def _track_tab(self) -> None:
        templates = sort_by_name(self.store.templates)
        if not templates:
            st.info("Create a template first.")
            return
        draft = st.session_state.session_draft
        if draft is None:
            names = {t.id: t.name for t in templates}
            template_id = st.selectbox(
                "Workout template",
                list(names),
                format_func=names.get,
                key="track_template",
            )
            day = st.date_input(
                "Date",
                value=datetime.date.fromisoformat(today_iso_date()),
                key="track_date",
            )
            if st.button("Start session", key="start_session"):
                st.session_state.session_draft = self.planner.start_session_from_template(
                    template_id, day.isoformat()
                )
                st.rerun()
            self._last_session_summary()
            return
        self._draft_form(draft)

    def _draft_form(self, draft) -> None:
        st.subheader(f"{draft.template_name} · {draft.date_iso}")
        st.caption("Prefills from last session")
        for i, entry in enumerate(draft.entries):
            st.markdown(f"**{entry.exercise_name}** · target {entry.target_reps or '—'}")
            for j, s in enumerate(entry.sets):
                cols = st.columns(2)
                reps = cols[0].text_input(
                    f"Set {j + 1} reps", value=s.reps, key=f"d_{draft.id}_{i}_{j}_reps"
                )
                weight = cols[1].text_input(
                    f"Set {j + 1} kg", value=s.weight_kg, key=f"d_{draft.id}_{i}_{j}_kg"
                )
                if reps != s.reps:
                    draft = self.planner.update_draft_set(draft, i, j, "reps", reps)
                if weight != s.weight_kg:
                    draft = self.planner.update_draft_set(draft, i, j, "weight_kg", weight)
        comment = st.text_area("Comment", value=draft.comment, key=f"d_{draft.id}_comment")
        draft = draft.model_copy(update={"comment": comment})
        st.session_state.session_draft = draft
        cols = st.columns(2)
        if cols[0].button("Save session", key="save_session"):
            session = self.planner.save_draft(draft)
            st.session_state.session_draft = None
            self._flash(f"Saved {session.template_name} on {session.date_iso}")
            st.rerun()
        if cols[1].button("Discard", key="discard_session"):
            st.session_state.session_draft = None
            st.rerun()

    def _last_session_summary(self) -> None:
        summary = self.stats.last_session_summary()
        if summary is None:
            return
        session = summary["session"]
        st.markdown(f"**Your last session** · {session.template_name} · {session.date_iso}")
        st.write(f"Total volume: {round_half_up(summary['total'])} kg·reps")
        for ex in summary["per_exercise"][:4]:
            st.write(
                f"{ex['exercise_name']}: top {format_kg(ex['top_weight_kg'])} kg × "
                f"{format_number(ex['top_reps'])}, volume {round_half_up(ex['volume'])}"
            )
        extra = len(summary["per_exercise"]) - 4
        if extra > 0:
            st.caption(f"+{extra} more exercises")

    # templates

    def _templates_tab(self) -> None:
        for tpl in sort_by_name(self.store.templates):
            cols = st.columns([3, 1, 1, 1])
            cols[0].write(f"{tpl.name} ({len(tpl.exercise_rows)} exercises)")
            if cols[1].button("Edit", key=f"edit_tpl_{tpl.id}"):
                st.session_state.template_editor = {
                    "id": tpl.id,
                    "name": tpl.name,
                    "rows": [r.model_dump() for r in tpl.exercise_rows],
                }
                st.rerun()
            confirm = cols[2].checkbox("Confirm", key=f"confirm_del_tpl_{tpl.id}")
            if cols[3].button("Delete", key=f"del_tpl_{tpl.id}", disabled=not confirm):
                count = len(self.stats.template_sessions(tpl.id))
                self.store.delete_template(tpl.id)
                self._flash(f"Deleted {tpl.name} and {count} session(s)")
                st.rerun()
        self._template_editor()

    def _template_editor(self) -> None:
        editor = st.session_state.template_editor
        suffix = editor["id"] or "new"
        st.subheader("Edit template" if editor["id"] else "New template")
        name = st.text_input("Template name", value=editor["name"], key=f"template_name_{suffix}")
        for idx, row in enumerate(editor["rows"]):
            exercise = self.store.get_exercise(row["exercise_id"])
            cols = st.columns([4, 1])
            cols[0].write(
                f"{exercise.name if exercise else '(deleted)'}: "
                f"{row['sets_planned']} × {row['target_reps'] or '—'}"
            )
            if cols[1].button("Remove", key=f"rm_row_{suffix}_{idx}"):
                editor["rows"].pop(idx)
                st.rerun()
        exercises = sort_by_name(self.store.exercises)
        if exercises:
            cols = st.columns(3)
            names = {e.id: e.name for e in exercises}
            exercise_id = cols[0].selectbox(
                "Exercise", list(names), format_func=names.get, key="row_exercise"
            )
            sets_planned = cols[1].number_input(
                "Sets",
                min_value=MIN_SETS_PLANNED,
                max_value=MAX_SETS_PLANNED,
                value=3,
                key="row_sets",
            )
            target = cols[2].text_input("Target reps", value="8-10", key="row_target")
            if st.button("Add row", key="add_row"):
                editor["rows"].append(
                    {
                        "id": uid(),
                        "exercise_id": exercise_id,
                        "sets_planned": MathTools.clamp_int(
                            sets_planned, MIN_SETS_PLANNED, MAX_SETS_PLANNED
                        ),
                        "target_reps": target.strip(),
                    }
                )
                st.rerun()
        if st.button("Save template", key="save_template"):
            if not name.strip():
                st.warning("Template name is required")
                return
            saved = self.store.upsert_template(
                name.strip(), editor["rows"], template_id=editor["id"]
            )
            st.session_state.pop(f"template_name_{suffix}", None)
            st.session_state.template_editor = {"id": None, "name": "", "rows": []}
            self._flash(f"Saved template {saved.name}")
            st.rerun()

    # exercises

    def _exercises_tab(self) -> None:
        name = st.text_input("Exercise name", key="exercise_name")
        notes = st.text_input("Notes", key="exercise_notes")
        if st.button("Add exercise", key="add_exercise"):
            if not name.strip():
                st.warning("Exercise name is required")
            else:
                created = self.store.upsert_exercise(name, notes=notes.strip() or None)
                self._flash(f"Added {created.name}")
                st.rerun()
        for ex in sort_by_name(self.store.exercises):
            with st.expander(ex.name):
                new_name = st.text_input("Name", value=ex.name, key=f"ex_name_{ex.id}")
                new_notes = st.text_input("Notes", value=ex.notes or "", key=f"ex_notes_{ex.id}")
                cols = st.columns(2)
                if cols[0].button("Save", key=f"save_ex_{ex.id}") and new_name.strip():
                    self.store.upsert_exercise(
                        new_name, exercise_id=ex.id, notes=new_notes.strip() or None
                    )
                    st.rerun()
                if cols[1].button("Delete", key=f"del_ex_{ex.id}"):
                    self.store.delete_exercise(ex.id)
                    self._flash(f"Deleted {ex.name}")
                    st.rerun()

    # progress

    def _progress_tab(self) -> None:
        templates = sort_by_name(self.store.templates)
        if not templates:
            st.info("No templates")
            return
        names = {t.id: t.name for t in templates}
        template_id = st.selectbox(
            "Workout template", list(names), format_func=names.get, key="progress_template"
        )
        summary = self.stats.progress_summary(template_id)
        self._metric_grid(
            [
                ("Sessions", str(summary["sessions"])),
                ("Last session date", summary["last_date"] or "—"),
                ("Latest volume", str(summary["latest_volume"])),
                (f"Avg volume (last {self.stats.window})", str(summary["avg_volume"])),
            ]
        )
        points = self.stats.volume_points(template_id)
        if points:
            self._line_chart(
                {"Total volume": [v for _l, v in points]},
                [label for label, _v in points],
                x_label="Date",
                y_label="kg·reps",
            )
        exercises = self.stats.template_exercises(template_id)
        if exercises:
            ex_names = {e.id: e.name for e in exercises}
            exercise_id = st.selectbox(
                "Exercise", list(ex_names), format_func=ex_names.get, key="progress_exercise"
            )
            ex_points = self.stats.exercise_points(template_id, exercise_id)
            if ex_points:
                labels = [p["label"] for p in ex_points]
                self._line_chart(
                    {"Top weight": [p["top_weight_kg"] for p in ex_points]},
                    labels,
                    x_label="Date",
                    y_label="kg",
                )
                self._line_chart(
                    {"Volume": [p["volume"] for p in ex_points]},
                    labels,
                    x_label="Date",
                    y_label="kg·reps",
                )
        for session in self.stats.template_sessions(template_id):
            title = f"{session.date_iso} · {round_half_up(session_volume(session))} kg·reps"
            with st.expander(title):
                rows = [
                    {
                        "exercise": entry.exercise_name,
                        "set": idx + 1,
                        "reps": "—" if s.reps is None else format_number(s.reps),
                        "kg": "—" if s.weight_kg is None else format_kg(s.weight_kg),
                        "volume": format_number(set_volume(s)),
                    }
                    for entry in session.entries
                    for idx, s in enumerate(entry.sets)
                ]
                if rows:
                    st.dataframe(pd.DataFrame(rows), hide_index=True)
                comment = st.text_input(
                    "Comment", value=session.comment or "", key=f"comment_{session.id}"
                )
                cols = st.columns(2)
                if cols[0].button("Save comment", key=f"save_comment_{session.id}"):
                    self.store.update_session(
                        session.id,
                        lambda s: s.model_copy(update={"comment": comment.strip() or None}),
                    )
                    st.rerun()
                if cols[1].button("Delete session", key=f"del_session_{session.id}"):
                    self.store.delete_session(session.id)
                    self._flash(f"Deleted session on {session.date_iso}")
                    st.rerun()

    # export

    def _export_tab(self) -> None:
        st.caption("All data lives in the local database on this device.")
        stamp = today_iso_date()
        st.download_button(
            "Export JSON",
            self.exporter.export_json(),
            file_name=f"workouts-{stamp}.json",
            mime="application/json",
            key="export_json",
        )
        st.download_button(
            "Export sessions CSV",
            self.exporter.export_sessions_csv(),
            file_name=f"workout-sessions-{stamp}.csv",
            mime="text/csv",
            key="export_csv",
        )
        upload = st.file_uploader("Import JSON", type=["json"], key="import_file")
        confirm = st.checkbox(
            "Import will REPLACE all current data on this device", key="import_confirm"
        )
        if st.button("Import", key="import_button", disabled=upload is None or not confirm):
            try:
                backup = self.exporter.import_document(
                    upload.getvalue().decode("utf-8", errors="replace"), backup=self.backup_on_import
                )
            except InvalidImportError as e:
                st.error(str(e))
                return
            st.session_state.session_draft = None
            self._flash(f"Import complete. Backup: {backup}" if backup else "Import complete.")
            st.rerun()

    def _settings_panel(self) -> None:
        with st.expander("Settings"):
            chart_window = st.number_input(
                "Sessions shown in charts",
                min_value=1,
                max_value=100,
                value=self.chart_window,
                key="setting_chart_window",
            )
            backup = st.checkbox(
                "Export a backup before importing",
                value=self.backup_on_import,
                key="setting_backup_on_import",
            )
            seed = st.checkbox(
                "Add starter exercises to an empty log",
                value=self.seed_on_first_run,
                key="setting_seed_on_first_run",
            )
            export_dir = st.text_input(
                "Backup folder", value=self.export_dir, key="setting_export_dir"
            )
            if st.button("Save settings", key="save_settings"):
                try:
                    self.settings_repo.set_int("chart_window", int(chart_window))
                    self.settings_repo.set_bool("backup_on_import", backup)
                    self.settings_repo.set_bool("seed_on_first_run", seed)
                    self.settings_repo.set_text("export_dir", export_dir.strip() or ".")
                except ValueError as e:
                    st.error(str(e))
                    return
                self._flash("Settings saved")
                st.rerun()


if __name__ == "__main__":
    db_path = os.environ.get("DB_PATH", "workout.db")
    yaml_path = os.environ.get("YAML_PATH", "settings.yaml")
    GymApp(db_path=db_path, yaml_path=yaml_path).run()
