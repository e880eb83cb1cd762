"""Session window for the Stempeluhr time tracker.

The ``SessionWindow`` lists every recorded session with its date, start
and end time, worked hours and number of pauses.  Users can correct or
delete entries, add sessions they forgot to clock, export the list as CSV,
toggle the full-hour reminder and look at a chart of their daily hours.
All changes go through :class:`~stempeluhr.service.TimeTracker` and are
written to ``timetracker.json`` immediately.

Rows are addressed by their position in the file, so the list is reloaded
after every change before another edit can be made.
"""
from __future__ import annotations

import logging
from datetime import datetime
from tkinter import filedialog, messagebox
from typing import Callable, Optional

import customtkinter as ctk
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

from stempeluhr.analytics import hours_figure, summarize
from stempeluhr.export import export_csv
from stempeluhr.models import Session
from stempeluhr.service import TimeTracker
from stempeluhr.utils import (
    format_duration,
    format_hours,
    format_signed_duration,
    local_datetime,
    manual_session,
    parse_span,
)


logger = logging.getLogger(__name__)


class SessionWindow(ctk.CTkToplevel):
    """A toplevel window for reviewing and editing recorded sessions."""

    def __init__(self, parent: ctk.CTk, service: TimeTracker, on_change: Optional[Callable[[], None]] = None) -> None:
        super().__init__(parent)
        self.title("Stempeluhr - Zeiten")
        self.geometry("900x650")
        self.resizable(True, True)

        self.service = service
        self.on_change = on_change
        self.canvas: Optional[FigureCanvasTkAgg] = None

        self._build_summary()
        self._build_session_list()
        self._build_actions()
        self._build_chart_area()
        self.refresh_sessions()

    def _build_summary(self) -> None:
        frame = ctk.CTkFrame(self)
        frame.pack(fill="x", padx=10, pady=5)
        self.current_label = ctk.CTkLabel(frame, text="", font=ctk.CTkFont(size=16, weight="bold"))
        self.current_label.pack(side="left", padx=10)
        self.summary_label = ctk.CTkLabel(frame, text="", anchor="w")
        self.summary_label.pack(side="left", padx=10)

    def _build_session_list(self) -> None:
        """Create the scrollable frame that will hold session rows."""
        self.list_frame = ctk.CTkScrollableFrame(self)
        self.list_frame.pack(fill="both", expand=True, padx=10, pady=5)

        header = ctk.CTkFrame(self.list_frame)
        header.pack(fill="x", pady=2)
        for text, width in [("Datum", 100), ("Start", 90), ("Ende", 90), ("Dauer", 110), ("Pausen", 70)]:
            ctk.CTkLabel(header, text=text, anchor="w", width=width).pack(side="left")
        ctk.CTkLabel(header, text="Aktionen", width=140).pack(side="left")

    def _build_actions(self) -> None:
        frame = ctk.CTkFrame(self)
        frame.pack(fill="x", padx=10, pady=5)
        ctk.CTkButton(frame, text="Zeit nachtragen", command=self._open_new_dialog).pack(side="left", padx=5)
        ctk.CTkButton(frame, text="CSV exportieren", command=self._export).pack(side="left", padx=5)
        ctk.CTkButton(frame, text="Diagramm", command=self.refresh_chart).pack(side="left", padx=5)

        self.notify_var = ctk.BooleanVar(value=self.service.get_sessions().notify_on_hour)
        ctk.CTkCheckBox(
            frame,
            text="Zur vollen Stunde erinnern",
            variable=self.notify_var,
            command=self._toggle_notify,
        ).pack(side="right", padx=5)

    def _build_chart_area(self) -> None:
        self.chart_frame = ctk.CTkFrame(self, height=0)
        self.chart_frame.pack(fill="both", expand=False, padx=10, pady=5)

    # --- Refreshing ---
    def refresh_sessions(self) -> None:
        """Reload the data file and rebuild the rows (newest first)."""
        for widget in self.list_frame.winfo_children()[1:]:
            widget.destroy()
        sessions = self.service.get_sessions().sessions
        for index in reversed(range(len(sessions))):
            self._add_session_row(index, sessions[index])
        self._refresh_summary(sessions)
        self.refresh_current()

    def refresh_current(self) -> None:
        """Update the live counter; called by the host every second."""
        current = self.service.get_current_session()
        if not current.active:
            text = "Nicht gestartet"
        elif current.is_paused:
            text = f"Pausiert - {format_duration(current.duration)}"
        else:
            text = f"Läuft - {format_duration(current.duration)}"
        self.current_label.configure(text=text)

    def _refresh_summary(self, sessions: list[Session]) -> None:
        summary = summarize(sessions)
        self.summary_label.configure(
            text=(
                f"Heute: {format_duration(summary.today_ms)}   "
                f"Woche: {format_duration(summary.week_ms)}   "
                f"Überstunden: {format_signed_duration(summary.overtime_ms)} "
                f"({summary.workdays} Arbeitstage)"
            )
        )

    def refresh_chart(self) -> None:
        fig = hours_figure(self.service.get_sessions().sessions)
        if self.canvas:
            self.canvas.get_tk_widget().destroy()
        self.canvas = FigureCanvasTkAgg(fig, master=self.chart_frame)
        self.canvas.draw()
        self.canvas.get_tk_widget().pack(fill="both", expand=True)

    def _add_session_row(self, index: int, session: Session) -> None:
        frame = ctk.CTkFrame(self.list_frame)
        frame.pack(fill="x", pady=1)
        start = local_datetime(session.start)
        end = local_datetime(session.end)
        values = [
            (start.strftime("%d.%m.%Y"), 100),
            (start.strftime("%H:%M:%S"), 90),
            (end.strftime("%H:%M:%S"), 90),
            (f"{format_hours(session.duration)} h", 110),
            (str(len(session.pauses)), 70),
        ]
        for text, width in values:
            ctk.CTkLabel(frame, text=text, anchor="w", width=width).pack(side="left")
        action_frame = ctk.CTkFrame(frame)
        action_frame.pack(side="left", padx=5)
        ctk.CTkButton(action_frame, text="Bearbeiten", width=70,
                      command=lambda i=index, s=session: self._open_edit_dialog(i, s)).pack(side="left", padx=2)
        ctk.CTkButton(action_frame, text="Löschen", width=60, fg_color="#c72626", hover_color="#d23b3b",
                      command=lambda i=index: self._delete_session(i)).pack(side="left", padx=2)

    # --- Actions ---
    def _changed(self) -> None:
        self.refresh_sessions()
        if self.on_change is not None:
            self.on_change()

    def _delete_session(self, index: int) -> None:
        if not messagebox.askyesno("Löschen", "Diesen Eintrag wirklich löschen?", parent=self):
            return
        self.service.delete_session(index)
        self._changed()

    def _toggle_notify(self) -> None:
        self.service.set_notify_on_hour(self.notify_var.get())
        if self.on_change is not None:
            self.on_change()

    def _export(self) -> None:
        path = filedialog.asksaveasfilename(
            parent=self,
            defaultextension=".csv",
            initialfile=f"arbeitszeiten-{datetime.now().strftime('%Y-%m-%d')}.csv",
            filetypes=[("CSV", "*.csv")],
        )
        if not path:
            return
        if export_csv(self.service.get_sessions().sessions, path) is None:
            messagebox.showerror("Export", f"Die Datei konnte nicht geschrieben werden:\n{path}", parent=self)

    def _open_new_dialog(self) -> None:
        self._open_edit_dialog(None, None)

    def _open_edit_dialog(self, index: Optional[int], session: Optional[Session]) -> None:
        """Open a dialog for correcting a session or entering a new one."""
        dlg = ctk.CTkToplevel(self)
        dlg.title("Zeit nachtragen" if session is None else "Eintrag bearbeiten")
        dlg.geometry("420x260")
        dlg.resizable(False, False)

        if session is not None:
            start = local_datetime(session.start)
            defaults = {
                "day": start.strftime("%d.%m.%Y"),
                "start": start.strftime("%H:%M:%S"),
                "end": local_datetime(session.end).strftime("%H:%M:%S"),
                "pause": f"{session.pause_time / 60_000:.15g}",
            }
        else:
            defaults = {"day": datetime.now().strftime("%d.%m.%Y"), "start": "", "end": "", "pause": "0"}

        entries: dict[str, ctk.CTkEntry] = {}
        for label, key in [
            ("Datum (TT.MM.JJJJ)", "day"),
            ("Start (HH:MM[:SS])", "start"),
            ("Ende (HH:MM[:SS])", "end"),
            ("Pause (Minuten)", "pause"),
        ]:
            row = ctk.CTkFrame(dlg)
            row.pack(fill="x", padx=10, pady=2)
            ctk.CTkLabel(row, text=label, width=160, anchor="w").pack(side="left")
            ent = ctk.CTkEntry(row)
            ent.pack(side="left", fill="x", expand=True)
            ent.insert(0, defaults[key])
            entries[key] = ent

        def save() -> None:
            values = {k: v.get().strip() for k, v in entries.items()}
            try:
                start_dt, end_dt = parse_span(values["day"], values["start"], values["end"])
                new_session = manual_session(
                    start_dt,
                    end_dt,
                    float(values["pause"].replace(",", ".") or 0),
                    session.pauses if session is not None else None,
                )
            except ValueError as exc:
                messagebox.showerror("Ungültige Eingabe", str(exc), parent=dlg)
                return
            if session is not None:
                new_session.extra = dict(session.extra)
            if index is None:
                self.service.add_session(new_session)
            else:
                self.service.update_session(index, new_session)
            dlg.destroy()
            self._changed()

        ctk.CTkButton(dlg, text="Speichern", command=save).pack(pady=10)
