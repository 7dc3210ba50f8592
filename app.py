from datetime import datetime

import streamlit as st
import plotly.express as px

from medtrack.config import configure_logging, get_settings
from medtrack.utils.adherence import (
    WINDOW_PRESETS, adherence_band, aggregate, medication_counts, trailing_breakdown, window_start,
)
from medtrack.utils.medications import add_medication, delete_medication, toggle_medication
from medtrack.utils.notifications import QueuedNotifier
from medtrack.utils.parsers import InvalidInput
from medtrack.utils.reminders import (
    PRESET_TIMES, ReminderStatus, classify, day_completion, log_retroactive_dose, minutes_late,
    preset_schedule, reminders_for_day, set_completed, treatment_progress, with_times_per_day,
)
from medtrack.utils.storage import FileStore, ImportRejected, StorageService, export_medications, import_medications
from medtrack.utils.ticker import ReminderTicker

settings = get_settings()
configure_logging(settings.log_level)
st.set_page_config(page_title="MedTrack", layout="wide")

STATUS_ICONS = {
    ReminderStatus.COMPLETED: "✅",
    ReminderStatus.OVERDUE: "🔴",
    ReminderStatus.DUE: "🟠",
    ReminderStatus.UPCOMING: "🔵",
    ReminderStatus.SCHEDULED: "⚪",
}

# --- Shared runtime: one store, notifier and ticker for every browser session ---
@st.cache_resource
def get_runtime():
    storage = StorageService(FileStore(settings.data_dir))
    notifier = QueuedNotifier()
    if not notifier.request_permission():
        st.warning("Notification permission not granted")
    ticker = ReminderTicker(notifier, storage.load_reminders, interval=settings.tick_seconds)
    ticker.start(storage.load_medications())
    return storage, notifier, ticker


storage, notifier, ticker = get_runtime()

# --- Session State ---
# collections are re-read every run so each session sees other sessions' changes
st.session_state.meds = storage.load_medications()
st.session_state.reminders = storage.load_reminders()

if "draft_schedules" not in st.session_state:
    st.session_state.draft_schedules = [preset_schedule()]


def publish_meds(meds):
    st.session_state.meds = meds
    storage.save_medications(meds)
    ticker.restart(meds)


def publish_reminders(reminders):
    st.session_state.reminders = reminders
    storage.save_reminders(reminders)


st.title("💧 MedTrack — Eye Drop Reminders")

tab1, tab2, tab3 = st.tabs(["Today", "Medications", "Statistics"])

# --- Tab 1: Today ---
with tab1:
    @st.fragment(run_every=f"{settings.tick_seconds}s")
    def today_view():
        for title, body in notifier.drain():
            st.toast(f"**{title}** — {body}", icon="⏰")
        alert = notifier.current_alert()
        if alert is not None:
            st.error(f"⏰ Medication Alert: {alert.message}")
            if st.button("Stop Alarm", key="stop-alarm"):
                alert.dismiss()
                st.rerun()

        now = datetime.now()
        todays = reminders_for_day(st.session_state.meds, now.date(), st.session_state.reminders)
        if not todays:
            st.info("No reminders for today. Add medications to see your daily reminders.")
            return

        stats = day_completion(todays)
        st.metric("Completed today", f"{stats['completed']}/{stats['total']}")
        st.progress(int(stats["percentage"]))
        st.caption(f"{round(stats['percentage'])}% adherence rate for today")

        by_id = {m.id: m for m in st.session_state.meds}
        for r in todays:
            med = by_id[r.medication_id]
            status = classify(r, now)
            c1, c2, c3 = st.columns([1, 5, 2])
            with c1:
                done = st.checkbox(STATUS_ICONS[status], value=r.completed, key=f"done-{r.id}")
                if done != r.completed:
                    publish_reminders(set_completed(st.session_state.reminders, r, done, datetime.now()))
                    st.rerun()
            with c2:
                st.markdown(f"**{med.name}** — {med.drops_per_dose} drop(s) • {r.scheduled_time:%H:%M}")
                if r.completed and r.completed_at:
                    st.caption(f"✓ Completed at {r.completed_at:%H:%M}")
            with c3:
                st.write(status.value.capitalize())
                if status is ReminderStatus.OVERDUE:
                    st.caption(f"{minutes_late(r, now)} min late")

    today_view()

    st.subheader("Missed a dose?")
    active = {m.id: m for m in st.session_state.meds if m.is_active}
    if active:
        choice = active[st.selectbox("Select medication", list(active), format_func=lambda i: active[i].name, key="retro-med")]
        use_time = st.checkbox("Taken at a specific time", key="retro-use-time")
        taken_at = st.time_input("Time taken", key="retro-time") if use_time else None
        if st.button("Record Now"):
            clock = taken_at.strftime("%H:%M") if taken_at else None
            reminders, entry = log_retroactive_dose(st.session_state.reminders, choice, datetime.now(), clock)
            publish_reminders(reminders)
            st.success(f"Recorded {choice.name} at {entry.scheduled_time:%H:%M}")

# --- Tab 2: Medications ---
with tab2:
    st.header("Your Medications")
    today = datetime.now().date()
    if not st.session_state.meds:
        st.info('No medications added. Use "Add Medication" below to create your first reminder.')
    for med in st.session_state.meds:
        prog = treatment_progress(med, today)
        phase = prog["phase"]
        info = "Treatment completed" if phase is None else \
            f"{phase.times_per_day}x daily • {prog['remaining_days']} days left"
        c1, c2, c3 = st.columns([5, 1, 1])
        with c1:
            st.markdown(f"**{med.name}** ({'active' if med.is_active else 'paused'}) — {info}")
            st.progress(int(prog["progress_pct"]))
            if med.notes:
                st.caption(med.notes)
        with c2:
            if st.button("Pause" if med.is_active else "Resume", key=f"toggle-{med.id}"):
                publish_meds(toggle_medication(st.session_state.meds, med.id))
                st.rerun()
        with c3:
            if st.button("Delete", key=f"delete-{med.id}"):
                meds, reminders = delete_medication(st.session_state.meds, st.session_state.reminders, med.id)
                publish_meds(meds)
                publish_reminders(reminders)
                st.rerun()

    st.subheader("Add Medication")
    name = st.text_input("Medication name", placeholder="e.g., Refresh Eye Drops")
    drops = st.number_input("Drops per dose", min_value=1, max_value=10, value=1)
    start = st.date_input("Start date", today)
    notes = st.text_area("Notes (optional)")

    drafts = st.session_state.draft_schedules
    for i, sched in enumerate(drafts):
        st.markdown(f"*Phase {i + 1}*")
        cols = st.columns(3)
        n = cols[0].selectbox("Times per day", list(PRESET_TIMES), index=sched.times_per_day - 1, key=f"tpd-{i}")
        if n != sched.times_per_day:
            drafts[i] = sched = with_times_per_day(sched, n)
        sched.duration = cols[1].number_input("Duration (days)", 1, 365, sched.duration, key=f"dur-{i}")
        times = cols[2].text_input("Times (HH:MM, comma separated)", ", ".join(sched.times), key=f"times-{i}-{n}")
        sched.times = [t.strip() for t in times.split(",") if t.strip()]
    b1, b2 = st.columns(2)
    if b1.button("Add phase"):
        drafts.append(preset_schedule())
        st.rerun()
    if b2.button("Remove last phase") and len(drafts) > 1:
        drafts.pop()
        st.rerun()

    if st.button("Add Medication", type="primary"):
        form = {
            "name": name, "drops_per_dose": drops, "start_date": start, "notes": notes,
            "schedules": [s.model_dump() for s in drafts],
        }
        try:
            publish_meds(add_medication(st.session_state.meds, form, datetime.now()))
            st.session_state.draft_schedules = [preset_schedule()]
            st.success(f"Added {name.strip()}")
        except InvalidInput as e:
            st.error(str(e))

    st.subheader("Export / Import")
    st.download_button(
        "Export medications", export_medications(st.session_state.meds),
        file_name=f"medications_{today}.json", mime="application/json",
    )
    up = st.file_uploader("Import medications (JSON)", type=["json"])
    if up is not None and st.button("Replace medications with import"):
        try:
            publish_meds(import_medications(up.read().decode("utf-8", errors="ignore")))
            st.success("Imported medications.")
        except ImportRejected as e:
            st.error(f"Import rejected: {e}")

# --- Tab 3: Statistics ---
with tab3:
    st.header("Adherence Statistics")
    period = st.selectbox("Period", list(WINDOW_PRESETS), format_func=lambda p: {
        "week": "Last 7 days", "month": "Last 30 days", "all": "All time"}[p])
    now = datetime.now()
    stats = aggregate(st.session_state.reminders, window_start(period, now), now.date())
    counts = medication_counts(st.session_state.meds)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Adherence", f"{stats['adherence_rate']:.0f}%", adherence_band(stats["adherence_rate"]))
    c2.metric("Streak", f"{stats['streak_days']} days")
    c3.metric("Doses taken", f"{stats['completed_reminders']}/{stats['total_reminders']}")
    c4.metric("Active medications", f"{counts['active']}/{counts['total']}")

    chart = trailing_breakdown(stats["daily_breakdown"], settings.chart_days)
    if chart.empty:
        st.info("No reminder history yet.")
    else:
        chart["band"] = chart["rate"].apply(adherence_band)
        fig = px.bar(chart, x="day", y="rate", color="band", range_y=[0, 100],
                     hover_data=["completed", "total"], title="Daily Adherence",
                     color_discrete_map={"good": "green", "fair": "gold", "poor": "red"})
        st.plotly_chart(fig, use_container_width=True)
        st.dataframe(chart, use_container_width=True)
