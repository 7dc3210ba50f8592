from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
import uuid

from medtrack.models.medication import PRESET_TIMES, Medication, MedicationSchedule, Reminder

DUE_WINDOW = timedelta(minutes=60)
UPCOMING_WINDOW = timedelta(minutes=30)
RETROACTIVE_TAG = "retroactive"


class ReminderStatus(str, Enum):
    COMPLETED = "completed"
    OVERDUE = "overdue"
    DUE = "due"
    UPCOMING = "upcoming"
    SCHEDULED = "scheduled"


def preset_schedule(times_per_day: int = 3, duration: int = 7) -> MedicationSchedule:
    return MedicationSchedule(times_per_day=times_per_day, times=list(PRESET_TIMES[times_per_day]), duration=duration)


def with_times_per_day(schedule: MedicationSchedule, times_per_day: int) -> MedicationSchedule:
    """Change a phase's cadence; its times reset to the preset table."""
    return schedule.model_copy(update={"times_per_day": times_per_day, "times": list(PRESET_TIMES[times_per_day])})


def day_key(day: date) -> str:
    """Calendar-day component of scheduled reminder ids, e.g. 'Sat Oct 17 2026'."""
    return day.strftime("%a %b %d %Y")


def slot_id(medication_id: str, day: date, index: int) -> str:
    return f"{medication_id}-{day_key(day)}-{index}"


def is_retroactive(reminder: Reminder) -> bool:
    return f"-{RETROACTIVE_TAG}-" in reminder.id


def at_clock(day: date, clock: str) -> datetime:
    # "24:00" lands on midnight of the following day
    hh, mm = clock.split(":")
    return datetime.combine(day, time.min) + timedelta(hours=int(hh), minutes=int(mm))


def days_since_start(medication: Medication, day: date) -> int:
    return (day - medication.start_date).days


def resolve_phase(medication: Medication, day: date) -> Optional[MedicationSchedule]:
    """Return the phase active on ``day``, or None once treatment is completed."""
    elapsed = days_since_start(medication, day)
    total = 0
    for phase in medication.schedules:
        if elapsed < total + phase.duration:
            return phase
        total += phase.duration
    return None


def generate_for_day(medication: Medication, day: date, prior: Iterable[Reminder] = ()) -> List[Reminder]:
    """Scheduled reminders of one medication for ``day``, in slot order.

    Completion state is inherited from any prior reminder with the same id.
    """
    if not medication.is_active:
        return []
    phase = resolve_phase(medication, day)
    if phase is None:
        return []
    known = {r.id: r for r in prior}
    out = []
    for index, clock in enumerate(phase.times):
        rid = slot_id(medication.id, day, index)
        previous = known.get(rid)
        out.append(Reminder(
            id=rid,
            medication_id=medication.id,
            scheduled_time=at_clock(day, clock),
            completed=previous.completed if previous else False,
            completed_at=previous.completed_at if previous else None,
        ))
    return out


def belongs_to_day(reminder: Reminder, day: date) -> bool:
    """Whether a reminder's id was issued for ``day``.

    A "24:00" slot is scheduled at the next midnight but still belongs to the
    day that generated it.
    """
    return reminder.id.startswith(f"{reminder.medication_id}-{day_key(day)}-")


def reminders_for_day(medications: Iterable[Medication], day: date, reminders: Iterable[Reminder]) -> List[Reminder]:
    """Consolidated view of ``day`` across medications.

    Generated slots of active medications are merged with their persisted
    reminders for ``day`` that are not regenerated (retroactive entries).
    Sorted by scheduled time, ties broken by medication id.
    """
    meds = list(medications)
    persisted = list(reminders)
    out: List[Reminder] = []
    for m in meds:
        out.extend(generate_for_day(m, day, persisted))
    generated = {r.id for r in out}
    active = {m.id for m in meds if m.is_active}
    for r in persisted:
        if r.id in generated or r.medication_id not in active:
            continue
        if belongs_to_day(r, day):
            out.append(r)
    out.sort(key=lambda r: (r.scheduled_time, r.medication_id))
    return out


def reminders_scheduled_on(medications: Iterable[Medication], day: date, reminders: Iterable[Reminder]) -> List[Reminder]:
    """Reminders whose scheduled time falls on ``day``, including the
    previous day's end-of-day slots."""
    meds = list(medications)
    persisted = list(reminders)
    carried = [
        r for r in reminders_for_day(meds, day - timedelta(days=1), persisted)
        if r.scheduled_time.date() == day
    ]
    todays = [r for r in reminders_for_day(meds, day, persisted) if r.scheduled_time.date() == day]
    out = carried + todays
    out.sort(key=lambda r: (r.scheduled_time, r.medication_id))
    return out


def classify(reminder: Reminder, now: datetime) -> ReminderStatus:
    if reminder.completed:
        return ReminderStatus.COMPLETED
    diff = now - reminder.scheduled_time
    if diff > DUE_WINDOW:
        return ReminderStatus.OVERDUE
    if diff >= timedelta(0):
        return ReminderStatus.DUE
    if diff >= -UPCOMING_WINDOW:
        return ReminderStatus.UPCOMING
    return ReminderStatus.SCHEDULED


def minutes_late(reminder: Reminder, now: datetime) -> int:
    return max(int((now - reminder.scheduled_time).total_seconds() // 60), 0)


def set_completed(reminders: List[Reminder], reminder: Reminder, completed: bool, now: datetime) -> List[Reminder]:
    """Return a new collection with ``reminder`` marked (un)completed.

    A slot that was never persisted is inserted with its own scheduled time.
    """
    out = []
    found = False
    for r in reminders:
        if r.id == reminder.id:
            out.append(r.with_completion(completed, now))
            found = True
        else:
            out.append(r)
    if not found:
        out.append(reminder.with_completion(completed, now))
    return out


def log_retroactive_dose(
    reminders: List[Reminder], medication: Medication, now: datetime, clock_time: Optional[str] = None
) -> Tuple[List[Reminder], Reminder]:
    """Record a dose taken outside any scheduled slot."""
    today = now.date()
    scheduled = at_clock(today, clock_time) if clock_time else now
    entry = Reminder(
        id=f"{medication.id}-{day_key(today)}-{RETROACTIVE_TAG}-{uuid.uuid4().hex[:12]}",
        medication_id=medication.id,
        scheduled_time=scheduled,
        completed=True,
        completed_at=now,
    )
    return reminders + [entry], entry


def day_completion(day_reminders: List[Reminder]) -> Dict[str, float]:
    completed = sum(1 for r in day_reminders if r.completed)
    total = len(day_reminders)
    return {"completed": completed, "total": total, "percentage": 100.0 * completed / total if total else 0.0}


def treatment_progress(medication: Medication, today: date) -> Dict:
    """Progress through the whole plan, for the medication list."""
    elapsed = days_since_start(medication, today)
    total = medication.total_duration
    return {
        "phase": resolve_phase(medication, today),
        "days_since_start": elapsed,
        "total_duration": total,
        "remaining_days": max(total - elapsed, 0),
        "progress_pct": max(min(100.0 * elapsed / total, 100.0), 0.0) if total else 100.0,
    }
