from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

import pandas as pd

from medtrack.models.medication import Medication, Reminder

WINDOW_PRESETS = {"week": 7, "month": 30, "all": None}
STREAK_HORIZON_DAYS = 365
EPOCH = datetime(1970, 1, 1)

BREAKDOWN_COLUMNS = ["day", "completed", "total", "rate"]


def window_start(preset: str, now: datetime) -> datetime:
    days = WINDOW_PRESETS[preset]
    return now - timedelta(days=days) if days is not None else EPOCH


def _frame(reminders: Iterable[Reminder]) -> pd.DataFrame:
    rows = [{"scheduled_time": r.scheduled_time, "completed": bool(r.completed)} for r in reminders]
    if not rows:
        return pd.DataFrame(columns=["scheduled_time", "completed", "day"])
    df = pd.DataFrame(rows)
    df["day"] = pd.to_datetime(df["scheduled_time"]).dt.date
    return df


def daily_breakdown(reminders: Iterable[Reminder]) -> pd.DataFrame:
    """Completed and total reminders per calendar day, oldest first."""
    df = _frame(reminders)
    if df.empty:
        return pd.DataFrame(columns=BREAKDOWN_COLUMNS)
    out = (
        df.groupby("day")["completed"]
        .agg(completed="sum", total="count")
        .reset_index()
        .sort_values("day")
    )
    out["completed"] = out["completed"].astype(int)
    out["total"] = out["total"].astype(int)
    out["rate"] = 100.0 * out["completed"] / out["total"]
    return out[BREAKDOWN_COLUMNS].reset_index(drop=True)


def trailing_breakdown(breakdown: pd.DataFrame, days: int = 14) -> pd.DataFrame:
    return breakdown.tail(days).reset_index(drop=True)


def streak_days(reminders: Iterable[Reminder], today: date) -> int:
    """Consecutive fully completed days ending today.

    Days without reminders are skipped; the first day with an incomplete
    reminder ends the walk.
    """
    df = _frame(reminders)
    if df.empty:
        return 0
    all_done = df.groupby("day")["completed"].all().to_dict()
    streak = 0
    for i in range(STREAK_HORIZON_DAYS):
        done = all_done.get(today - timedelta(days=i))
        if done is None:
            continue
        if not done:
            break
        streak += 1
    return streak


def aggregate(reminders: Iterable[Reminder], start: datetime, today: Optional[date] = None) -> Dict:
    """Adherence statistics for reminders scheduled at or after ``start``.

    The streak is computed over the full history, not just the window.
    """
    everything: List[Reminder] = list(reminders)
    today = today or datetime.now().date()
    window = [r for r in everything if r.scheduled_time >= start]
    total = len(window)
    completed = sum(1 for r in window if r.completed)
    return {
        "total_reminders": total,
        "completed_reminders": completed,
        "adherence_rate": 100.0 * completed / total if total else 0.0,
        "streak_days": streak_days(everything, today),
        "daily_breakdown": daily_breakdown(window),
    }


def adherence_band(rate: float) -> str:
    if rate >= 90:
        return "good"
    if rate >= 70:
        return "fair"
    return "poor"


def medication_counts(medications: Iterable[Medication]) -> Dict[str, int]:
    meds = list(medications)
    return {"total": len(meds), "active": sum(1 for m in meds if m.is_active)}
