from __future__ import annotations
from datetime import date, datetime
from typing import Annotated, Any, List, Optional
import re

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

PRESET_TIMES = {
    1: ["12:00"],
    2: ["08:00", "20:00"],
    3: ["08:00", "14:00", "20:00"],
    4: ["08:00", "12:00", "16:00", "20:00"],
    5: ["06:00", "10:00", "14:00", "18:00", "22:00"],
    6: ["06:00", "10:00", "12:00", "16:00", "20:00", "24:00"],
}
MAX_DURATION_DAYS = 365
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_clock(text: str) -> tuple:
    """Parse an ``HH:MM`` clock string; ``24:00`` is accepted as end of day."""
    m = _CLOCK_RE.match(str(text or "").strip())
    if not m:
        raise ValueError(f"Invalid time {text!r}, expected HH:MM")
    hh, mm = int(m.group(1)), int(m.group(2))
    if mm > 59 or hh > 24 or (hh == 24 and mm != 0):
        raise ValueError(f"Invalid time {text!r}")
    return hh, mm


def _clock(value: Any) -> str:
    return "%02d:%02d" % parse_clock(value)


def _calendar_date(value: Any) -> Any:
    # timestamps from older documents carry a time part
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    return value


def _local(value: Optional[datetime]) -> Optional[datetime]:
    return value.replace(tzinfo=None) if value is not None and value.tzinfo else value


ClockTime = Annotated[str, BeforeValidator(_clock)]
CalendarDate = Annotated[date, BeforeValidator(_calendar_date)]
LocalDateTime = Annotated[datetime, AfterValidator(_local)]


class MedicationSchedule(BaseModel):
    """One phase of a treatment plan."""
    model_config = ConfigDict(populate_by_name=True)

    times_per_day: int = Field(ge=1, le=6, alias="timesPerDay")
    times: List[ClockTime]
    duration: int = Field(ge=1, le=MAX_DURATION_DAYS)

    @model_validator(mode="before")
    @classmethod
    def _preset_times(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("times") is None:
            n = data.get("times_per_day", data.get("timesPerDay"))
            if n in PRESET_TIMES:
                data = {**data, "times": PRESET_TIMES[n]}
        return data

    @field_validator("duration", mode="before")
    @classmethod
    def _clamp_duration(cls, value: Any) -> int:
        try:
            days = int(value)
        except (TypeError, ValueError):
            days = 1
        return min(max(days, 1), MAX_DURATION_DAYS)

    @model_validator(mode="after")
    def _times_match_cadence(self):
        if len(self.times) != self.times_per_day:
            raise ValueError(f"Expected {self.times_per_day} times, got {len(self.times)}")
        return self


class Medication(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    drops_per_dose: int = Field(1, ge=1, alias="dropsPerDose")
    schedules: List[MedicationSchedule] = Field(min_length=1)
    start_date: CalendarDate = Field(alias="startDate")
    is_active: bool = Field(True, alias="isActive")
    created_at: LocalDateTime = Field(default_factory=datetime.now, alias="createdAt")
    notes: Optional[str] = None

    @field_validator("name", "notes", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("notes")
    @classmethod
    def _blank_notes(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @property
    def total_duration(self) -> int:
        return sum(s.duration for s in self.schedules)


class Reminder(BaseModel):
    """A single dose event, scheduled or logged after the fact.

    ``completed_at`` is set exactly when ``completed`` is true.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    medication_id: str = Field(alias="medicationId")
    scheduled_time: LocalDateTime = Field(alias="scheduledTime")
    completed: bool = False
    completed_at: Optional[LocalDateTime] = Field(None, alias="completedAt")

    @model_validator(mode="before")
    @classmethod
    def _completion_timestamp(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        key = "completedAt" if "completedAt" in data and "completed_at" not in data else "completed_at"
        if not data.get("completed"):
            data[key] = None
        elif data.get(key) is None:
            # completed records without a timestamp fall back to the slot time
            data[key] = data.get("scheduled_time", data.get("scheduledTime"))
        return data

    def with_completion(self, completed: bool, now: datetime) -> "Reminder":
        return self.model_copy(update={"completed": completed, "completed_at": now if completed else None})
