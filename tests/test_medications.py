"""Medication form validation and collection operations."""

from __future__ import annotations

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from medtrack.models.medication import Medication, MedicationSchedule, Reminder
from medtrack.utils.medications import add_medication, delete_medication, toggle_medication
from medtrack.utils.parsers import InvalidInput, parse_clock, parse_medication_form, parse_schedule
from tests.conftest import make_medication

NOW = datetime(2026, 10, 17, 9, 15)


def _form(**overrides) -> dict:
    form = {
        "name": "  Refresh Tears ",
        "drops_per_dose": 2,
        "start_date": date(2026, 10, 17),
        "notes": "",
        "schedules": [{"times_per_day": 3, "times": ["08:00", "14:00", "20:00"], "duration": 7}],
    }
    form.update(overrides)
    return form


def test_parse_medication_form_builds_medication() -> None:
    med = parse_medication_form(_form(), NOW)

    assert med.name == "Refresh Tears"
    assert med.drops_per_dose == 2
    assert med.start_date == date(2026, 10, 17)
    assert med.is_active is True
    assert med.created_at == NOW
    assert med.notes is None
    assert med.id
    assert "-" not in med.id


def test_each_new_medication_gets_its_own_id() -> None:
    assert parse_medication_form(_form(), NOW).id != parse_medication_form(_form(), NOW).id


def test_start_date_accepts_iso_string_and_defaults_to_today() -> None:
    assert parse_medication_form(_form(start_date="2026-11-01"), NOW).start_date == date(2026, 11, 1)
    assert parse_medication_form(_form(start_date=None), NOW).start_date == NOW.date()


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "   "},
        {"drops_per_dose": "two"},
        {"drops_per_dose": 0},
        {"schedules": []},
        {"schedules": [{"times_per_day": 7, "duration": 3}]},
        {"schedules": [{"times_per_day": 2, "times": ["08:00"], "duration": 3}]},
        {"schedules": [{"times_per_day": 1, "times": ["8am"], "duration": 3}]},
        {"start_date": "next week"},
    ],
)
def test_invalid_input_is_rejected(overrides: dict) -> None:
    with pytest.raises(InvalidInput):
        parse_medication_form(_form(**overrides), NOW)


def test_schedule_defaults_to_preset_times_and_clamps_duration() -> None:
    sched = parse_schedule({"times_per_day": 2, "duration": 1000})
    assert sched.times == ["08:00", "20:00"]
    assert sched.duration == 365
    assert parse_schedule({"times_per_day": 1, "duration": 0}).duration == 1


@pytest.mark.parametrize(("text", "expected"), [("08:00", (8, 0)), ("7:05", (7, 5)), ("24:00", (24, 0))])
def test_parse_clock(text: str, expected: tuple) -> None:
    assert parse_clock(text) == expected


@pytest.mark.parametrize("text", ["24:30", "25:00", "12:60", "noon", ""])
def test_parse_clock_rejects(text: str) -> None:
    with pytest.raises(InvalidInput):
        parse_clock(text)


def test_schedule_times_are_normalised() -> None:
    assert parse_schedule({"times_per_day": 1, "times": [" 7:05 "], "duration": 3}).times == ["07:05"]


def test_add_medication_returns_new_collection() -> None:
    existing = [make_medication("a")]
    updated = add_medication(existing, _form(), NOW)
    assert len(existing) == 1
    assert len(updated) == 2
    assert updated[0] is existing[0]


def test_toggle_medication() -> None:
    meds = [make_medication("a"), make_medication("b")]
    toggled = toggle_medication(meds, "b")
    assert [m.is_active for m in toggled] == [True, False]
    assert meds[1].is_active is True
    assert toggle_medication(toggled, "b")[1].is_active is True


def test_delete_cascades_to_reminders() -> None:
    meds = [make_medication("a"), make_medication("b")]
    reminders = [
        Reminder(id="a-1", medication_id="a", scheduled_time=datetime(2026, 10, 12, 8)),
        Reminder(id="b-1", medication_id="b", scheduled_time=datetime(2026, 10, 12, 8)),
        Reminder(id="a-2", medication_id="a", scheduled_time=datetime(2026, 10, 12, 20), completed=True, completed_at=datetime(2026, 10, 12, 20, 5)),
    ]

    remaining_meds, remaining_reminders = delete_medication(meds, reminders, "a")

    assert [m.id for m in remaining_meds] == ["b"]
    assert [r.id for r in remaining_reminders] == ["b-1"]
    assert len(reminders) == 3


@pytest.mark.parametrize(
    "raw",
    [
        {"timesPerDay": 2, "times": ["08:00", "8pm"], "duration": 3},
        {"timesPerDay": 3, "times": ["08:00", "20:00"], "duration": 3},
        {"timesPerDay": 7, "duration": 3},
        {"timesPerDay": 1, "times": ["24:15"], "duration": 3},
    ],
)
def test_schedule_model_rejects_unusable_phases(raw: dict) -> None:
    with pytest.raises(ValidationError):
        MedicationSchedule.model_validate(raw)


def test_medication_model_reads_camel_case_and_strips_text() -> None:
    med = Medication.model_validate({
        "id": "m1",
        "name": " Moxi ",
        "dropsPerDose": 1,
        "schedules": [{"timesPerDay": 6, "duration": 2}],
        "startDate": "2026-10-10T00:00:00.000Z",
        "isActive": False,
        "notes": "  ",
    })
    assert med.name == "Moxi"
    assert med.notes is None
    assert med.is_active is False
    assert med.start_date == date(2026, 10, 10)
    assert med.schedules[0].times[-1] == "24:00"
    assert med.total_duration == 2


def test_reminder_is_immutable() -> None:
    reminder = Reminder(id="r", medication_id="m", scheduled_time=datetime(2026, 10, 12, 8))
    with pytest.raises(ValidationError):
        reminder.completed = True
