"""Shared fixtures for the medtrack test-suite."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

import pytest

from medtrack.models.medication import Medication, MedicationSchedule

START = date(2026, 10, 10)


def make_medication(
    med_id: str = "med1",
    *,
    schedules: list[MedicationSchedule] | None = None,
    start_date: date = START,
    is_active: bool = True,
    name: str = "Refresh",
    drops: int = 2,
) -> Medication:
    return Medication(
        id=med_id,
        name=name,
        drops_per_dose=drops,
        schedules=schedules or [MedicationSchedule(times_per_day=3, times=["08:00", "14:00", "20:00"], duration=7)],
        start_date=start_date,
        is_active=is_active,
        created_at=datetime(2026, 10, 9, 18, 30),
    )


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.delivered: list[tuple[str, str]] = []
        self.alerts: list[str] = []

    def request_permission(self) -> bool:
        return True

    def deliver(self, title: str, body: str) -> None:
        if self.fail:
            raise RuntimeError("notifications blocked")
        self.delivered.append((title, body))

    def present_blocking_alert(self, message: str, on_dismiss: Any) -> None:
        self.alerts.append(message)


class FakeTimer:
    def __init__(self, interval, function, args=None, kwargs=None) -> None:
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.started = False
        self.cancelled = False
        self.daemon = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function(*self.args)


@pytest.fixture()
def medication() -> Medication:
    return make_medication()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def timers() -> list[FakeTimer]:
    return []


@pytest.fixture()
def timer_factory(timers: list[FakeTimer]):
    def factory(interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        timers.append(timer)
        return timer

    return factory
