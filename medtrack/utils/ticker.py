import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from medtrack.models.medication import Medication, Reminder
from medtrack.utils.notifications import alarm_message, reminder_body, reminder_title
from medtrack.utils.reminders import ReminderStatus, classify, reminders_scheduled_on

logger = logging.getLogger(__name__)


def delay_until_next_minute(now: datetime) -> float:
    """Seconds from ``now`` to the next wall-clock minute boundary."""
    ms = 60000 - (now.second * 1000 + now.microsecond // 1000)
    return ms / 1000.0


class ReminderTicker:
    """
    Minute-aligned recurring check of today's reminders.

    Delivers one notification when a reminder moves into the due window.
    The last status seen per reminder id survives restarts, so changing the
    medication set does not re-alert reminders that were already due.
    """

    def __init__(
        self,
        notifier,
        reminders_source: Callable[[], List[Reminder]],
        clock: Callable[[], datetime] = datetime.now,
        timer_factory=threading.Timer,
        interval: float = 60,
    ):
        self.notifier = notifier
        self.reminders_source = reminders_source
        self.clock = clock
        self.timer_factory = timer_factory
        self.interval = interval
        self.medications: List[Medication] = []
        self._timer = None
        self._generation = 0
        self._last_status: Dict[str, ReminderStatus] = {}
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self, medications: List[Medication]) -> None:
        """(Re)start against ``medications``; any outstanding timer is cancelled first."""
        with self._lock:
            self._cancel()
            self.medications = list(medications)
            delay = delay_until_next_minute(self.clock())
            self._arm(delay, self._generation)
        logger.debug(f"Ticker armed for {len(self.medications)} medication(s), first check in {delay:.3f}s")

    restart = start

    def stop(self) -> None:
        with self._lock:
            self._cancel()

    def _cancel(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self, delay: float, generation: int) -> None:
        timer = self.timer_factory(delay, self._fire, args=(generation,))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                # cancelled while already firing
                return
        try:
            self.tick()
        except Exception as e:
            logger.error(f"Reminder check failed: {e}")
        with self._lock:
            if generation == self._generation:
                self._arm(delay_until_next_minute(self.clock()), generation)

    def tick(self, now: Optional[datetime] = None) -> List[Reminder]:
        """Run one check and return the reminders that were notified."""
        now = now or self.clock()
        by_id = {m.id: m for m in self.medications}
        todays = reminders_scheduled_on(self.medications, now.date(), self.reminders_source())
        logger.debug(f"Checking {len(todays)} reminder(s) at {now:%H:%M}")
        fired = []
        seen: Dict[str, ReminderStatus] = {}
        for r in todays:
            status = classify(r, now)
            previous = self._last_status.get(r.id)
            if previous is None:
                previous = classify(r, now - timedelta(seconds=self.interval))
            seen[r.id] = status
            if status is ReminderStatus.DUE and previous is not ReminderStatus.DUE:
                self._notify(by_id[r.medication_id], r)
                fired.append(r)
        self._last_status = seen
        return fired

    def _notify(self, medication: Medication, reminder: Reminder) -> None:
        logger.info(f"Reminder {reminder.id} is due")
        try:
            self.notifier.deliver(reminder_title(medication), reminder_body(medication))
            self.notifier.present_blocking_alert(
                alarm_message(medication),
                lambda: logger.info(f"Alarm for {reminder.id} dismissed"),
            )
        except Exception as e:
            logger.error(f"Notification for {reminder.id} failed: {e}")
