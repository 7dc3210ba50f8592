import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional

from medtrack.models.medication import Medication

logger = logging.getLogger(__name__)


def reminder_title(medication: Medication) -> str:
    return f"Time for {medication.name}"


def reminder_body(medication: Medication) -> str:
    return f"Take {medication.drops_per_dose} drop(s) now"


def alarm_message(medication: Medication) -> str:
    return f"Take {medication.drops_per_dose} drop(s) of {medication.name} now"


class LoggingNotifier:
    """Notifier with no delivery channel; every call is written to the log."""

    def request_permission(self) -> bool:
        return True

    def deliver(self, title: str, body: str) -> None:
        logger.info(f"Notification: {title}: {body}")

    def present_blocking_alert(self, message: str, on_dismiss: Callable[[], None]) -> None:
        logger.warning(f"Medication alert: {message}")
        on_dismiss()


@dataclass
class Alert:
    message: str
    on_dismiss: Callable[[], None]
    dismissed: bool = False

    def dismiss(self) -> None:
        # on_dismiss fires exactly once
        if self.dismissed:
            return
        self.dismissed = True
        self.on_dismiss()


@dataclass
class QueuedNotifier:
    """
    Buffers notifications raised off the UI thread.
    The UI drains ``pending`` and ``alerts`` on its next render.
    """
    granted: Optional[bool] = None
    pending: Deque[tuple] = field(default_factory=deque)
    alerts: Deque[Alert] = field(default_factory=deque)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def request_permission(self) -> bool:
        if self.granted is None:
            self.granted = True
        return self.granted

    def deliver(self, title: str, body: str) -> None:
        if not self.granted:
            logger.warning(f"No permission to show notification: {title}")
            return
        with self._lock:
            self.pending.append((title, body))
        logger.info(f"Queued notification: {title}")

    def present_blocking_alert(self, message: str, on_dismiss: Callable[[], None]) -> None:
        with self._lock:
            self.alerts.append(Alert(message, on_dismiss))

    def drain(self) -> List[tuple]:
        with self._lock:
            out = list(self.pending)
            self.pending.clear()
        return out

    def current_alert(self) -> Optional[Alert]:
        with self._lock:
            while self.alerts and self.alerts[0].dismissed:
                self.alerts.popleft()
            return self.alerts[0] if self.alerts else None
