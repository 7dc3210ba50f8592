"""Copy-on-write operations over the medication collection.

Every function returns new lists; the caller publishes them and hands them
to the storage collaborator.
"""
from datetime import datetime
from typing import List, Tuple

from medtrack.models.medication import Medication, Reminder
from medtrack.utils.parsers import parse_medication_form


def add_medication(medications: List[Medication], form: dict, now: datetime) -> List[Medication]:
    return medications + [parse_medication_form(form, now)]


def toggle_medication(medications: List[Medication], medication_id: str) -> List[Medication]:
    return [m.model_copy(update={"is_active": not m.is_active}) if m.id == medication_id else m for m in medications]


def delete_medication(
    medications: List[Medication], reminders: List[Reminder], medication_id: str
) -> Tuple[List[Medication], List[Reminder]]:
    """Remove a medication and every reminder that references it."""
    return (
        [m for m in medications if m.id != medication_id],
        [r for r in reminders if r.medication_id != medication_id],
    )
