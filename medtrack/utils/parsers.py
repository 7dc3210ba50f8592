from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import uuid

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from medtrack.models.medication import CalendarDate, Medication, MedicationSchedule
from medtrack.models.medication import parse_clock as _parse_clock


class InvalidInput(ValueError):
    """User input that cannot become a Medication."""


class MedicationForm(BaseModel):
    """Fields of the add-medication form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    drops_per_dose: int = Field(1, ge=1)
    start_date: Optional[CalendarDate] = None
    notes: Optional[str] = None
    schedules: List[MedicationSchedule] = Field(min_length=1)


def _message(e: ValidationError) -> str:
    err = e.errors()[0]
    field = ".".join(str(p) for p in err["loc"])
    msg = err["msg"].removeprefix("Value error, ")
    return f"{field}: {msg}" if field else msg


def parse_clock(text: str) -> Tuple[int, int]:
    try:
        return _parse_clock(text)
    except ValueError as e:
        raise InvalidInput(str(e))


def parse_schedule(raw: Dict[str, Any]) -> MedicationSchedule:
    try:
        return MedicationSchedule.model_validate(raw)
    except ValidationError as e:
        raise InvalidInput(_message(e))


def parse_medication_form(form: Dict[str, Any], now: datetime) -> Medication:
    """
    Validate the add-medication form and build a new Medication.
    - name must be non-blank
    - drops per dose is an integer >= 1
    - at least one phase; durations are clamped to [1, 365]
    The id and created_at are assigned here.
    """
    try:
        data = MedicationForm.model_validate(form)
    except ValidationError as e:
        raise InvalidInput(_message(e))
    return Medication(
        id=uuid.uuid4().hex,
        name=data.name,
        drops_per_dose=data.drops_per_dose,
        schedules=data.schedules,
        start_date=data.start_date or now.date(),
        is_active=True,
        created_at=now,
        notes=data.notes,
    )
