from medtrack.models.medication import Medication, MedicationSchedule, Reminder

__all__ = ["Medication", "MedicationSchedule", "Reminder"]
