import json
import logging
import os
from typing import Dict, List, Optional

from medtrack.models.medication import Medication, Reminder

logger = logging.getLogger(__name__)

MEDICATIONS_KEY = "medtrack_medications"
REMINDERS_KEY = "medtrack_reminders"


class ImportRejected(ValueError):
    """An import document that is not an array of medications."""


class MemoryStore:
    """Process-local key-value store."""

    def __init__(self):
        self._d: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._d.get(key)

    def set(self, key: str, value: str) -> None:
        self._d[key] = value

    def delete(self, key: str) -> None:
        self._d.pop(key, None)


class FileStore:
    """One JSON file per key under ``directory``."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        tmp = self._path(key) + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(value)
        os.replace(tmp, self._path(key))

    def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


class StorageService:
    """
    Persists medications and reminders as two independent JSON arrays.
    Loading never raises: a missing or corrupt entry reads as an empty list.
    """

    def __init__(self, store):
        self.store = store

    def _load(self, key: str, cls) -> list:
        try:
            raw = self.store.get(key)
            if not raw:
                return []
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            return [cls.model_validate(item) for item in data]
        except Exception as e:
            logger.error(f"Failed to load {key}: {e}")
            return []

    def _save(self, key: str, items: list) -> None:
        try:
            self.store.set(key, json.dumps([i.model_dump(mode="json") for i in items]))
        except Exception as e:
            logger.error(f"Failed to save {key}: {e}")

    def load_medications(self) -> List[Medication]:
        return self._load(MEDICATIONS_KEY, Medication)

    def save_medications(self, medications: List[Medication]) -> None:
        self._save(MEDICATIONS_KEY, medications)

    def load_reminders(self) -> List[Reminder]:
        return self._load(REMINDERS_KEY, Reminder)

    def save_reminders(self, reminders: List[Reminder]) -> None:
        self._save(REMINDERS_KEY, reminders)

    def clear_all(self) -> None:
        self.store.delete(MEDICATIONS_KEY)
        self.store.delete(REMINDERS_KEY)


def export_medications(medications: List[Medication]) -> str:
    return json.dumps([m.model_dump(mode="json") for m in medications], indent=2)


def import_medications(text: str) -> List[Medication]:
    """Parse an exported document; anything but a valid array is rejected whole."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ImportRejected(f"Not valid JSON: {e}")
    if not isinstance(data, list):
        raise ImportRejected("Expected a JSON array of medications")
    try:
        return [Medication.model_validate(item) for item in data]
    except Exception as e:
        raise ImportRejected(f"Invalid medication entry: {e}")
