import json
import logging
import os
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    """Load/save of an opaque settings string under a fixed key."""

    def load(self) -> Optional[str]:
        ...

    def save(self, value: str) -> None:
        ...


class MemoryStore:
    def __init__(self, key: str = "settings", initial: Optional[Dict[str, str]] = None):
        self.key = key
        self.data: Dict[str, str] = dict(initial or {})

    def load(self) -> Optional[str]:
        return self.data.get(self.key)

    def save(self, value: str) -> None:
        self.data[self.key] = value


class JsonFileStore:
    """Key-value store kept as a single JSON object on disk."""

    def __init__(self, path: str, key: str = "settings"):
        self.path = path
        self.key = key

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r") as f:
            try:
                data = json.load(f)
            except ValueError as exc:
                logger.warning("Settings store %s is corrupt, treating as empty: %s", self.path, exc)
                return {}
        if not isinstance(data, dict):
            logger.warning("Settings store %s does not hold an object, treating as empty", self.path)
            return {}
        return data

    def load(self) -> Optional[str]:
        value = self._read_all().get(self.key)
        return value if isinstance(value, str) else None

    def save(self, value: str) -> None:
        data = self._read_all()
        data[self.key] = value
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        logger.debug("Saved settings to %s", self.path)
