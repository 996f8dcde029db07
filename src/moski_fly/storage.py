"""
storage.py: Small JSON-file key/value store for local player data.
"""

import json
import logging
import os
import threading
from typing import Any, Optional

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    Persists a flat dict of JSON values to a single file. Reads and writes
    never raise: an unreadable file behaves as empty and a failed write is
    logged and dropped.
    """

    def __init__(self, path: str):
        self.path = path
        # serializes read-modify-write between the game and submission threads
        self.lock = threading.Lock()

    def _read_all(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> bool:
        with self.lock:
            return self._write(key, value)

    def _write(self, key: str, value: Any) -> bool:
        data = self._read_all()
        data[key] = value
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = self.path + ".tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError) as e:
            logger.warning("Could not write %s: %s", self.path, e)
            return False
        return True
