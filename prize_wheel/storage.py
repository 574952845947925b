"""
Key-value persistence port shared by the inventory store and media registry.

Values are always strings. ``JsonFileStore`` keeps every key in a single JSON
object on disk and writes it atomically; ``MemoryStore`` is the in-process
variant used by tests and throwaway sessions.
"""
import json
import logging
import os
import shutil
import threading
from datetime import datetime
from typing import Dict, Optional, Protocol


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dictionary backed store"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def remove(self, key):
        self._data.pop(key, None)

    def __contains__(self, key):
        return key in self._data


def create_backup(filename):
    """Create a timestamped backup of a file, returning the backup path"""
    if os.path.exists(filename):
        backup_path = f"{filename}.{datetime.now().strftime('%Y%m%d_%H%M%S')}.bak"
        try:
            shutil.copy2(filename, backup_path)
            logging.info(f"💾 Backup created: {backup_path}")
            return backup_path
        except OSError as e:
            logging.error(f"💥 Backup creation failed: {e}")
    return None


class JsonFileStore:
    """
    Store every key in one JSON object file.

    The file is read once on construction and rewritten in full on every
    change through a temp file and ``os.replace``. A file that is not a JSON
    object of strings is backed up and replaced with an empty store.
    """

    def __init__(self, filename):
        self.filename = filename
        self._lock = threading.Lock()
        directory = os.path.dirname(os.path.abspath(filename))
        os.makedirs(directory, exist_ok=True)
        self._data = self._read()

    def _read(self):
        if not os.path.exists(self.filename):
            return {}
        try:
            with open(self.filename, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
                raise ValueError("state file must be a JSON object of strings")
            return data
        except (json.JSONDecodeError, ValueError) as e:
            logging.error(f"🚨 CORRUPTION: '{self.filename}' unreadable ({e}). Starting empty...")
            backup_path = create_backup(self.filename)
            if backup_path:
                logging.info(f"🔒 Corrupted file backed up as: {backup_path}")
            return {}

    def _write(self):
        temp_filename = f"{self.filename}.tmp"
        try:
            with open(temp_filename, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
            os.replace(temp_filename, self.filename)
            logging.debug(f"💾 File saved successfully: {self.filename}")
        except OSError:
            if os.path.exists(temp_filename):
                os.remove(temp_filename)
            raise

    def get(self, key):
        with self._lock:
            return self._data.get(key)

    def set(self, key, value):
        with self._lock:
            if self._data.get(key) == value:
                return
            self._data[key] = value
            self._write()

    def remove(self, key):
        with self._lock:
            if key not in self._data:
                return
            del self._data[key]
            self._write()
