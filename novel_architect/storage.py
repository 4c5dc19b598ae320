"""
Durable snapshot storage.

A project is kept as a single JSON record under a fixed key. Reading never
fails: a missing or unreadable record yields the default snapshot. Writing
never fails either: errors are logged and the in-memory project is untouched.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from .errors import PersistenceFailure
from .models import ProjectSnapshot, now_ms

STORAGE_KEY = "qidian_architect_project_v1"


class KeyValueStore(ABC):
    """Minimal string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class JsonFileStore(KeyValueStore):
    """Stores each key as ``<root>/<key>.json``."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class ProjectStorage:
    """Reads and writes the project snapshot record."""

    def __init__(self, store: KeyValueStore, key: str = STORAGE_KEY):
        self.store = store
        self.key = key

    def persist(self, snapshot: ProjectSnapshot) -> Optional[ProjectSnapshot]:
        """Write the snapshot stamped with the current time.

        Returns the written snapshot, or None when the write failed.
        """
        stamped = snapshot.model_copy(update={"last_modified": now_ms()})
        try:
            payload = json.dumps(stamped.to_wire(), ensure_ascii=False)
            self.store.set(self.key, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save project: {PersistenceFailure(e)}")
            return None
        logger.info(f"Project saved ({len(stamped.content)} chars)")
        return stamped

    def load(self) -> ProjectSnapshot:
        try:
            raw = self.store.get(self.key)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to load project: {PersistenceFailure(e)}")
            return ProjectSnapshot.default()
        if not raw:
            return ProjectSnapshot.default()
        try:
            return ProjectSnapshot.model_validate(json.loads(raw))
        except (json.JSONDecodeError, RecursionError, ValidationError) as e:
            logger.error(f"Stored project is unreadable, starting fresh: {e}")
            return ProjectSnapshot.default()

    def clear(self) -> None:
        try:
            self.store.delete(self.key)
        except OSError as e:
            logger.error(f"Failed to clear project: {PersistenceFailure(e)}")
            return
        logger.info("Project cleared")
