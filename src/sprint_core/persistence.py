"""
Storage hooks for engine state.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from .models import EngineSnapshot

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    def load(self) -> Optional[EngineSnapshot]:
        ...

    def save(self, snapshot: EngineSnapshot) -> None:
        ...


class MemoryStore:
    """Keeps the last saved snapshot in memory."""

    def __init__(self):
        self._data: Optional[str] = None

    def load(self) -> Optional[EngineSnapshot]:
        if self._data is None:
            return None
        return EngineSnapshot.model_validate_json(self._data)

    def save(self, snapshot: EngineSnapshot) -> None:
        self._data = snapshot.model_dump_json()


class JsonFileStore:
    """Snapshot stored as a JSON file, replaced atomically on save."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> Optional[EngineSnapshot]:
        if not self.path.exists():
            return None
        with open(self.path, 'r', encoding='utf-8') as f:
            snapshot = EngineSnapshot.model_validate_json(f.read())
        logger.info(f"Loaded {len(snapshot.teams)} teams and {len(snapshot.scores)} scores from {self.path}")
        return snapshot

    def save(self, snapshot: EngineSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(snapshot.model_dump_json(indent=2))
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(f"Saved engine state to {self.path}")
