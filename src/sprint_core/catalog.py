"""
Problem statement catalog: a fixed base list plus admin additions.
"""
import logging
import threading
from typing import Iterable, List, Optional

from .models import ProblemStatement

logger = logging.getLogger(__name__)


class ProblemCatalog:
    """Read-only base catalog with an append-only custom list."""

    def __init__(self, base: Iterable[ProblemStatement] = ()):
        self._base = tuple(base)
        self._custom: List[ProblemStatement] = []
        self._lock = threading.Lock()
        ids = [p.id for p in self._base]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate problem statement ids in base catalog")

    def get(self, problem_id: str) -> Optional[ProblemStatement]:
        for statement in self.all():
            if statement.id == problem_id:
                return statement
        return None

    def contains(self, problem_id: str) -> bool:
        return self.get(problem_id) is not None

    def all(self) -> List[ProblemStatement]:
        with self._lock:
            return list(self._base) + list(self._custom)

    def custom(self) -> List[ProblemStatement]:
        with self._lock:
            return list(self._custom)

    def add_custom(self, statement: ProblemStatement) -> ProblemStatement:
        """Append a statement; ids are never reused."""
        with self._lock:
            if any(p.id == statement.id for p in self._base) or any(p.id == statement.id for p in self._custom):
                raise ValueError(f"Problem statement already exists: {statement.id}")
            self._custom.append(statement)
        logger.info(f"Added custom problem statement {statement.id}: {statement.title}")
        return statement

    def restore_custom(self, statements: Iterable[ProblemStatement]) -> None:
        with self._lock:
            self._custom = list(statements)
