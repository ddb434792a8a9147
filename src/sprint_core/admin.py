"""
Admin control over the competition clock, registration and team overrides.
"""
import logging
import threading
from typing import Optional

from .catalog import ProblemCatalog
from .clock import Clock, SystemClock
from .config import config
from .errors import InvalidSprint
from .ledger import ScoringLedger
from .models import CompetitionEvent, ProblemStatement, Team
from .registry import TeamRegistry
from .selection import SelectionLock
from .tracker import RepositoryTracker

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000


class AdminControl:
    """Privileged mutations. Team overrides reuse the selection transitions."""

    def __init__(self, registry: TeamRegistry, selection: SelectionLock, ledger: ScoringLedger,
                 catalog: ProblemCatalog, tracker: Optional[RepositoryTracker] = None,
                 clock: Optional[Clock] = None, event: Optional[CompetitionEvent] = None):
        self.registry = registry
        self.selection = selection
        self.ledger = ledger
        self.catalog = catalog
        self.tracker = tracker
        self.clock = clock or SystemClock()
        self._event = event or CompetitionEvent()
        self._lock = threading.Lock()

    @property
    def event(self) -> CompetitionEvent:
        with self._lock:
            return self._event.model_copy()

    def restore_event(self, event: CompetitionEvent) -> None:
        with self._lock:
            self._event = event.model_copy()

    def start_sprint(self, hours: float) -> CompetitionEvent:
        """Start the sprint clock now for the given number of hours."""
        min_hours = config.engine.min_sprint_hours
        max_hours = config.engine.max_sprint_hours
        if isinstance(hours, bool) or not isinstance(hours, (int, float)) or not (min_hours <= hours <= max_hours):
            raise InvalidSprint(f"Sprint hours must be between {min_hours} and {max_hours}, got {hours!r}")

        with self._lock:
            now_ms = self.clock.now_ms()
            if self._event.running_at(now_ms) and self._event.sprint_hours == hours:
                logger.info(f"Sprint already running for {hours}h, leaving clock as is")
                return self._event.model_copy()
            self._event = self._event.model_copy(update={
                "sprint_start_ms": now_ms,
                "sprint_end_ms": now_ms + int(hours * HOUR_MS),
                "sprint_hours": hours,
            })
            event = self._event.model_copy()
        logger.info(f"Sprint started for {hours}h, ends at {event.sprint_end_ms}")
        return event

    def stop_sprint(self) -> CompetitionEvent:
        with self._lock:
            was_running = self._event.started
            self._event = self._event.model_copy(update={
                "sprint_start_ms": None,
                "sprint_end_ms": None,
                "sprint_hours": None,
            })
            event = self._event.model_copy()
        if was_running:
            logger.info("Sprint stopped")
        return event

    def set_registration_open(self, open: bool) -> CompetitionEvent:
        with self._lock:
            changed = self._event.registration_open != open
            self._event = self._event.model_copy(update={"registration_open": bool(open)})
            event = self._event.model_copy()
        if changed:
            logger.info(f"Registration {'opened' if open else 'closed'}")
        return event

    def deadline_ms(self) -> Optional[int]:
        """Sprint end, always read from the current event state."""
        return self.event.sprint_end_ms

    def remaining_ms(self, now_ms: Optional[int] = None) -> Optional[int]:
        deadline = self.deadline_ms()
        if deadline is None:
            return None
        now_ms = self.clock.now_ms() if now_ms is None else now_ms
        return max(0, deadline - now_ms)

    def force_unlock(self, team_id: str) -> Team:
        return self.selection.force_unlock(team_id, self.clock.now_ms())

    def force_lock(self, team_id: str) -> Team:
        return self.selection.force_lock(team_id)

    def add_problem(self, statement: ProblemStatement) -> ProblemStatement:
        return self.catalog.add_custom(statement)

    def clear_scores(self, team_id: str) -> int:
        self.registry.get(team_id)
        return self.ledger.clear(team_id)

    def reset_team(self, team_id: str) -> Team:
        """Delete a team together with its scores and commit snapshot."""
        team = self.registry.remove(team_id)
        self.ledger.clear(team_id)
        if self.tracker is not None:
            self.tracker.forget(team_id)
        logger.warning(f"Admin reset team '{team.team_name}' ({team_id})")
        return team

    def reset_all(self) -> None:
        self.registry.reset()
        self.ledger.reset()
        if self.tracker is not None:
            self.tracker.reset()
        with self._lock:
            self._event = CompetitionEvent()
        logger.warning("Admin reset all competition data")
