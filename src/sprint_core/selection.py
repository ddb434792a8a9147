"""
Problem statement selection and its lock window.

A team moves UNSELECTED -> SELECTED -> LOCKED. The lock window is anchored
to the first selection: changing the chosen problem inside the window never
moves the anchor, so the deadline is fixed the moment a team first picks.

Locking is evaluated on demand from `is_locked(team, now)`; nothing in here
runs a timer. The `locked` flag on the record is only set by an admin
`force_lock` or when a team tries to change its choice after the deadline.
"""
import logging
from typing import Optional

from .clock import Clock, SystemClock
from .config import config
from .errors import PaymentRequired, SelectionLocked
from .models import Selection, SelectionState, Team
from .registry import TeamRegistry

logger = logging.getLogger(__name__)


def lock_deadline_ms(team: Team, lock_window_ms: int) -> Optional[int]:
    """Epoch ms at which the selection locks, or None before the first pick."""
    if team.selection.selected_at_ms is None:
        return None
    return team.selection.selected_at_ms + lock_window_ms


def is_locked(team: Team, now_ms: int, lock_window_ms: int) -> bool:
    if team.selection.locked:
        return True
    deadline = lock_deadline_ms(team, lock_window_ms)
    return deadline is not None and now_ms >= deadline


def selection_state(team: Team, now_ms: int, lock_window_ms: int) -> SelectionState:
    if is_locked(team, now_ms, lock_window_ms):
        return SelectionState.LOCKED
    if team.selection.selected_at_ms is None:
        return SelectionState.UNSELECTED
    return SelectionState.SELECTED


# Transitions. Both team actions and admin overrides go through these.

def _anchor(selection: Selection, problem_id: str, now_ms: int) -> None:
    selection.problem_id = problem_id
    selection.selected_at_ms = now_ms


def _reselect(selection: Selection, problem_id: str) -> None:
    selection.problem_id = problem_id


def _lock(selection: Selection) -> None:
    selection.locked = True


def _reopen(selection: Selection, now_ms: int) -> None:
    selection.locked = False
    # a team locked before its first pick goes back to UNSELECTED
    selection.selected_at_ms = now_ms if selection.problem_id is not None else None


class SelectionLock:
    """Governs problem statement choice for every team in a registry."""

    def __init__(self, registry: TeamRegistry, clock: Optional[Clock] = None,
                 lock_window_ms: Optional[int] = None, payment_required: Optional[bool] = None):
        self.registry = registry
        self.clock = clock or SystemClock()
        self.lock_window_ms = lock_window_ms if lock_window_ms is not None else config.engine.lock_window_ms
        self.payment_required = (
            payment_required if payment_required is not None else config.engine.payment_required
        )

    def _now(self, now_ms: Optional[int]) -> int:
        return self.clock.now_ms() if now_ms is None else now_ms

    def is_locked(self, team: Team, now_ms: Optional[int] = None) -> bool:
        return is_locked(team, self._now(now_ms), self.lock_window_ms)

    def state(self, team: Team, now_ms: Optional[int] = None) -> SelectionState:
        return selection_state(team, self._now(now_ms), self.lock_window_ms)

    def deadline_ms(self, team: Team) -> Optional[int]:
        return lock_deadline_ms(team, self.lock_window_ms)

    def remaining_ms(self, team: Team, now_ms: Optional[int] = None) -> int:
        """Time left to change the choice; zero when locked or never picked."""
        now_ms = self._now(now_ms)
        deadline = self.deadline_ms(team)
        if deadline is None or self.is_locked(team, now_ms):
            return 0
        return deadline - now_ms

    def select(self, team_id: str, problem_id: str, now_ms: Optional[int] = None) -> Team:
        """Pick or change the team's problem statement."""
        with self.registry.mutate(team_id) as team:
            now_ms = self._now(now_ms)
            selection = team.selection

            if self.payment_required and not team.paid:
                logger.warning(f"Team {team_id} tried to select {problem_id} before paying")
                raise PaymentRequired("Payment required before selecting a problem statement")

            if selection.locked:
                logger.warning(f"Team {team_id} tried to change a locked selection")
                raise SelectionLocked("Selection locked")

            if selection.selected_at_ms is None:
                _anchor(selection, problem_id, now_ms)
                logger.info(f"Team {team_id} selected {problem_id}; locks at {now_ms + self.lock_window_ms}")
                return team.model_copy(deep=True)

            if now_ms >= selection.selected_at_ms + self.lock_window_ms:
                _lock(selection)
                logger.warning(f"Team {team_id} missed the change window; selection locked on {selection.problem_id}")
                raise SelectionLocked("Selection locked")

            previous = selection.problem_id
            _reselect(selection, problem_id)
            logger.info(f"Team {team_id} changed selection {previous} -> {problem_id}")
            return team.model_copy(deep=True)

    def force_lock(self, team_id: str) -> Team:
        with self.registry.mutate(team_id) as team:
            if not team.selection.locked:
                _lock(team.selection)
                logger.info(f"Selection for team {team_id} force-locked")
            return team.model_copy(deep=True)

    def force_unlock(self, team_id: str, now_ms: Optional[int] = None) -> Team:
        """Give a locked team a fresh change window starting now.

        The current problem stays selected. A team whose window is already
        open is left alone.
        """
        with self.registry.mutate(team_id) as team:
            now_ms = self._now(now_ms)
            if not is_locked(team, now_ms, self.lock_window_ms):
                logger.info(f"Selection for team {team_id} already open, nothing to unlock")
                return team.model_copy(deep=True)
            _reopen(team.selection, now_ms)
            logger.info(
                f"Selection for team {team_id} reopened until {now_ms + self.lock_window_ms} "
                f"(keeping {team.selection.problem_id})"
            )
            return team.model_copy(deep=True)
