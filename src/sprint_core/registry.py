"""
Team registry: identity, roster, payment and repository URL.

Each team has its own lock. Every read-modify-write of a team record goes
through `mutate()`, so two actions on the same team never interleave while
actions on different teams never wait on each other. Callers only ever
see copies; the live records never leave the registry.
"""
import logging
import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Any

from pydantic import ValidationError

from .clock import Clock, SystemClock
from .errors import InvalidRoster, NotFound
from .github_client import normalize_repo_url
from .models import FeeTier, PaymentMethod, Team
from .payment import build_receipt

logger = logging.getLogger(__name__)


def _roster_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else str(item.get('msg')))
    return "; ".join(parts)


class TeamRegistry:
    """Owns all team records of one competition instance."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self._teams: Dict[str, Team] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.RLock()
        self._seq = 0

    def register(self, name: str, members: Iterable[Any]) -> Team:
        """Create a team from a name and 2-4 members with name and email."""
        with self._registry_lock:
            try:
                team = Team(
                    team_id=uuid.uuid4().hex[:10],
                    team_name=name,
                    members=list(members),
                    created_at_ms=self.clock.now_ms(),
                    seq=self._seq + 1,
                )
            except ValidationError as e:
                logger.warning(f"Rejected registration for '{name}': {e.error_count()} error(s)")
                raise InvalidRoster(f"Invalid team registration: {_roster_error(e)}")

            if self._find_by_name(team.team_name) is not None:
                logger.warning(f"Rejected registration: team name '{team.team_name}' already taken")
                raise InvalidRoster(f"Team name already registered: {team.team_name}")

            self._seq = team.seq
            self._teams[team.team_id] = team
            self._locks[team.team_id] = threading.RLock()

        logger.info(f"Registered team '{team.team_name}' ({team.team_id}) with {len(team.members)} members")
        return team.model_copy(deep=True)

    def _find_by_name(self, name: str) -> Optional[Team]:
        key = name.strip().lower()
        for team in self._teams.values():
            if team.team_name.lower() == key:
                return team
        return None

    def find_by_name(self, name: str) -> Optional[Team]:
        """Case-insensitive lookup used for team login."""
        with self._registry_lock:
            team = self._find_by_name(name)
        if team is None:
            return None
        try:
            return self.get(team.team_id)
        except NotFound:
            return None

    def get(self, team_id: str) -> Team:
        """Copy of the team record, taken under the team's lock."""
        with self.mutate(team_id) as team:
            return team.model_copy(deep=True)

    def all(self) -> List[Team]:
        with self._registry_lock:
            team_ids = list(self._teams)
        teams = []
        for team_id in team_ids:
            try:
                teams.append(self.get(team_id))
            except NotFound:
                # removed since the id list was taken
                continue
        return teams

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._teams)

    @contextmanager
    def mutate(self, team_id: str) -> Iterator[Team]:
        """Hold the team's lock for the duration of a read-modify-write."""
        with self._registry_lock:
            lock = self._locks.get(team_id)
        if lock is None:
            raise NotFound(team_id)
        with lock:
            with self._registry_lock:
                team = self._teams.get(team_id)
            if team is None:
                raise NotFound(team_id)
            yield team

    def mark_paid(self, team_id: str, tier: FeeTier, method: PaymentMethod) -> Team:
        """Record a confirmed payment. A team that already paid keeps its receipt."""
        with self.mutate(team_id) as team:
            if team.paid:
                logger.info(f"Team {team_id} already paid, keeping receipt {team.payment.receipt_id if team.payment else '-'}")
                return team.model_copy(deep=True)
            team.payment = build_receipt(team, tier, method, self.clock.now_ms())
            team.paid = True
            logger.info(
                f"Team {team_id} paid {team.payment.amount} ({team.payment.tier.value}, {team.payment.method.value})"
            )
            return team.model_copy(deep=True)

    def set_repo_url(self, team_id: str, url: str) -> Team:
        """Store the team's GitHub repository URL, replacing any previous one."""
        normalized = normalize_repo_url(url)
        with self.mutate(team_id) as team:
            team.repo_url = normalized
            logger.info(f"Team {team_id} repository set to {normalized}")
            return team.model_copy(deep=True)

    def remove(self, team_id: str) -> Team:
        with self._registry_lock:
            team = self._teams.pop(team_id, None)
            self._locks.pop(team_id, None)
        if team is None:
            raise NotFound(team_id)
        logger.info(f"Removed team '{team.team_name}' ({team_id})")
        return team

    def reset(self) -> None:
        with self._registry_lock:
            count = len(self._teams)
            self._teams.clear()
            self._locks.clear()
            self._seq = 0
        logger.info(f"Registry reset, {count} team(s) removed")

    def load(self, teams: Iterable[Team]) -> None:
        """Replace registry contents with persisted teams."""
        with self._registry_lock:
            self._teams = {team.team_id: team for team in teams}
            self._locks = {team_id: threading.RLock() for team_id in self._teams}
            self._seq = max((team.seq for team in self._teams.values()), default=0)
