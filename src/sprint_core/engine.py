"""
Competition engine: wires the registry, selection lock, tracker, ledger and
admin control together for one competition instance.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .admin import AdminControl
from .catalog import ProblemCatalog
from .clock import Clock, SystemClock
from .config import config
from .errors import EngineError, NotFound, PaymentRequired, RegistrationClosed, UnknownProblem
from .github_client import GitHubClient
from .leaderboard import project_leaderboard
from .ledger import AggregationPolicy, ScoringLedger
from .models import (
    CommitRecord, EngineSnapshot, FeeTier, JudgeScore, LeaderboardRow, PaymentMethod,
    ProblemStatement, ScoreAggregate, SelectionState, SyncState, Team
)
from .payment import PaymentGateway, compute_amount
from .persistence import JsonFileStore, MemoryStore, StateStore
from .registry import TeamRegistry
from .selection import SelectionLock
from .team_loader import CSVTeamLoader
from .tracker import CommitSource, PollOutcome, RepositoryTracker

logger = logging.getLogger(__name__)


class CompetitionEngine:
    """Entry point for team, judge and admin actions."""

    def __init__(self, clock: Optional[Clock] = None,
                 problems: Iterable[ProblemStatement] = (),
                 store: Optional[StateStore] = None,
                 commit_source: Optional[CommitSource] = None,
                 payment_gateway: Optional[PaymentGateway] = None,
                 lock_window_ms: Optional[int] = None,
                 payment_required: Optional[bool] = None,
                 policy: AggregationPolicy = AggregationPolicy.ALL,
                 poll_timeout_seconds: Optional[float] = None):
        self.clock = clock or SystemClock()
        self.catalog = ProblemCatalog(problems)
        if store is None:
            store = JsonFileStore(config.engine.state_file) if config.engine.state_file else MemoryStore()
        self.store = store
        self.payment_gateway = payment_gateway

        self.registry = TeamRegistry(self.clock)
        self.selection = SelectionLock(self.registry, self.clock, lock_window_ms, payment_required)
        self.tracker = RepositoryTracker(commit_source or GitHubClient(), self.clock, poll_timeout_seconds)
        self.ledger = ScoringLedger(self.clock, policy)
        self.admin = AdminControl(
            self.registry, self.selection, self.ledger, self.catalog, self.tracker, self.clock
        )

    # Team actions

    def register(self, name: str, members: Iterable[Any]) -> Team:
        if not self.admin.event.registration_open:
            logger.warning(f"Registration attempt for '{name}' while registration is closed")
            raise RegistrationClosed("Registration closed")
        return self.registry.register(name, members)

    def login(self, name: str) -> Team:
        team = self.registry.find_by_name(name)
        if team is None:
            raise NotFound(name)
        return team

    def pay(self, team_id: str, tier: FeeTier, method: PaymentMethod) -> Team:
        """Charge through the payment gateway, if any, then mark the team paid.

        The team's lock is held across the charge, so concurrent payments for
        one team charge the gateway once.
        """
        with self.registry.mutate(team_id) as team:
            if team.paid:
                return team.model_copy(deep=True)
            if self.payment_gateway is not None:
                amount = compute_amount(FeeTier(tier), len(team.members))
                charged = self.payment_gateway.charge(
                    team.model_copy(deep=True), FeeTier(tier), PaymentMethod(method), amount
                )
                if not charged:
                    logger.warning(f"Payment of {amount} for team {team_id} was not confirmed")
                    raise PaymentRequired("Payment was not confirmed")
            return self.registry.mark_paid(team_id, tier, method)

    def select_problem(self, team_id: str, problem_id: str) -> Team:
        if self.catalog.all() and not self.catalog.contains(problem_id):
            raise UnknownProblem(f"Unknown problem statement: {problem_id}")
        return self.selection.select(team_id, problem_id, self.clock.now_ms())

    def selection_state(self, team_id: str) -> SelectionState:
        return self.selection.state(self.registry.get(team_id))

    def is_locked(self, team_id: str) -> bool:
        return self.selection.is_locked(self.registry.get(team_id))

    def lock_remaining_ms(self, team_id: str) -> int:
        return self.selection.remaining_ms(self.registry.get(team_id))

    def submit_repo(self, team_id: str, url: str) -> Team:
        return self.registry.set_repo_url(team_id, url)

    def poll_commits(self, team_id: str) -> List[CommitRecord]:
        return self.tracker.poll(self.registry.get(team_id))

    def poll_all(self) -> Dict[str, PollOutcome]:
        """Poll every team that has submitted a repository."""
        return self.tracker.poll_many(t for t in self.registry.all() if t.repo_url)

    def commits(self, team_id: str) -> List[CommitRecord]:
        return self.tracker.snapshot(team_id)

    def sync_state(self, team_id: str) -> SyncState:
        return self.tracker.sync_state(team_id)

    # Judge actions

    def submit_score(self, team_id: str, judge_id: str, scores: Mapping[str, Any],
                     notes: str = "") -> JudgeScore:
        self.registry.get(team_id)
        return self.ledger.submit(team_id, judge_id, scores, notes, self.clock.now_ms())

    def aggregate(self, team_id: str, policy: Optional[AggregationPolicy] = None) -> ScoreAggregate:
        return self.ledger.aggregate(team_id, policy)

    def leaderboard(self, policy: Optional[AggregationPolicy] = None) -> List[LeaderboardRow]:
        return project_leaderboard(self.registry.all(), self.ledger, policy)

    # Bulk registration

    def import_teams(self, csv_file: str) -> Tuple[List[Team], Dict[str, str]]:
        """Register every roster in a CSV file; failures are collected per team name."""
        registered: List[Team] = []
        failures: Dict[str, str] = {}
        for roster in CSVTeamLoader(csv_file).load_rosters():
            try:
                registered.append(self.register(roster.team_name, roster.members))
            except EngineError as e:
                failures[roster.team_name] = e.message
        logger.info(f"Imported {len(registered)} teams, {len(failures)} rejected")
        return registered, failures

    # Persistence

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            teams=self.registry.all(),
            scores=self.ledger.all(),
            event=self.admin.event,
            custom_problems=self.catalog.custom(),
        )

    def save(self) -> None:
        self.store.save(self.snapshot())

    def load(self) -> bool:
        """Restore state from the store. Returns False when nothing was saved."""
        snapshot = self.store.load()
        if snapshot is None:
            return False
        self.registry.load(snapshot.teams)
        self.ledger.load(snapshot.scores)
        self.admin.restore_event(snapshot.event)
        self.catalog.restore_custom(snapshot.custom_problems)
        self.tracker.reset()
        return True

    def close(self) -> None:
        close = getattr(self.tracker.commit_source, "close", None)
        if close is not None:
            close()
