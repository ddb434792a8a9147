"""
Repository tracker: last known commit snapshot per team.

A poll either replaces a team's snapshot wholesale or leaves it untouched.
Failures never clear what was previously fetched. Nothing here retries; the
caller decides how often to poll.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

from .clock import Clock, SystemClock
from .config import config
from .errors import EngineError, NoRepo, UpstreamError
from .github_client import GitHubAPIError
from .models import CommitRecord, SyncState, SyncStatus, Team

logger = logging.getLogger(__name__)


class CommitSource(Protocol):
    def fetch_commits(self, repo_url: str) -> List[CommitRecord]:
        ...


@dataclass
class PollOutcome:
    """Result of polling one team in a batch."""
    team_id: str
    commits: Optional[List[CommitRecord]] = None
    error: Optional[EngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RepositoryTracker:
    """Polls a commit source and keeps the last good snapshot per team."""

    def __init__(self, commit_source: CommitSource, clock: Optional[Clock] = None,
                 timeout_seconds: Optional[float] = None):
        self.commit_source = commit_source
        self.clock = clock or SystemClock()
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else config.engine.poll_timeout_seconds
        )
        self._lock = threading.Lock()
        self._snapshots: Dict[str, List[CommitRecord]] = {}
        self._sync: Dict[str, SyncState] = {}

    def _set_sync(self, team_id: str, **changes) -> None:
        with self._lock:
            current = self._sync.get(team_id, SyncState())
            self._sync[team_id] = current.model_copy(update=changes)

    def _fetch(self, team_id: str, repo_url: str) -> List[CommitRecord]:
        """Run one fetch on its own worker thread, bounded by the poll timeout.

        A fetch that never returns only ties up its own thread; it cannot
        delay another team's poll.
        """
        result: Dict[str, object] = {}

        def run():
            try:
                result["commits"] = list(self.commit_source.fetch_commits(repo_url))
            except Exception as e:
                result["error"] = e

        worker = threading.Thread(target=run, name=f"commit-poll-{team_id}", daemon=True)
        worker.start()
        worker.join(self.timeout_seconds)

        if worker.is_alive():
            raise UpstreamError(f"timed out after {self.timeout_seconds:g}s")

        error = result.get("error")
        if isinstance(error, GitHubAPIError):
            raise UpstreamError(str(error), status=error.status)
        if error is not None:
            raise UpstreamError(str(error) or error.__class__.__name__)
        return result["commits"]

    def poll(self, team: Team) -> List[CommitRecord]:
        """Fetch the team's commits and replace its snapshot."""
        if not team.repo_url:
            raise NoRepo(f"Team {team.team_name} has not submitted a repository")

        self._set_sync(team.team_id, status=SyncStatus.SYNCING)
        try:
            commits = self._fetch(team.team_id, team.repo_url)
        except UpstreamError as e:
            self._set_sync(team.team_id, status=SyncStatus.ERROR, error_message=e.detail)
            logger.warning(f"Commit poll for team {team.team_id} failed: {e.detail}")
            raise

        now_ms = self.clock.now_ms()
        with self._lock:
            self._snapshots[team.team_id] = commits
            self._sync[team.team_id] = SyncState(status=SyncStatus.OK, last_synced_at_ms=now_ms)
        logger.info(f"Synced {len(commits)} commits for team {team.team_id}")
        return list(commits)

    def poll_many(self, teams: Iterable[Team]) -> Dict[str, PollOutcome]:
        """Poll several teams at once; one slow or failing repo does not hold up the rest."""
        teams = list(teams)
        outcomes: Dict[str, PollOutcome] = {}
        if not teams:
            return outcomes

        with ThreadPoolExecutor(max_workers=len(teams), thread_name_prefix="commit-batch") as pool:
            futures = {team.team_id: pool.submit(self.poll, team) for team in teams}
            for team_id, future in futures.items():
                try:
                    outcomes[team_id] = PollOutcome(team_id=team_id, commits=future.result())
                except EngineError as e:
                    outcomes[team_id] = PollOutcome(team_id=team_id, error=e)
        return outcomes

    def snapshot(self, team_id: str) -> List[CommitRecord]:
        with self._lock:
            return list(self._snapshots.get(team_id, []))

    def sync_state(self, team_id: str) -> SyncState:
        with self._lock:
            return self._sync.get(team_id, SyncState())

    def last_synced_at(self, team_id: str) -> Optional[int]:
        return self.sync_state(team_id).last_synced_at_ms

    def forget(self, team_id: str) -> None:
        with self._lock:
            self._snapshots.pop(team_id, None)
            self._sync.pop(team_id, None)

    def reset(self) -> None:
        with self._lock:
            self._snapshots.clear()
            self._sync.clear()
