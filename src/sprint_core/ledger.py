"""
Scoring ledger: judge submissions and per-team aggregates.

Submissions are append-only. A judge may score the same team several times;
every revision is retained and the aggregation policy decides which of them
count.
"""
import logging
import math
import threading
from enum import Enum
from numbers import Real
from typing import Dict, Iterable, List, Mapping, Optional, Any

from .clock import Clock, SystemClock
from .models import (
    JudgeScore, ScoreAggregate, MAX_CRITERION_SCORE, MAX_NOTES_LENGTH, SCORE_CRITERIA
)

logger = logging.getLogger(__name__)

MAX_TOTAL_SCORE = MAX_CRITERION_SCORE * len(SCORE_CRITERIA)


class AggregationPolicy(str, Enum):
    ALL = "all"
    LATEST_PER_JUDGE = "latest_per_judge"


def clamp_score(value: Any) -> int:
    """Coerce a criterion score into [0, 25]; out-of-range values are clamped."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValueError(f"Score must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"Score must be finite, got {value!r}")
    return max(0, min(MAX_CRITERION_SCORE, int(round(value))))


class ScoringLedger:
    """Append-only store of judge scores."""

    def __init__(self, clock: Optional[Clock] = None,
                 policy: AggregationPolicy = AggregationPolicy.ALL):
        self.clock = clock or SystemClock()
        self.policy = policy
        self._scores: List[JudgeScore] = []
        self._lock = threading.Lock()
        self._judge_locks: Dict[str, threading.Lock] = {}

    def _judge_lock(self, judge_id: str) -> threading.Lock:
        with self._lock:
            return self._judge_locks.setdefault(judge_id, threading.Lock())

    def submit(self, team_id: str, judge_id: str, scores: Mapping[str, Any],
               notes: str = "", now_ms: Optional[int] = None) -> JudgeScore:
        """Record a judge's scores for a team. Missing criteria count as 0."""
        values = {}
        for key in SCORE_CRITERIA:
            raw = scores.get(key, 0)
            values[key] = clamp_score(raw)
            if values[key] != raw:
                logger.warning(f"Judge {judge_id} {key}={raw!r} for team {team_id} clamped to {values[key]}")

        with self._judge_lock(judge_id):
            record = JudgeScore(
                team_id=team_id,
                judge_id=judge_id,
                notes=(notes or "")[:MAX_NOTES_LENGTH],
                created_at_ms=self.clock.now_ms() if now_ms is None else now_ms,
                **values,
            )
            with self._lock:
                self._scores.append(record)

        logger.info(f"Judge {judge_id} scored team {team_id}: {record.total}/{MAX_TOTAL_SCORE}")
        return record

    def history(self, team_id: str) -> List[JudgeScore]:
        """All submissions for a team in submission order."""
        with self._lock:
            return [s for s in self._scores if s.team_id == team_id]

    def all(self) -> List[JudgeScore]:
        with self._lock:
            return list(self._scores)

    def _counted(self, team_id: str, policy: AggregationPolicy) -> List[JudgeScore]:
        history = self.history(team_id)
        if policy == AggregationPolicy.LATEST_PER_JUDGE:
            latest: Dict[str, JudgeScore] = {}
            for score in history:
                latest[score.judge_id] = score
            return list(latest.values())
        return history

    def aggregate(self, team_id: str, policy: Optional[AggregationPolicy] = None) -> ScoreAggregate:
        """Per-criterion means over the counted submissions and their sum."""
        counted = self._counted(team_id, AggregationPolicy(policy or self.policy))

        if not counted:
            return ScoreAggregate(
                team_id=team_id,
                per_criterion={key: 0.0 for key in SCORE_CRITERIA},
                total=0.0,
                judge_count=0,
                submission_count=0,
            )

        per_criterion = {
            key: sum(getattr(s, key) for s in counted) / len(counted)
            for key in SCORE_CRITERIA
        }
        total = max(0.0, min(float(MAX_TOTAL_SCORE), sum(per_criterion.values())))

        return ScoreAggregate(
            team_id=team_id,
            per_criterion=per_criterion,
            total=total,
            judge_count=len({s.judge_id for s in counted}),
            submission_count=len(counted),
        )

    def clear(self, team_id: str) -> int:
        """Drop every score for a team. Returns how many were removed."""
        with self._lock:
            before = len(self._scores)
            self._scores = [s for s in self._scores if s.team_id != team_id]
            removed = before - len(self._scores)
        logger.info(f"Cleared {removed} score(s) for team {team_id}")
        return removed

    def reset(self) -> None:
        with self._lock:
            self._scores.clear()

    def load(self, scores: Iterable[JudgeScore]) -> None:
        with self._lock:
            self._scores = list(scores)
