"""
Leaderboard projection from the registry and the scoring ledger.
"""
from typing import Iterable, List, Optional

from .ledger import AggregationPolicy, ScoringLedger
from .models import LeaderboardRow, Team


def project_leaderboard(teams: Iterable[Team], ledger: ScoringLedger,
                        policy: Optional[AggregationPolicy] = None) -> List[LeaderboardRow]:
    """Rank teams by aggregate total, earliest registration first on ties.

    Teams without scores are listed with a zero total. Reads only.
    """
    entries = []
    for team in teams:
        aggregate = ledger.aggregate(team.team_id, policy)
        entries.append((team, aggregate.total, aggregate.judge_count))

    entries.sort(key=lambda e: (-e[1], e[0].created_at_ms, e[0].seq))

    return [
        LeaderboardRow(rank=i + 1, team=team, aggregate_total=total, judge_count=judges)
        for i, (team, total, judges) in enumerate(entries)
    ]
