from .admin import AdminControl
from .catalog import ProblemCatalog
from .clock import Clock, ManualClock, SystemClock, format_duration, ms_until
from .engine import CompetitionEngine
from .errors import (
    EngineError,
    InvalidRoster,
    InvalidSprint,
    InvalidUrl,
    NoRepo,
    NotFound,
    PaymentRequired,
    RegistrationClosed,
    SelectionLocked,
    UnknownProblem,
    UpstreamError,
)
from .github_client import GitHubAPIError, GitHubClient, parse_repo_url
from .leaderboard import project_leaderboard
from .ledger import AggregationPolicy, ScoringLedger, clamp_score
from .models import (
    CommitRecord,
    CompetitionEvent,
    Difficulty,
    EngineSnapshot,
    FeeTier,
    JudgeScore,
    LeaderboardRow,
    PaymentMethod,
    ProblemStatement,
    ScoreAggregate,
    Selection,
    SelectionState,
    Team,
    TeamMember,
)
from .persistence import JsonFileStore, MemoryStore
from .registry import TeamRegistry
from .selection import SelectionLock, is_locked
from .tracker import PollOutcome, RepositoryTracker

__all__ = [
    "AdminControl",
    "AggregationPolicy",
    "Clock",
    "CommitRecord",
    "CompetitionEngine",
    "CompetitionEvent",
    "Difficulty",
    "EngineError",
    "EngineSnapshot",
    "FeeTier",
    "GitHubAPIError",
    "GitHubClient",
    "InvalidRoster",
    "InvalidSprint",
    "InvalidUrl",
    "JsonFileStore",
    "JudgeScore",
    "LeaderboardRow",
    "ManualClock",
    "MemoryStore",
    "NoRepo",
    "NotFound",
    "PaymentMethod",
    "PaymentRequired",
    "PollOutcome",
    "ProblemCatalog",
    "ProblemStatement",
    "RegistrationClosed",
    "RepositoryTracker",
    "ScoreAggregate",
    "ScoringLedger",
    "Selection",
    "SelectionLock",
    "SelectionLocked",
    "SelectionState",
    "SystemClock",
    "Team",
    "TeamMember",
    "TeamRegistry",
    "UnknownProblem",
    "UpstreamError",
    "clamp_score",
    "format_duration",
    "is_locked",
    "ms_until",
    "parse_repo_url",
    "project_leaderboard",
]
