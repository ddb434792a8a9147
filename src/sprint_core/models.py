"""
Data models for the competition session engine.
"""
import re
from typing import List, Optional, Dict
from pydantic import BaseModel, Field, field_validator
from enum import Enum


MIN_TEAM_SIZE = 2
MAX_TEAM_SIZE = 4
MAX_CRITERION_SCORE = 25
MAX_NOTES_LENGTH = 2000
SCORE_CRITERIA = ("commit_frequency", "code_quality", "problem_relevance", "final_submission")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Difficulty(str, Enum):
    """Problem statement difficulty."""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class FeeTier(str, Enum):
    EARLY = "early"
    REGULAR = "regular"


class PaymentMethod(str, Enum):
    UPI = "UPI"
    CARD = "Card"
    NET_BANKING = "NetBanking"


class SelectionState(str, Enum):
    """Where a team is in the problem selection lifecycle."""
    UNSELECTED = "unselected"
    SELECTED = "selected"
    LOCKED = "locked"


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    OK = "ok"
    ERROR = "error"


class TeamMember(BaseModel):
    """Represents a hackathon team member."""
    name: str
    email: str
    contact: str = ""

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Member name is required")
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Member email is required")
        if not _EMAIL_RE.match(v):
            raise ValueError(f"Invalid member email: {v}")
        return v


class Selection(BaseModel):
    """Problem statement choice and its lock anchor."""
    problem_id: Optional[str] = None
    selected_at_ms: Optional[int] = None
    locked: bool = False


class PaymentReceipt(BaseModel):
    """Receipt recorded when a payment is confirmed."""
    receipt_id: str
    tier: FeeTier
    method: PaymentMethod
    amount: int
    members_count: int
    paid_at_ms: int


class Team(BaseModel):
    """Represents a hackathon team."""
    team_id: str
    team_name: str
    members: List[TeamMember]
    created_at_ms: int
    seq: int = 0
    paid: bool = False
    payment: Optional[PaymentReceipt] = None
    repo_url: Optional[str] = None
    selection: Selection = Field(default_factory=Selection)

    @field_validator('team_name')
    @classmethod
    def validate_team_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Team name must be at least 2 characters")
        return v

    @field_validator('members')
    @classmethod
    def validate_team_size(cls, v):
        if len(v) < MIN_TEAM_SIZE or len(v) > MAX_TEAM_SIZE:
            raise ValueError(
                f"Team size must be between {MIN_TEAM_SIZE} and {MAX_TEAM_SIZE}, got {len(v)}"
            )
        return v


class ProblemStatement(BaseModel):
    """Reference problem statement offered to teams."""
    id: str
    title: str
    difficulty: Difficulty
    tags: List[str] = Field(default_factory=list)
    summary: str = ""


class CommitRecord(BaseModel):
    """One entry of a team's commit snapshot."""
    sha: str
    message: str
    author: str
    date: str


class SyncState(BaseModel):
    """Last known outcome of commit polling for a team."""
    status: SyncStatus = SyncStatus.IDLE
    last_synced_at_ms: Optional[int] = None
    error_message: Optional[str] = None


class JudgeScore(BaseModel):
    """A single score submission from a judge."""
    team_id: str
    judge_id: str
    commit_frequency: int = Field(ge=0, le=MAX_CRITERION_SCORE)
    code_quality: int = Field(ge=0, le=MAX_CRITERION_SCORE)
    problem_relevance: int = Field(ge=0, le=MAX_CRITERION_SCORE)
    final_submission: int = Field(ge=0, le=MAX_CRITERION_SCORE)
    notes: str = ""
    created_at_ms: int

    @property
    def total(self) -> int:
        return sum(getattr(self, key) for key in SCORE_CRITERIA)


class ScoreAggregate(BaseModel):
    """Per-criterion means and total for one team."""
    team_id: str
    per_criterion: Dict[str, float]
    total: float
    judge_count: int
    submission_count: int


class CompetitionEvent(BaseModel):
    """Admin-owned competition clock and registration flag."""
    registration_open: bool = True
    sprint_start_ms: Optional[int] = None
    sprint_end_ms: Optional[int] = None
    sprint_hours: Optional[float] = None

    @property
    def started(self) -> bool:
        return self.sprint_start_ms is not None

    def running_at(self, now_ms: int) -> bool:
        """True while the sprint has started and its end is still ahead."""
        return self.started and self.sprint_end_ms is not None and now_ms < self.sprint_end_ms


class LeaderboardRow(BaseModel):
    """Ranked team entry."""
    rank: int
    team: Team
    aggregate_total: float
    judge_count: int


class EngineSnapshot(BaseModel):
    """Everything the persistence collaborator stores."""
    teams: List[Team] = Field(default_factory=list)
    scores: List[JudgeScore] = Field(default_factory=list)
    event: CompetitionEvent = Field(default_factory=CompetitionEvent)
    custom_problems: List[ProblemStatement] = Field(default_factory=list)
