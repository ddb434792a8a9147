import threading

import pytest

from sprint_core import (
    CommitRecord,
    CompetitionEngine,
    Difficulty,
    ManualClock,
    ProblemStatement,
)

START_MS = 1_700_000_000_000
WINDOW_MS = 10 * 60 * 1000


def members(count=2):
    return [
        {"name": f"Member {i}", "email": f"m{i}@example.com", "contact": "9999999999"}
        for i in range(1, count + 1)
    ]


def commits(*shas):
    return [
        CommitRecord(sha=sha, message=f"commit {sha}", author="Ana", date="2026-03-10T09:00:00Z")
        for sha in shas
    ]


class FakeCommitSource:
    """Returns queued results in order; exceptions in the queue are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def fetch_commits(self, repo_url):
        self.calls.append(repo_url)
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class BlockingCommitSource:
    def __init__(self):
        self.release = threading.Event()

    def fetch_commits(self, repo_url):
        self.release.wait(5)
        return []


PROBLEMS = [
    ProblemStatement(id="PS-01", title="Smart Campus Navigator", difficulty=Difficulty.MEDIUM,
                     tags=["Maps", "UX"], summary="Indoor/outdoor wayfinding."),
    ProblemStatement(id="PS-02", title="Attendance Insights Dashboard", difficulty=Difficulty.EASY,
                     tags=["Analytics"], summary="Attendance trends and alerts."),
    ProblemStatement(id="PS-03", title="Energy Saver for Labs", difficulty=Difficulty.HARD,
                     tags=["IoT"], summary="Simulate lab schedules."),
]


@pytest.fixture
def clock():
    return ManualClock(START_MS)


@pytest.fixture
def source():
    return FakeCommitSource()


@pytest.fixture
def engine(clock, source):
    eng = CompetitionEngine(
        clock=clock,
        problems=PROBLEMS,
        commit_source=source,
        lock_window_ms=WINDOW_MS,
        payment_required=True,
        poll_timeout_seconds=2,
    )
    yield eng
    eng.close()
