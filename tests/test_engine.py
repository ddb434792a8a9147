import threading
import time

import pytest

from sprint_core import (
    CompetitionEngine,
    Difficulty,
    FeeTier,
    JsonFileStore,
    MemoryStore,
    NoRepo,
    NotFound,
    PaymentMethod,
    PaymentRequired,
    ProblemStatement,
    RegistrationClosed,
    SelectionState,
    UnknownProblem,
    UpstreamError,
)
from sprint_core.github_client import GitHubAPIError

from conftest import PROBLEMS, START_MS, WINDOW_MS, FakeCommitSource, commits, members


class StubGateway:
    def __init__(self, confirm=True):
        self.confirm = confirm
        self.charges = []

    def charge(self, team, tier, method, amount):
        self.charges.append((team.team_id, tier, method, amount))
        return self.confirm


def _paid_team(engine, name="Byte Me"):
    team = engine.register(name, members())
    return engine.pay(team.team_id, FeeTier.REGULAR, PaymentMethod.CARD)


def test_team_journey(engine, clock, source):
    team = engine.register("Byte Me", members(3))
    assert engine.login("byte me").team_id == team.team_id

    with pytest.raises(PaymentRequired):
        engine.select_problem(team.team_id, "PS-01")

    team = engine.pay(team.team_id, FeeTier.REGULAR, PaymentMethod.CARD)
    assert team.payment.amount == 450

    engine.select_problem(team.team_id, "PS-01")
    assert engine.selection_state(team.team_id) == SelectionState.SELECTED
    clock.advance(WINDOW_MS // 2)
    team = engine.select_problem(team.team_id, "PS-02")
    assert team.selection.selected_at_ms == START_MS
    clock.advance(WINDOW_MS // 2)
    assert engine.selection_state(team.team_id) == SelectionState.LOCKED

    with pytest.raises(NoRepo):
        engine.poll_commits(team.team_id)
    engine.submit_repo(team.team_id, "https://github.com/octo/hack")
    source.results.append(commits("abc1234"))
    assert [c.sha for c in engine.poll_commits(team.team_id)] == ["abc1234"]
    assert engine.sync_state(team.team_id).last_synced_at_ms == START_MS + WINDOW_MS


def test_registration_closed(engine):
    engine.admin.set_registration_open(False)
    with pytest.raises(RegistrationClosed):
        engine.register("Late Team", members())
    engine.admin.set_registration_open(True)
    assert engine.register("Late Team", members()).team_name == "Late Team"


def test_login_unknown_team(engine):
    with pytest.raises(NotFound):
        engine.login("ghosts")


def test_unknown_problem_rejected(engine):
    team = _paid_team(engine)
    with pytest.raises(UnknownProblem):
        engine.select_problem(team.team_id, "PS-404")
    assert engine.registry.get(team.team_id).selection.selected_at_ms is None


def test_custom_problem_selectable(engine):
    team = _paid_team(engine)
    engine.admin.add_problem(ProblemStatement(id="PS-50", title="On-Spot", difficulty=Difficulty.EASY))
    team = engine.select_problem(team.team_id, "PS-50")
    assert team.selection.problem_id == "PS-50"


def test_engine_without_catalog_accepts_any_problem(clock):
    engine = CompetitionEngine(clock=clock, commit_source=FakeCommitSource(), lock_window_ms=WINDOW_MS,
                               payment_required=False)
    team = engine.register("Byte Me", members())
    team = engine.select_problem(team.team_id, "anything")
    assert team.selection.problem_id == "anything"
    engine.close()


def test_pay_through_gateway(clock):
    gateway = StubGateway()
    engine = CompetitionEngine(clock=clock, problems=PROBLEMS, commit_source=FakeCommitSource(),
                               payment_gateway=gateway, lock_window_ms=WINDOW_MS, payment_required=True)
    team = engine.register("Byte Me", members(4))
    engine.pay(team.team_id, FeeTier.EARLY, PaymentMethod.UPI)
    engine.pay(team.team_id, FeeTier.EARLY, PaymentMethod.UPI)
    assert gateway.charges == [(team.team_id, FeeTier.EARLY, PaymentMethod.UPI, 440)]
    assert engine.registry.get(team.team_id).paid is True
    engine.close()


def test_concurrent_payments_charge_once(clock):
    class SlowGateway(StubGateway):
        def charge(self, team, tier, method, amount):
            time.sleep(0.2)
            return super().charge(team, tier, method, amount)

    gateway = SlowGateway()
    engine = CompetitionEngine(clock=clock, problems=PROBLEMS, commit_source=FakeCommitSource(),
                               payment_gateway=gateway, lock_window_ms=WINDOW_MS, payment_required=True)
    team = engine.register("Byte Me", members())
    results = []

    def pay():
        results.append(engine.pay(team.team_id, FeeTier.EARLY, PaymentMethod.UPI))

    threads = [threading.Thread(target=pay) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(gateway.charges) == 1
    assert len(results) == 2
    assert results[0].payment.receipt_id == results[1].payment.receipt_id
    engine.close()


def test_declined_payment_leaves_team_unpaid(clock):
    engine = CompetitionEngine(clock=clock, problems=PROBLEMS, commit_source=FakeCommitSource(),
                               payment_gateway=StubGateway(confirm=False), lock_window_ms=WINDOW_MS,
                               payment_required=True)
    team = engine.register("Byte Me", members())
    with pytest.raises(PaymentRequired):
        engine.pay(team.team_id, FeeTier.EARLY, PaymentMethod.UPI)
    team = engine.registry.get(team.team_id)
    assert team.paid is False
    assert team.payment is None
    engine.close()


def test_scoring_requires_known_team(engine):
    with pytest.raises(NotFound):
        engine.submit_score("missing", "judge-a", {"code_quality": 10})


def test_leaderboard_from_engine(engine):
    a = engine.register("Alpha", members())
    b = engine.register("Beta", members())
    engine.submit_score(b.team_id, "judge-a", {"code_quality": 25, "final_submission": 25})
    engine.submit_score(a.team_id, "judge-a", {"code_quality": 10})
    rows = engine.leaderboard()
    assert [r.team.team_name for r in rows] == ["Beta", "Alpha"]
    assert engine.aggregate(b.team_id).total == 50


def test_poll_all_skips_teams_without_repo(engine, source):
    a = engine.register("Alpha", members())
    engine.register("Beta", members())
    engine.submit_repo(a.team_id, "https://github.com/octo/alpha")
    source.results.append(GitHubAPIError("GitHub API error (502): bad gateway", status=502))
    outcomes = engine.poll_all()
    assert list(outcomes) == [a.team_id]
    assert isinstance(outcomes[a.team_id].error, UpstreamError)


def test_snapshot_round_trip_through_memory_store(clock):
    store = MemoryStore()
    engine = CompetitionEngine(clock=clock, problems=PROBLEMS, store=store, commit_source=FakeCommitSource(),
                               lock_window_ms=WINDOW_MS, payment_required=True)
    team = _paid_team(engine)
    engine.select_problem(team.team_id, "PS-03")
    engine.submit_repo(team.team_id, "https://github.com/octo/hack")
    engine.submit_score(team.team_id, "judge-a", {"code_quality": 18})
    engine.admin.start_sprint(10)
    engine.admin.add_problem(ProblemStatement(id="PS-77", title="Extra", difficulty=Difficulty.MEDIUM))
    engine.save()
    engine.close()

    restored = CompetitionEngine(clock=clock, problems=PROBLEMS, store=store, commit_source=FakeCommitSource(),
                                 lock_window_ms=WINDOW_MS, payment_required=True)
    assert restored.load() is True
    again = restored.registry.get(team.team_id)
    assert again.selection.problem_id == "PS-03"
    assert again.selection.selected_at_ms == START_MS
    assert again.repo_url == "https://github.com/octo/hack"
    assert again.payment.receipt_id == team.payment.receipt_id
    assert restored.aggregate(team.team_id).per_criterion["code_quality"] == 18
    assert restored.admin.deadline_ms() == START_MS + 10 * 3_600_000
    assert restored.catalog.contains("PS-77")

    second = restored.register("Second", members())
    assert second.seq == again.seq + 1
    restored.close()


def test_load_with_empty_store(engine):
    assert engine.load() is False


def test_json_file_store(tmp_path, clock):
    path = tmp_path / "state" / "engine.json"
    engine = CompetitionEngine(clock=clock, problems=PROBLEMS, store=JsonFileStore(str(path)),
                               commit_source=FakeCommitSource(), lock_window_ms=WINDOW_MS)
    team = engine.register("Byte Me", members())
    engine.save()
    engine.close()
    assert path.exists()
    assert not list(path.parent.glob("*.tmp"))

    restored = CompetitionEngine(clock=clock, problems=PROBLEMS, store=JsonFileStore(str(path)),
                                 commit_source=FakeCommitSource(), lock_window_ms=WINDOW_MS)
    assert restored.load() is True
    assert restored.login("Byte Me").team_id == team.team_id
    restored.close()


def test_import_teams_from_csv(tmp_path, engine):
    csv_file = tmp_path / "teams.csv"
    csv_file.write_text(
        "team_name,member_name,email,contact\n"
        "Byte Me,Ana,ana@example.com,111\n"
        "Byte Me,Bob,bob@example.com,\n"
        "Solo,Cara,cara@example.com,\n"
        "Null Pointers,Dan,dan@example.com,\n"
        "null pointers,Eve,eve@example.com,222\n",
        encoding="utf-8",
    )
    registered, failures = engine.import_teams(str(csv_file))
    assert [t.team_name for t in registered] == ["Byte Me", "Null Pointers"]
    assert list(failures) == ["Solo"]
    assert engine.login("byte me").members[0].contact == "111"


def test_import_teams_missing_columns(tmp_path, engine):
    csv_file = tmp_path / "teams.csv"
    csv_file.write_text("team,name\nA,B\n", encoding="utf-8")
    with pytest.raises(ValueError, match="missing columns"):
        engine.import_teams(str(csv_file))


def test_import_teams_missing_file(engine):
    with pytest.raises(FileNotFoundError):
        engine.import_teams("/nonexistent/teams.csv")
