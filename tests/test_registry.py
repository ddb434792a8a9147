import pytest

from sprint_core import FeeTier, InvalidRoster, InvalidUrl, NotFound, PaymentMethod, TeamRegistry

from conftest import START_MS, members


@pytest.mark.parametrize("count", [2, 3, 4])
def test_register_accepts_valid_roster_sizes(clock, count):
    registry = TeamRegistry(clock)
    team = registry.register(f"Team {count}", members(count))
    assert len(team.members) == count
    assert team.created_at_ms == START_MS
    assert team.paid is False
    assert team.selection.problem_id is None
    assert registry.get(team.team_id) == team


@pytest.mark.parametrize("count", [0, 1, 5])
def test_register_rejects_roster_size(clock, count):
    registry = TeamRegistry(clock)
    with pytest.raises(InvalidRoster):
        registry.register("Byte Me", members(count))
    assert len(registry) == 0


def test_register_requires_member_name_and_email(clock):
    registry = TeamRegistry(clock)
    with pytest.raises(InvalidRoster):
        registry.register("Byte Me", [{"name": "Ana", "email": "ana@example.com"}, {"name": " ", "email": "b@example.com"}])
    with pytest.raises(InvalidRoster):
        registry.register("Byte Me", [{"name": "Ana", "email": "ana@example.com"}, {"name": "Bob", "email": ""}])
    with pytest.raises(InvalidRoster):
        registry.register("Byte Me", [{"name": "Ana", "email": "ana@example.com"}, {"name": "Bob", "email": "not-an-email"}])


def test_register_rejects_duplicate_name_case_insensitive(clock):
    registry = TeamRegistry(clock)
    registry.register("Null Pointers", members())
    with pytest.raises(InvalidRoster, match="already registered"):
        registry.register("  null pointers ", members())


def test_member_contact_is_optional(clock):
    registry = TeamRegistry(clock)
    team = registry.register("Byte Me", [{"name": "Ana", "email": "ana@example.com"}, {"name": "Bob", "email": "bob@example.com"}])
    assert team.members[0].contact == ""


def test_find_by_name_is_case_insensitive(clock):
    registry = TeamRegistry(clock)
    team = registry.register("Null Pointers", members())
    assert registry.find_by_name("NULL POINTERS").team_id == team.team_id
    assert registry.find_by_name("Other") is None


def test_mark_paid_records_receipt_and_is_idempotent(clock):
    registry = TeamRegistry(clock)
    team = registry.register("Byte Me", members(3))
    paid = registry.mark_paid(team.team_id, FeeTier.EARLY, PaymentMethod.UPI)
    assert paid.paid is True
    assert paid.payment.amount == 330
    assert paid.payment.members_count == 3
    assert paid.payment.receipt_id.startswith("HX2-")
    receipt_id = paid.payment.receipt_id

    clock.advance(1000)
    again = registry.mark_paid(team.team_id, FeeTier.REGULAR, PaymentMethod.CARD)
    assert again.paid is True
    assert again.payment.receipt_id == receipt_id
    assert again.payment.tier == FeeTier.EARLY


def test_mark_paid_unknown_team():
    registry = TeamRegistry()
    with pytest.raises(NotFound):
        registry.mark_paid("nope", FeeTier.EARLY, PaymentMethod.UPI)


def test_set_repo_url_normalizes_and_overwrites(clock):
    registry = TeamRegistry(clock)
    team = registry.register("Byte Me", members())
    updated = registry.set_repo_url(team.team_id, "https://github.com/octo/hack.git")
    assert updated.repo_url == "https://github.com/octo/hack"
    registry.set_repo_url(team.team_id, "https://www.github.com/octo/other/tree/main")
    assert registry.get(team.team_id).repo_url == "https://github.com/octo/other"


@pytest.mark.parametrize("url", [
    "",
    "not a url",
    "https://gitlab.com/octo/hack",
    "https://github.com/octo",
    "ftp://github.com/octo/hack",
])
def test_set_repo_url_rejects_unsupported(clock, url):
    registry = TeamRegistry(clock)
    team = registry.register("Byte Me", members())
    with pytest.raises(InvalidUrl):
        registry.set_repo_url(team.team_id, url)
    assert registry.get(team.team_id).repo_url is None


def test_set_repo_url_unknown_team():
    registry = TeamRegistry()
    with pytest.raises(NotFound):
        registry.set_repo_url("nope", "https://github.com/octo/hack")


def test_remove_and_reset(clock):
    registry = TeamRegistry(clock)
    a = registry.register("Alpha", members())
    registry.register("Beta", members())
    registry.remove(a.team_id)
    with pytest.raises(NotFound):
        registry.get(a.team_id)
    registry.reset()
    assert registry.all() == []


def test_returned_teams_are_copies(clock):
    registry = TeamRegistry(clock)
    team = registry.register("Byte Me", members())
    team.paid = True
    team.selection.locked = True

    fetched = registry.get(team.team_id)
    assert fetched.paid is False
    assert fetched.selection.locked is False

    fetched.repo_url = "https://github.com/octo/hack"
    registry.all()[0].members.clear()
    registry.find_by_name("Byte Me").team_name = "Renamed"

    stored = registry.get(team.team_id)
    assert stored.repo_url is None
    assert len(stored.members) == 2
    assert stored.team_name == "Byte Me"

    paid = registry.mark_paid(team.team_id, FeeTier.EARLY, PaymentMethod.UPI)
    paid.payment = None
    assert registry.get(team.team_id).payment is not None
