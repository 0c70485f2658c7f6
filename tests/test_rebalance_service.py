# tests/test_rebalance_service.py
import pytest

from eventlink.domain.errors import ConflictError
from eventlink.infrastructure.db.session import unit_of_work
from eventlink.infrastructure.repositories.group_repo import GroupRepo
from eventlink.infrastructure.repositories.profile_repo import ProfileRepo
from eventlink.services.rebalance_service import RebalanceService

from conftest import OPTIONS


def rebalance(db):
    return RebalanceService(db, options=OPTIONS).rebalance()


def test_split_eleven_into_five_and_six(db, make_group):
    parent = make_group(11, ["Technology", "AI/ML"], levels=list(range(1, 12)))
    member_ids = parent.member_ids

    summary = rebalance(db)

    assert summary.groups_split == 1
    repo = GroupRepo(db)
    parent = repo.get(parent.id)
    assert not parent.is_active
    assert parent.deactivated_reason == "split: oversized"

    children = repo.query_active()
    assert sorted(c.group_size for c in children) == [5, 6]
    assert [c.name for c in children] == [f"{parent.name} - Part 1", f"{parent.name} - Part 2"]
    for c in children:
        assert c.parent_ids == [parent.id]
        assert c.interests == ["Technology", "AI/ML"]

    # first half by list order goes to part 1
    assert children[0].member_ids == member_ids[:5]
    assert children[1].member_ids == member_ids[5:]

    profiles = ProfileRepo(db)
    for c in children:
        for pid in c.member_ids:
            p = profiles.get(pid)
            assert p.group_id == c.id
            assert p.group_size == c.group_size
            assert p.is_mentor == (pid in c.mentor_ids)


def test_split_recomputes_mentors_per_child(db, make_group):
    make_group(11, ["Technology"], levels=[1, 1, 1, 1, 9, 1, 1, 1, 1, 1, 1])

    rebalance(db)

    first, second = GroupRepo(db).query_active()
    assert first.mentor_ids == ["p005"]
    assert second.mentor_ids == []


def test_huge_group_converges_in_one_pass(db, make_group):
    make_group(25, ["Technology"])

    summary = rebalance(db)

    active = GroupRepo(db).query_active()
    assert summary.groups_split == 3
    assert sorted(g.group_size for g in active) == [6, 6, 6, 7]
    assert sum(g.group_size for g in active) == 25


def test_merge_two_small_groups_sharing_interest(db, make_group):
    a = make_group(2, ["Technology", "AI/ML"])
    b = make_group(2, ["Technology", "Web Development"])
    members = set(a.member_ids) | set(b.member_ids)

    summary = rebalance(db)

    assert summary.groups_merged == 1
    repo = GroupRepo(db)
    for old in (repo.get(a.id), repo.get(b.id)):
        assert not old.is_active
        assert old.deactivated_reason == "merged: undersized"

    (merged,) = repo.query_active()
    assert merged.group_size == 4
    assert set(merged.member_ids) == members
    assert merged.interests == ["Technology", "AI/ML", "Web Development"]
    assert merged.parent_ids == [a.id, b.id]
    assert merged.origin == "merged"
    for pid in members:
        assert ProfileRepo(db).get(pid).group_id == merged.id


def test_undersized_group_prefers_most_shared_interests(db, make_group):
    small = make_group(2, ["Technology", "AI/ML"])
    make_group(4, ["Technology", "Design"])
    best = make_group(5, ["AI/ML", "Technology"])

    rebalance(db)

    (merged,) = [g for g in GroupRepo(db).query_active() if g.origin == "merged"]
    assert merged.parent_ids == [small.id, best.id]
    assert merged.group_size == 7


def test_undersized_group_without_partner_left_alone(db, make_group):
    lonely = make_group(2, ["Music"])
    make_group(4, ["Design"])

    summary = rebalance(db)

    assert summary.groups_merged == 0
    assert summary.ok
    assert GroupRepo(db).get(lonely.id).is_active


def test_groups_in_bounds_untouched_and_pass_repeatable(db, make_group):
    make_group(3, ["Technology"])
    make_group(10, ["Technology"])
    before = {g.id: g.member_ids for g in GroupRepo(db).query_active()}

    first = rebalance(db)
    second = rebalance(db)

    for s in (first, second):
        assert (s.groups_split, s.groups_merged) == (0, 0)
    assert {g.id: g.member_ids for g in GroupRepo(db).query_active()} == before


def retire_elsewhere(session_factory, group_id, reason):
    other = session_factory()
    try:
        with unit_of_work(other):
            assert GroupRepo(other).deactivate(group_id, reason)
    finally:
        other.close()


def test_split_already_done_by_another_cycle_is_a_conflict(db, session_factory, make_group):
    g = make_group(11, ["Technology"])
    retire_elsewhere(session_factory, g.id, "split: oversized")

    with pytest.raises(ConflictError):
        with unit_of_work(db):
            RebalanceService(db, options=OPTIONS).split(g)

    assert GroupRepo(db).query_active() == []


def test_merge_with_retired_group_is_a_conflict(db, session_factory, make_group):
    a = make_group(2, ["Technology"])
    b = make_group(2, ["Technology"])
    retire_elsewhere(session_factory, a.id, "merged: undersized")

    with pytest.raises(ConflictError):
        with unit_of_work(db):
            RebalanceService(db, options=OPTIONS).merge(a, b)

    assert [g.id for g in GroupRepo(db).query_active()] == [b.id]
