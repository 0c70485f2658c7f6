# tests/test_group_service.py
import pytest

from eventlink.domain.errors import ConflictError
from eventlink.infrastructure.db.session import unit_of_work
from eventlink.infrastructure.repositories.group_repo import GroupRepo
from eventlink.infrastructure.repositories.profile_repo import ProfileRepo
from eventlink.services.group_service import GroupService

from conftest import OPTIONS

AI = ["Technology", "AI/ML"]


def build(db, signature="AI/ML_Technology"):
    cohort = ProfileRepo(db).query_unassigned()
    with unit_of_work(db):
        return GroupService(db, options=OPTIONS).build_bucket(signature, cohort)


def test_bucket_of_eight_forms_one_group_with_remainder(db, make_profile):
    for lvl in [9, 8, 5, 5, 4, 3, 3, 3]:
        make_profile(AI, levels=[lvl])

    groups, unplaced = build(db)

    assert unplaced == []
    assert len(groups) == 1
    g = groups[0]
    assert g.group_size == 8
    assert g.is_active
    assert g.interests == AI
    assert g.name == "Group 1 - Technology & AI/ML"

    # mean 5 -> the 9 and the 8 mentor
    assert g.mentor_ids == ["p001", "p002"]
    for p in GroupRepo(db).member_profiles(g):
        assert p.group_id == g.id
        assert p.group_size == 8
        assert p.is_mentor == (p.id in g.mentor_ids)


def test_two_profiles_stay_pending(db, make_profile):
    make_profile(AI)
    make_profile(AI)

    groups, unplaced = build(db)

    assert groups == []
    assert [p.id for p in unplaced] == ["p001", "p002"]
    assert GroupRepo(db).query_active() == []
    assert ProfileRepo(db).count_unassigned() == 2


def test_twelve_profiles_form_two_groups(db, make_profile):
    for _ in range(12):
        make_profile(AI)

    groups, _ = build(db)

    assert [g.group_size for g in groups] == [6, 6]
    assert len({g.id for g in groups}) == 2


def test_lost_conditional_write_rolls_back_bucket(db, make_profile):
    for _ in range(6):
        make_profile(AI)
    cohort = ProfileRepo(db).query_unassigned()

    # a concurrent run grabs one attendee after we read the pending set
    with unit_of_work(db):
        ProfileRepo(db).assign_group("p003", "group_elsewhere", 6, False)

    with pytest.raises(ConflictError):
        with unit_of_work(db):
            GroupService(db, options=OPTIONS).build_bucket("AI/ML_Technology", cohort)

    assert GroupRepo(db).query_active() == []
    assert ProfileRepo(db).get("p001").group_id is None
    assert ProfileRepo(db).get("p003").group_id == "group_elsewhere"
