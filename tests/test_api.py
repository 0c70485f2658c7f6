# tests/test_api.py
"""
HTTP flow: profile setup -> check-in -> matching run -> group read-out.
"""
import runpy
import warnings
from types import SimpleNamespace

from fastapi import status
from pydantic.warnings import PydanticDeprecatedSince20

import eventlink.domain.models as models

from conftest import FAKE


def create_profile(client, pid, interests, **extra):
    body = {"id": pid, "display_name": FAKE.name(), "interests": interests}
    body.update(extra)
    return client.post("/api/v1/profiles/", json=body)


def test_index(client):
    response = client.get("/")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "ok"


def test_profile_setup_derives_expertise_and_enqueues(client):
    response = create_profile(client, "alice", ["Technology", "AI/ML"], experience_level="expert")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["group_id"] is None
    assert data["is_mentor"] is False
    assert data["expertise_levels"] == [9, 9]

    tasks = client.get("/api/v1/matching/tasks").json()
    assert [(t["profile_id"], t["reason"]) for t in tasks] == [("alice", "profile_completed")]


def test_duplicate_profile_rejected(client):
    assert create_profile(client, "bob", ["Design"]).status_code == status.HTTP_200_OK
    assert create_profile(client, "bob", ["Design"]).status_code == status.HTTP_409_CONFLICT


def test_expertise_levels_out_of_range(client):
    response = create_profile(client, "carol", ["Design"], expertise_levels=[11])
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_checkin_unknown_profile(client):
    response = client.post("/api/v1/profiles/nobody/checkin")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_full_matching_flow(client):
    levels = [3, 6, 9, 6, 3, 9]
    for i, lvl in enumerate(levels):
        assert create_profile(
            client, f"u{i}", ["Technology", "Web Development"], expertise_levels=[lvl]
        ).status_code == status.HTTP_200_OK
    checkin = client.post("/api/v1/profiles/u0/checkin")
    assert checkin.status_code == status.HTTP_200_OK
    assert checkin.json()["reason"] == "check_in"

    # not grouped until a matching cycle runs
    assert client.get("/api/v1/profiles/u0/group").status_code == status.HTTP_404_NOT_FOUND

    response = client.post("/api/v1/matching/run")
    assert response.status_code == status.HTTP_200_OK
    summary = response.json()
    assert summary["groups_created"] == 1
    assert summary["profiles_unassigned"] == 0
    assert summary["tasks_processed"] == 7
    assert summary["ok"] is True

    group = client.get("/api/v1/profiles/u2/group").json()
    assert group["group_size"] == 6
    assert group["is_active"] is True
    assert sorted(group["mentors"]) == ["u2", "u5"]
    assert [m["id"] for m in group["members"]] == [f"u{i}" for i in range(6)]

    listed = client.get("/api/v1/groups/").json()
    assert [g["id"] for g in listed] == [group["id"]]
    assert client.get(f"/api/v1/groups/{group['id']}").json()["name"] == group["name"]
    assert client.get("/api/v1/matching/tasks").json() == []


def test_unknown_group(client):
    response = client.get("/api/v1/groups/group_nope")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_enqueue_manual_task(client):
    create_profile(client, "dave", ["Music"])
    response = client.post("/api/v1/matching/tasks", json={"profile_id": "dave"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["reason"] == "manual"
    assert len(client.get("/api/v1/matching/tasks").json()) == 2


def test_dto_module_has_no_deprecated_config():
    with warnings.catch_warnings():
        warnings.simplefilter("error", PydanticDeprecatedSince20)
        namespace = runpy.run_path(models.__file__)

    row = SimpleNamespace(
        id="erin", display_name=None, bio=None, interests=["Music"],
        expertise_levels=[5], is_mentor=False, group_id=None, group_size=0,
    )
    assert namespace["ProfileDTO"].model_validate(row).interests == ["Music"]
