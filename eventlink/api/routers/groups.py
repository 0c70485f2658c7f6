# eventlink/api/routers/groups.py
"""
Group read-out: active groups and group details with members joined from the
profile store.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from eventlink.domain.models import GroupDTO, ProfileDTO
from eventlink.infrastructure.db.session import get_db
from eventlink.infrastructure.models import Group
from eventlink.infrastructure.repositories.group_repo import GroupRepo

router = APIRouter()


def group_to_dto(group: Group, repo: GroupRepo) -> GroupDTO:
    if group.is_active:
        members = repo.member_profiles(group)
    else:
        # retired groups report the membership they had when they were retired
        members = [m.profile for m in group.members]
    return GroupDTO(
        id=group.id,
        name=group.name,
        description=group.description,
        interests=group.interests or [],
        is_active=group.is_active,
        group_size=group.group_size,
        origin=group.origin,
        parent_ids=group.parent_ids or [],
        deactivated_reason=group.deactivated_reason,
        mentors=group.mentor_ids,
        members=[ProfileDTO.model_validate(p) for p in members],
    )


@router.get("/", response_model=List[GroupDTO], summary="List active groups")
def list_groups(db: Session = Depends(get_db)):
    repo = GroupRepo(db)
    return [group_to_dto(g, repo) for g in repo.query_active()]


@router.get("/{group_id}", response_model=GroupDTO, summary="Get group details")
def get_group(group_id: str, db: Session = Depends(get_db)):
    repo = GroupRepo(db)
    g = repo.get(group_id)
    if not g:
        raise HTTPException(status_code=404, detail="group not found")
    return group_to_dto(g, repo)
