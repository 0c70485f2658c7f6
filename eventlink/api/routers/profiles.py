# eventlink/api/routers/profiles.py
"""
Profile setup and check-in. Both only record the attendee and enqueue a
matching task; grouping happens in the matching cycle.
"""
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from eventlink.domain.models import GroupDTO, MatchTaskDTO, ProfileDTO
from eventlink.infrastructure.db.session import get_db, unit_of_work
from eventlink.infrastructure.repositories.group_repo import GroupRepo
from eventlink.infrastructure.repositories.profile_repo import ProfileRepo
from eventlink.infrastructure.repositories.task_repo import TaskRepo
from eventlink.api.routers.groups import group_to_dto

router = APIRouter()


class CreateProfileReq(BaseModel):
    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    expertise_levels: Optional[List[int]] = None
    experience_level: Optional[Literal["beginner", "intermediate", "expert"]] = None


@router.post("/", response_model=ProfileDTO, summary="Complete profile setup")
def create_profile(req: CreateProfileReq, db: Session = Depends(get_db)):
    repo = ProfileRepo(db)
    if repo.get(req.id):
        raise HTTPException(status_code=409, detail="profile already exists")
    if req.expertise_levels and any(not 1 <= lvl <= 10 for lvl in req.expertise_levels):
        raise HTTPException(status_code=422, detail="expertise levels must be between 1 and 10")
    with unit_of_work(db):
        p = repo.create(
            req.id,
            display_name=req.display_name,
            email=req.email,
            bio=req.bio,
            interests=req.interests,
            expertise_levels=req.expertise_levels,
            experience_level=req.experience_level,
        )
        TaskRepo(db).enqueue(p.id, reason="profile_completed")
    return ProfileDTO.model_validate(p)


@router.get("/{profile_id}", response_model=ProfileDTO, summary="Get a profile")
def get_profile(profile_id: str, db: Session = Depends(get_db)):
    p = ProfileRepo(db).get(profile_id)
    if not p:
        raise HTTPException(status_code=404, detail="profile not found")
    return ProfileDTO.model_validate(p)


@router.post("/{profile_id}/checkin", response_model=MatchTaskDTO, summary="Check in to the event")
def check_in(profile_id: str, db: Session = Depends(get_db)):
    if not ProfileRepo(db).get(profile_id):
        raise HTTPException(status_code=404, detail="profile not found")
    with unit_of_work(db):
        task = TaskRepo(db).enqueue(profile_id, reason="check_in")
    return MatchTaskDTO.model_validate(task)


@router.get("/{profile_id}/group", response_model=GroupDTO, summary="Get the attendee's group")
def get_profile_group(profile_id: str, db: Session = Depends(get_db)):
    p = ProfileRepo(db).get(profile_id)
    if not p:
        raise HTTPException(status_code=404, detail="profile not found")
    if not p.group_id:
        raise HTTPException(status_code=404, detail="profile is awaiting a group")
    repo = GroupRepo(db)
    g = repo.get(p.group_id)
    if not g:
        raise HTTPException(status_code=404, detail="group not found")
    return group_to_dto(g, repo)
