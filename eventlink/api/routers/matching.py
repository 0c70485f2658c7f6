# eventlink/api/routers/matching.py
from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from eventlink.domain.errors import MatchingError
from eventlink.domain.models import MatchingSummary, MatchTaskDTO
from eventlink.infrastructure.db.session import get_db, unit_of_work
from eventlink.infrastructure.repositories.profile_repo import ProfileRepo
from eventlink.infrastructure.repositories.task_repo import TaskRepo
from eventlink.services.matching_service import MatchingService

router = APIRouter()


class EnqueueReq(BaseModel):
    profile_id: str
    reason: Literal["check_in", "profile_completed", "manual"] = "manual"


@router.post("/run", response_model=MatchingSummary, summary="Run one matching cycle")
def run_matching(db: Session = Depends(get_db)):
    try:
        return MatchingService(db).run_matching()
    except MatchingError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/tasks", response_model=List[MatchTaskDTO], summary="List pending matching tasks")
def list_tasks(db: Session = Depends(get_db)):
    return [MatchTaskDTO.model_validate(t) for t in TaskRepo(db).list_pending()]


@router.post("/tasks", response_model=MatchTaskDTO, summary="Signal that an attendee needs matching")
def enqueue_task(req: EnqueueReq, db: Session = Depends(get_db)):
    if not ProfileRepo(db).get(req.profile_id):
        raise HTTPException(status_code=404, detail="profile not found")
    with unit_of_work(db):
        task = TaskRepo(db).enqueue(req.profile_id, reason=req.reason)
    return MatchTaskDTO.model_validate(task)
