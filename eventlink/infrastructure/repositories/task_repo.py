from typing import List, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from eventlink.infrastructure.db.session import SessionLocal
from eventlink.infrastructure.models import MatchTask, now

TASK_REASONS = ("check_in", "profile_completed", "manual")


class TaskRepo:
    """Matching work queue: 'something changed for this attendee' signals."""

    def __init__(self, db: Session = None):
        self.db = db or SessionLocal()

    def enqueue(self, profile_id: str, reason: str = "manual") -> MatchTask:
        if reason not in TASK_REASONS:
            raise ValueError(f"Unknown task reason: {reason}")
        t = MatchTask(profile_id=profile_id, reason=reason, status="pending")
        self.db.add(t)
        self.db.flush()
        return t

    def list_pending(self) -> List[MatchTask]:
        stmt = select(MatchTask).where(MatchTask.status == "pending").order_by(MatchTask.id)
        return list(self.db.execute(stmt).scalars().all())

    def mark_done(self, task_ids: Sequence[int]) -> int:
        if not task_ids:
            return 0
        result = self.db.execute(
            update(MatchTask)
            .where(MatchTask.id.in_(list(task_ids)), MatchTask.status == "pending")
            .values(status="done", processed_at=now())
        )
        return result.rowcount
