from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from eventlink.infrastructure.db.session import SessionLocal
from eventlink.infrastructure.models import Group, GroupMember, Profile, now

# coarse experience level -> expertise level on the 1-10 scale
EXPERIENCE_LEVELS = {"beginner": 3, "intermediate": 6, "expert": 9}
DEFAULT_EXPERTISE = 5


def expertise_from_experience(experience_level: Optional[str], interests: List[str]) -> List[int]:
    level = EXPERIENCE_LEVELS.get((experience_level or "").lower(), DEFAULT_EXPERTISE)
    return [level for _ in interests]


class ProfileRepo:
    """
    Profile store. Writes are flushed, not committed; callers own the
    transaction (see unit_of_work).
    """

    def __init__(self, db: Session = None):
        self.db = db or SessionLocal()

    def create(
        self,
        profile_id: str,
        display_name: str = None,
        email: str = None,
        bio: str = None,
        interests: List[str] = None,
        expertise_levels: List[int] = None,
        experience_level: str = None,
    ) -> Profile:
        interests = list(interests or [])
        if expertise_levels is None:
            expertise_levels = expertise_from_experience(experience_level, interests)
        p = Profile(
            id=profile_id,
            display_name=display_name,
            email=email,
            bio=bio,
            interests=interests,
            expertise_levels=list(expertise_levels),
            experience_level=experience_level,
            is_mentor=False,
            group_id=None,
            group_size=0,
        )
        self.db.add(p)
        self.db.flush()
        return p

    def get(self, profile_id: str) -> Optional[Profile]:
        return self.db.get(Profile, profile_id)

    def put(self, profile: Profile) -> Profile:
        self.db.add(profile)
        self.db.flush()
        return profile

    def query_unassigned(self) -> List[Profile]:
        stmt = (
            select(Profile)
            .where(Profile.group_id.is_(None))
            .order_by(Profile.created_at, Profile.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def count_unassigned(self) -> int:
        stmt = select(func.count(Profile.id)).where(Profile.group_id.is_(None))
        return self.db.execute(stmt).scalar_one()

    def query_orphaned(self) -> List[Profile]:
        """Profiles whose group_id is not backed by a current membership of an active group."""
        current = (
            select(GroupMember.id)
            .join(Group, Group.id == GroupMember.group_id)
            .where(
                GroupMember.profile_id == Profile.id,
                GroupMember.group_id == Profile.group_id,
                GroupMember.left_at.is_(None),
                Group.is_active.is_(True),
            )
        )
        stmt = (
            select(Profile)
            .where(Profile.group_id.is_not(None), ~current.exists())
            .order_by(Profile.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_by_group(self, group_id: str) -> List[Profile]:
        stmt = select(Profile).where(Profile.group_id == group_id).order_by(Profile.id)
        return list(self.db.execute(stmt).scalars().all())

    def assign_group(
        self,
        profile_id: str,
        group_id: Optional[str],
        group_size: int,
        is_mentor: bool,
        expected_group_id: Optional[str] = None,
    ) -> bool:
        """
        Point a profile at a group only if its current group_id still equals
        expected_group_id (None: still unassigned). Returns False when another
        writer got there first.
        """
        stmt = update(Profile).where(Profile.id == profile_id)
        if expected_group_id is None:
            stmt = stmt.where(Profile.group_id.is_(None))
        else:
            stmt = stmt.where(Profile.group_id == expected_group_id)
        stmt = stmt.values(
            group_id=group_id,
            group_size=group_size,
            is_mentor=is_mentor,
            updated_at=now(),
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1
