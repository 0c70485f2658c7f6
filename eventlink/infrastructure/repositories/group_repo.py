from typing import List, Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from eventlink.infrastructure.db.session import SessionLocal
from eventlink.infrastructure.models import Group, GroupMember, Profile, new_group_id, now


class GroupRepo:
    """Group store. Same transaction contract as ProfileRepo."""

    def __init__(self, db: Session = None):
        self.db = db or SessionLocal()

    def create(
        self,
        name: str,
        description: str,
        interests: Sequence[str],
        members: Sequence[Profile],
        mentor_ids: Sequence[str],
        origin: str = "matched",
        parent_ids: Sequence[str] = (),
    ) -> Group:
        mentor_set = set(mentor_ids)
        g = Group(
            id=new_group_id(),
            name=name,
            description=description,
            interests=list(interests),
            is_active=True,
            group_size=len(members),
            origin=origin,
            parent_ids=list(parent_ids),
        )
        g.members = [
            GroupMember(profile_id=p.id, position=i, is_mentor=p.id in mentor_set)
            for i, p in enumerate(members)
        ]
        self.db.add(g)
        self.db.flush()
        return g

    def get(self, group_id: str) -> Optional[Group]:
        return self.db.get(Group, group_id)

    def put(self, group: Group) -> Group:
        self.db.add(group)
        self.db.flush()
        return group

    def query_active(self) -> List[Group]:
        stmt = select(Group).where(Group.is_active.is_(True)).order_by(Group.id)
        return list(self.db.execute(stmt).scalars().all())

    def query_active_under(self, size_threshold: int) -> List[Group]:
        stmt = (
            select(Group)
            .where(Group.is_active.is_(True), Group.group_size < size_threshold)
            .order_by(Group.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def query_active_without_members(self) -> List[Group]:
        current = select(GroupMember.id).where(
            GroupMember.group_id == Group.id, GroupMember.left_at.is_(None)
        )
        stmt = (
            select(Group)
            .where(Group.is_active.is_(True), ~current.exists())
            .order_by(Group.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def query_active_with_drift(self) -> List[Group]:
        """Active groups holding an open member row whose profile points elsewhere."""
        drifted = (
            select(GroupMember.id)
            .join(Profile, Profile.id == GroupMember.profile_id)
            .where(
                GroupMember.group_id == Group.id,
                GroupMember.left_at.is_(None),
                or_(Profile.group_id.is_(None), Profile.group_id != GroupMember.group_id),
            )
        )
        stmt = (
            select(Group)
            .where(Group.is_active.is_(True), drifted.exists())
            .order_by(Group.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def member_profiles(self, group: Group) -> List[Profile]:
        """Current members, joined from the profile store, in group list order."""
        stmt = (
            select(Profile)
            .join(GroupMember, GroupMember.profile_id == Profile.id)
            .where(GroupMember.group_id == group.id, GroupMember.left_at.is_(None))
            .order_by(GroupMember.position)
        )
        return list(self.db.execute(stmt).scalars().all())

    def deactivate(self, group_id: str, reason: str) -> bool:
        """
        Retire a group, keeping it for lineage. Only succeeds while the group
        is still active; its membership rows are closed.
        """
        ts = now()
        result = self.db.execute(
            update(Group)
            .where(Group.id == group_id, Group.is_active.is_(True))
            .values(is_active=False, deactivated_reason=reason, deactivated_at=ts)
        )
        if result.rowcount != 1:
            return False
        self.db.execute(
            update(GroupMember)
            .where(GroupMember.group_id == group_id, GroupMember.left_at.is_(None))
            .values(left_at=ts)
        )
        return True
