import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from eventlink.domain.errors import ConflictError
from eventlink.domain.grouping import MatchingOptions
from eventlink.domain.matching import (
    assign_mentors,
    chunk_cohort,
    matched_group_description,
    matched_group_name,
    union_interests,
)
from eventlink.domain.models import MatchingSummary
from eventlink.domain.stores import GroupStore, ProfileStore
from eventlink.infrastructure.db.session import SessionLocal
from eventlink.infrastructure.models import Group, Profile
from eventlink.infrastructure.repositories.group_repo import GroupRepo
from eventlink.infrastructure.repositories.profile_repo import ProfileRepo

logger = logging.getLogger(__name__)


def note_unmentored(summary: MatchingSummary, group: Group):
    if not group.mentor_ids:
        summary.record_anomaly(
            "no_mentor", group.id, f"no member of {group.group_size} scores above the group mean"
        )


class GroupService:
    """Group Builder: turns interest cohorts into persisted, mentored groups."""

    def __init__(
        self,
        db: Session = None,
        profile_repo: ProfileStore = None,
        group_repo: GroupStore = None,
        options: MatchingOptions = None,
    ):
        self.db = db or SessionLocal()
        self.profile_repo = profile_repo or ProfileRepo(self.db)
        self.group_repo = group_repo or GroupRepo(self.db)
        self.options = options or MatchingOptions.from_settings()

    def build_bucket(self, signature: str, cohort: Sequence[Profile]) -> Tuple[List[Group], List[Profile]]:
        """
        Create the groups for one interest cohort. Must run inside a unit of
        work; returns (created groups, profiles left unplaced).
        """
        chunks, unplaced = chunk_cohort(cohort, self.options)
        created = []
        for i, members in enumerate(chunks):
            interests = union_interests(members, self.options.top_interests)
            created.append(self.place_members(
                members,
                name=matched_group_name(i + 1, interests),
                description=matched_group_description(interests),
                interests=interests,
            ))
        if unplaced:
            logger.info(f"{len(unplaced)} profile(s) in bucket '{signature}' wait for a later cycle")
        return created, unplaced

    def place_members(
        self,
        members: Sequence[Profile],
        name: str,
        description: str,
        interests: Sequence[str],
        origin: str = "matched",
        parent_ids: Sequence[str] = (),
        expected_group_ids: Optional[Dict[str, str]] = None,
    ) -> Group:
        """
        Write a new group and point every member at it.

        Each profile write is conditional on the member still holding the group
        id listed in expected_group_ids (absent: still unassigned). One lost
        write raises ConflictError so the enclosing unit rolls back as a whole.
        """
        expected_group_ids = expected_group_ids or {}
        mentors = assign_mentors(members)
        mentor_ids = [m.id for m in mentors]
        group = self.group_repo.create(
            name=name,
            description=description,
            interests=interests,
            members=members,
            mentor_ids=mentor_ids,
            origin=origin,
            parent_ids=parent_ids,
        )
        mentor_set = set(mentor_ids)
        for m in members:
            ok = self.profile_repo.assign_group(
                m.id,
                group.id,
                group_size=len(members),
                is_mentor=m.id in mentor_set,
                expected_group_id=expected_group_ids.get(m.id),
            )
            if not ok:
                raise ConflictError(f"profile {m.id} was moved by another writer")

        if not mentor_ids:
            logger.warning(f"Group {group.id} ({group.name}) has no mentor")
        logger.info(f"Created {origin} group {group.id} with {len(members)} members")
        return group
