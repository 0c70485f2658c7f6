import logging
from collections import deque
from typing import List, Set

from sqlalchemy.orm import Session

from eventlink.domain.errors import ConflictError, InconsistentStateError, MatchingError
from eventlink.domain.grouping import MatchingOptions
from eventlink.domain.matching import (
    find_merge_candidate,
    merge_interests,
    merged_group_description,
    merged_group_name,
    split_group_name,
    split_members,
)
from eventlink.domain.models import MatchingSummary
from eventlink.domain.stores import GroupStore
from eventlink.infrastructure.db.session import SessionLocal, unit_of_work
from eventlink.infrastructure.models import Group
from eventlink.infrastructure.repositories.group_repo import GroupRepo
from eventlink.services.group_service import GroupService, note_unmentored

logger = logging.getLogger(__name__)

SPLIT_REASON = "split: oversized"
MERGE_REASON = "merged: undersized"
ORPHAN_REASON = "orphaned: no members"
DRIFT_REASON = "retired: member drift"


class RebalanceService:
    """Group Size Rebalancer: splits oversized and merges undersized active groups."""

    def __init__(
        self,
        db: Session = None,
        group_service: GroupService = None,
        group_repo: GroupStore = None,
        options: MatchingOptions = None,
    ):
        self.db = db or SessionLocal()
        self.options = options or MatchingOptions.from_settings()
        self.group_repo = group_repo or GroupRepo(self.db)
        self.group_service = group_service or GroupService(
            self.db, group_repo=self.group_repo, options=self.options
        )

    def rebalance(self, summary: MatchingSummary = None) -> MatchingSummary:
        """
        One pass over the active groups. Every split or merge is its own unit
        of work; a failed unit is recorded and the pass moves on.
        """
        summary = summary or MatchingSummary()
        with unit_of_work(self.db):
            queue = deque(self.group_repo.query_active())

        handled: Set[str] = set()
        while queue:
            group = queue.popleft()
            if group.id in handled or not group.is_active:
                continue

            if group.group_size > self.options.max_size:
                try:
                    with unit_of_work(self.db):
                        children = self.split(group)
                except InconsistentStateError as e:
                    self._retire_orphan(group, e, summary)
                    handled.add(group.id)
                    continue
                except MatchingError as e:
                    logger.warning(f"Split of {group.id} abandoned: {e}")
                    summary.record_failure(f"split:{group.id}", e)
                    handled.add(group.id)
                    continue
                handled.add(group.id)
                summary.groups_split += 1
                for child in children:
                    note_unmentored(summary, child)
                    if child.group_size > self.options.max_size:
                        queue.append(child)

            elif group.group_size < self.options.min_size:
                try:
                    with unit_of_work(self.db):
                        merged = self.try_merge(group, handled)
                except InconsistentStateError as e:
                    self._retire_orphan(group, e, summary)
                    handled.add(group.id)
                    continue
                except MatchingError as e:
                    logger.warning(f"Merge of {group.id} abandoned: {e}")
                    summary.record_failure(f"merge:{group.id}", e)
                    handled.add(group.id)
                    continue
                if merged is None:
                    logger.info(f"Undersized group {group.id} has no merge partner yet")
                    continue
                handled.update(merged.parent_ids)
                summary.groups_merged += 1
                note_unmentored(summary, merged)
                if merged.group_size < self.options.min_size:
                    queue.append(merged)

        return summary

    def split(self, group: Group) -> List[Group]:
        members = self.group_repo.member_profiles(group)
        if not self.group_repo.deactivate(group.id, SPLIT_REASON):
            raise ConflictError(f"group {group.id} was already retired")
        if not members:
            raise InconsistentStateError(group.id, "active group has no member profiles")
        first, second = split_members(members)

        expected = {m.id: group.id for m in members}
        children = []
        for part, half in enumerate((first, second), start=1):
            children.append(self.group_service.place_members(
                half,
                name=split_group_name(group.name, part),
                description=group.description,
                interests=group.interests,
                origin="split",
                parent_ids=[group.id],
                expected_group_ids=expected,
            ))
        logger.info(f"Split {group.id} into {[c.id for c in children]}")
        return children

    def try_merge(self, group: Group, handled: Set[str]):
        candidates = self.group_repo.query_active_under(self.options.merge_candidate_max)
        partner = find_merge_candidate(group, candidates, self.options, exclude=handled)
        if partner is None:
            return None
        return self.merge(group, partner)

    def merge(self, group: Group, partner: Group) -> Group:
        own = self.group_repo.member_profiles(group)
        theirs = self.group_repo.member_profiles(partner)
        # a lost race surfaces as ConflictError
        for g in (group, partner):
            if not self.group_repo.deactivate(g.id, MERGE_REASON):
                raise ConflictError(f"group {g.id} was already retired")
        if not own:
            raise InconsistentStateError(group.id, "active group has no member profiles")
        if not theirs:
            raise ConflictError(f"merge partner {partner.id} has no member profiles")

        interests = merge_interests(group.interests, partner.interests)

        expected = {m.id: group.id for m in own}
        expected.update({m.id: partner.id for m in theirs})
        merged = self.group_service.place_members(
            own + theirs,
            name=merged_group_name(interests),
            description=merged_group_description(group.name, partner.name),
            interests=interests,
            origin="merged",
            parent_ids=[group.id, partner.id],
            expected_group_ids=expected,
        )
        logger.info(f"Merged {group.id} and {partner.id} into {merged.id}")
        return merged

    def _retire_orphan(self, group: Group, error: InconsistentStateError, summary: MatchingSummary):
        logger.warning(f"Inconsistent state: {error}")
        summary.record_anomaly("inconsistent_state", error.subject_id, error.detail)
        try:
            with unit_of_work(self.db):
                self.group_repo.deactivate(group.id, ORPHAN_REASON)
        except MatchingError as e:
            summary.record_failure(f"retire:{group.id}", e)
