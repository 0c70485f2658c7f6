import asyncio
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from eventlink.domain.errors import InconsistentStateError, MatchingError
from eventlink.domain.grouping import MatchingOptions
from eventlink.domain.matching import partition_by_interests, render_key
from eventlink.domain.models import MatchingSummary
from eventlink.domain.stores import GroupStore, ProfileStore
from eventlink.infrastructure.db.session import SessionLocal, unit_of_work
from eventlink.infrastructure.repositories.group_repo import GroupRepo
from eventlink.infrastructure.repositories.profile_repo import ProfileRepo
from eventlink.infrastructure.repositories.task_repo import TaskRepo
from eventlink.services.group_service import GroupService, note_unmentored
from eventlink.services.rebalance_service import DRIFT_REASON, ORPHAN_REASON, RebalanceService

logger = logging.getLogger(__name__)


class MatchingService:
    """
    Matching Orchestrator.

    run_matching() is the single entry point: heal dangling references, group
    the pending attendees bucket by bucket, then rebalance the active groups.
    Safe to call repeatedly; with nothing pending and every group in bounds it
    changes nothing.
    """

    def __init__(
        self,
        db: Session = None,
        profile_repo: ProfileStore = None,
        group_repo: GroupStore = None,
        task_repo: TaskRepo = None,
        options: MatchingOptions = None,
    ):
        self.db = db or SessionLocal()
        self.options = options or MatchingOptions.from_settings()
        self.profile_repo = profile_repo or ProfileRepo(self.db)
        self.group_repo = group_repo or GroupRepo(self.db)
        self.task_repo = task_repo or TaskRepo(self.db)
        self.group_service = GroupService(
            self.db, self.profile_repo, self.group_repo, self.options
        )
        self.rebalancer = RebalanceService(
            self.db, self.group_service, self.group_repo, self.options
        )

    def run_matching(self) -> MatchingSummary:
        """
        Run one matching cycle.

        Per-unit failures (one bucket, one split or merge) are collected in the
        summary and never abort the cycle. Raises MatchingError only when a scan
        itself cannot be read.
        """
        summary = MatchingSummary()
        with unit_of_work(self.db):
            task_ids = [t.id for t in self.task_repo.list_pending()]

        self.heal(summary)
        self.match_pending(summary)
        self.rebalancer.rebalance(summary)

        with unit_of_work(self.db):
            if summary.ok:
                summary.tasks_processed = self.task_repo.mark_done(task_ids)
            summary.profiles_unassigned = self.profile_repo.count_unassigned()

        logger.info(
            f"Matching cycle done: created={summary.groups_created} "
            f"split={summary.groups_split} merged={summary.groups_merged} "
            f"unassigned={summary.profiles_unassigned} failures={len(summary.failures)}"
        )
        return summary

    def match_pending(self, summary: MatchingSummary) -> MatchingSummary:
        with unit_of_work(self.db):
            pending = self.profile_repo.query_unassigned()
        if not pending:
            return summary

        buckets = partition_by_interests(pending, self.options.top_interests)
        logger.info(f"{len(pending)} pending profile(s) in {len(buckets)} interest bucket(s)")
        for key, cohort in buckets.items():
            signature = render_key(key)
            try:
                with unit_of_work(self.db):
                    groups, _ = self.group_service.build_bucket(signature, cohort)
            except MatchingError as e:
                logger.warning(f"Bucket '{signature}' abandoned for this cycle: {e}")
                summary.record_failure(f"bucket:{signature}", e)
                continue
            summary.groups_created += len(groups)
            for g in groups:
                note_unmentored(summary, g)
        return summary

    def heal(self, summary: MatchingSummary) -> MatchingSummary:
        """
        Reset profiles pointing at a missing or retired group back to pending,
        and retire active groups left without members.

        An active group holding a member whose profile points elsewhere is
        retired first and its remaining members released, so nobody sits in
        two active groups and the released attendees are regrouped this cycle.
        """
        self._retire_drifted(summary)

        with unit_of_work(self.db):
            orphans = self.profile_repo.query_orphaned()
            empty_groups = self.group_repo.query_active_without_members()

        for p in orphans:
            stale = p.group_id
            try:
                with unit_of_work(self.db):
                    reset = self.profile_repo.assign_group(
                        p.id, None, group_size=0, is_mentor=False, expected_group_id=stale
                    )
            except MatchingError as e:
                summary.record_failure(f"heal:{p.id}", e)
                continue
            if reset:
                self._report(summary, InconsistentStateError(p.id, f"group {stale} is missing or retired"))

        for g in empty_groups:
            try:
                with unit_of_work(self.db):
                    retired = self.group_repo.deactivate(g.id, ORPHAN_REASON)
            except MatchingError as e:
                summary.record_failure(f"heal:{g.id}", e)
                continue
            if retired:
                self._report(summary, InconsistentStateError(g.id, "active group has no member profiles"))
        return summary

    def _retire_drifted(self, summary: MatchingSummary):
        with unit_of_work(self.db):
            drifted = self.group_repo.query_active_with_drift()

        for g in drifted:
            try:
                with unit_of_work(self.db):
                    members = self.group_repo.member_profiles(g)
                    retired = self.group_repo.deactivate(g.id, DRIFT_REASON)
                    # only members still pointing here are released
                    released = [
                        p.id for p in members
                        if retired and self.profile_repo.assign_group(
                            p.id, None, group_size=0, is_mentor=False, expected_group_id=g.id
                        )
                    ]
            except MatchingError as e:
                summary.record_failure(f"heal:{g.id}", e)
                continue
            if retired:
                self._report(
                    summary,
                    InconsistentStateError(
                        g.id, f"member rows out of sync with profiles; released {released}"
                    ),
                )

    def _report(self, summary: MatchingSummary, error: InconsistentStateError):
        logger.warning(f"Inconsistent state healed: {error}")
        summary.record_anomaly("inconsistent_state", error.subject_id, error.detail)


def run_pending(session_factory: Callable[[], Session] = SessionLocal) -> Optional[MatchingSummary]:
    """Run one cycle if the work queue holds pending tasks."""
    db = session_factory()
    try:
        with unit_of_work(db):
            pending = TaskRepo(db).list_pending()
        if not pending:
            return None
        return MatchingService(db).run_matching()
    finally:
        db.close()


async def poll_worker(session_factory: Callable[[], Session] = SessionLocal, poll_interval: int = 60):
    """Background loop consuming the matching work queue."""
    while True:
        try:
            summary = await asyncio.to_thread(run_pending, session_factory)
            if summary is not None and not summary.ok:
                logger.warning(f"Matching cycle finished with {len(summary.failures)} failure(s)")
        except MatchingError:
            logger.exception("Matching cycle failed")
        except Exception:
            # keep the worker alive; the tasks stay pending for the next tick
            logger.exception("Unexpected error in matching poll worker")
        await asyncio.sleep(poll_interval)
