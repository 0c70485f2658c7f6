# eventlink/domain/errors.py
"""Error taxonomy of the matching engine."""


class MatchingError(Exception):
    """Base class. Raised out of a matching run only when a whole scan fails."""
    pass


class TransientStoreError(MatchingError):
    """A read or write to the profile/group store failed recoverably."""
    pass


class ConflictError(MatchingError):
    """A conditional write lost against a concurrent writer."""
    pass


class InconsistentStateError(MatchingError):
    """A profile points at a missing group, or a group has no member profiles."""

    def __init__(self, subject_id: str, detail: str):
        super().__init__(f"{subject_id}: {detail}")
        self.subject_id = subject_id
        self.detail = detail
