# eventlink/domain/stores.py
"""
Storage interfaces the matching services depend on.

The SQLAlchemy repositories in eventlink.infrastructure.repositories implement
them; any store offering the same semantics (conditional group assignment,
conditional deactivation) can be swapped in.
"""
from typing import Any, List, Optional, Protocol, Sequence


class ProfileStore(Protocol):
    def query_unassigned(self) -> List[Any]: ...

    def query_orphaned(self) -> List[Any]: ...

    def get(self, profile_id: str) -> Optional[Any]: ...

    def put(self, profile: Any) -> Any: ...

    def assign_group(
        self,
        profile_id: str,
        group_id: Optional[str],
        group_size: int,
        is_mentor: bool,
        expected_group_id: Optional[str] = None,
    ) -> bool: ...

    def count_unassigned(self) -> int: ...


class GroupStore(Protocol):
    def query_active(self) -> List[Any]: ...

    def query_active_under(self, size_threshold: int) -> List[Any]: ...

    def get(self, group_id: str) -> Optional[Any]: ...

    def put(self, group: Any) -> Any: ...

    def create(
        self,
        name: str,
        description: str,
        interests: Sequence[str],
        members: Sequence[Any],
        mentor_ids: Sequence[str],
        origin: str = "matched",
        parent_ids: Sequence[str] = (),
    ) -> Any: ...

    def deactivate(self, group_id: str, reason: str) -> bool: ...

    def query_active_without_members(self) -> List[Any]: ...

    def query_active_with_drift(self) -> List[Any]: ...

    def member_profiles(self, group: Any) -> List[Any]: ...
