# eventlink/domain/grouping.py

from dataclasses import dataclass

from eventlink.config.settings import settings


@dataclass(frozen=True)
class MatchingOptions:
    target_size: int = 6
    min_size: int = 3
    max_size: int = 10
    merge_candidate_max: int = 6
    top_interests: int = 2

    @classmethod
    def from_settings(cls) -> "MatchingOptions":
        return cls(
            target_size=settings.TARGET_GROUP_SIZE,
            min_size=settings.MIN_GROUP_SIZE,
            max_size=settings.MAX_GROUP_SIZE,
            merge_candidate_max=settings.MERGE_CANDIDATE_MAX_SIZE,
            top_interests=settings.TOP_INTERESTS,
        )
