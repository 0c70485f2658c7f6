# eventlink/domain/matching.py
"""
Pure domain logic for interest-based group matching.

This module contains only pure functions operating on plain Python objects
(anything exposing the attributes of HasInterests / HasGroupShape). Service-layer
code handles database access and calls these functions with loaded records.

Functions included:
- top_interests / interest_key / interest_signature
- partition_by_interests
- expertise_score / assign_mentors
- chunk_cohort
- union_interests
- split_members
- shared_interest_count / find_merge_candidate
- group naming helpers
"""
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple, TypeVar
from statistics import mean

from eventlink.domain.grouping import MatchingOptions


class HasInterests(Protocol):
    id: str
    interests: List[str]
    expertise_levels: List[int]


class HasGroupShape(Protocol):
    id: str
    interests: List[str]
    group_size: int


P = TypeVar("P", bound=HasInterests)
G = TypeVar("G", bound=HasGroupShape)

SIGNATURE_SEPARATOR = "_"


# ----------------------------
# Interest Partitioner
# ----------------------------

def top_interests(interests: Optional[Sequence[str]], n: int = 2) -> List[str]:
    return list(interests or [])[:n]


def interest_key(interests: Optional[Sequence[str]], n: int = 2) -> Tuple[str, ...]:
    """Order-insensitive bucket key of a profile's top interests."""
    return tuple(sorted(top_interests(interests, n)))


def render_key(key: Sequence[str]) -> str:
    return SIGNATURE_SEPARATOR.join(key)


def interest_signature(interests: Optional[Sequence[str]], n: int = 2) -> str:
    """
    Display form of interest_key, used in logs and failure units. Labels may
    contain the separator, so buckets are keyed by interest_key instead.

    Example:
    >>> interest_signature(["Technology", "AI/ML", "Music"])
    'AI/ML_Technology'
    >>> interest_signature(["AI/ML", "Technology"])
    'AI/ML_Technology'
    """
    return render_key(interest_key(interests, n))


def partition_by_interests(profiles: Iterable[P], n: int = 2) -> Dict[Tuple[str, ...], List[P]]:
    """
    Bucket profiles by interest key. Each profile lands in exactly one
    bucket; input order is preserved inside a bucket.
    """
    buckets: Dict[Tuple[str, ...], List[P]] = {}
    for p in profiles:
        buckets.setdefault(interest_key(p.interests, n), []).append(p)
    return buckets


# ----------------------------
# Mentor Assigner
# ----------------------------

def expertise_score(levels: Optional[Sequence[int]]) -> int:
    return max(levels) if levels else 0


def assign_mentors(members: Sequence[P]) -> List[P]:
    """
    Members whose expertise score is strictly above the group mean.
    May return an empty list when every score is equal.

    Scores 9, 6, 3 give a mean of 6, so only the 9 is a mentor.
    """
    if not members:
        return []
    scores = [expertise_score(m.expertise_levels) for m in members]
    avg = mean(scores)
    return [m for m, s in zip(members, scores) if s > avg]


# ----------------------------
# Group Builder
# ----------------------------

def chunk_cohort(members: Sequence[P], options: MatchingOptions) -> Tuple[List[List[P]], List[P]]:
    """
    Cut a cohort into groups of options.target_size.

    A trailing chunk of at least options.min_size becomes its own group. A
    smaller remainder is appended to the last group when that group has room,
    otherwise it is returned unplaced for a later cycle.

    Returns (groups, unplaced).

    With target 6: 8 members give one group of 8; 2 members give no group
    and 2 unplaced.
    """
    groups: List[List[P]] = []
    remainder: List[P] = []
    step = options.target_size
    for i in range(0, len(members), step):
        chunk = list(members[i:i + step])
        if len(chunk) >= options.min_size:
            groups.append(chunk)
        else:
            remainder = chunk

    if remainder and groups and len(groups[-1]) + len(remainder) <= options.max_size:
        groups[-1].extend(remainder)
        remainder = []
    return groups, remainder


def union_interests(members: Iterable[HasInterests], n: int = 2) -> List[str]:
    """Deduplicated union of members' top-n interests, first-seen order."""
    seen: List[str] = []
    for m in members:
        for interest in top_interests(m.interests, n):
            if interest not in seen:
                seen.append(interest)
    return seen


def merge_interests(a: Sequence[str], b: Sequence[str]) -> List[str]:
    out = list(a)
    out.extend(i for i in b if i not in out)
    return out


# ----------------------------
# Group Size Rebalancer
# ----------------------------

def split_members(members: Sequence[P]) -> Tuple[List[P], List[P]]:
    """
    Halve by list order; the second half gets the extra member on odd counts.

    Example:
    >>> [len(h) for h in split_members(list(range(11)))]
    [5, 6]
    """
    mid = len(members) // 2
    return list(members[:mid]), list(members[mid:])


def shared_interest_count(a: Sequence[str], b: Sequence[str]) -> int:
    other = set(b)
    return sum(1 for i in a if i in other)


def find_merge_candidate(
    group: G,
    candidates: Iterable[G],
    options: MatchingOptions,
    exclude: Optional[Set[str]] = None,
) -> Optional[G]:
    """
    Pick the candidate sharing the most interests with `group` (at least one).
    Ties go to the first candidate in scan order. Returns None when the best
    candidate would overflow options.max_size.
    """
    exclude = exclude or set()
    best = None
    best_shared = 0
    for c in candidates:
        if c.id == group.id or c.id in exclude:
            continue
        if c.group_size >= options.merge_candidate_max:
            continue
        shared = shared_interest_count(group.interests, c.interests)
        if shared > best_shared:
            best_shared = shared
            best = c

    if best is None or group.group_size + best.group_size > options.max_size:
        return None
    return best


# ----------------------------
# Naming
# ----------------------------

def matched_group_name(index: int, interests: Sequence[str]) -> str:
    return f"Group {index} - {' & '.join(interests[:2])}"


def matched_group_description(interests: Sequence[str]) -> str:
    return f"Matched on interests: {', '.join(interests)}"


def split_group_name(parent_name: str, part: int) -> str:
    return f"{parent_name} - Part {part}"


def merged_group_name(interests: Sequence[str]) -> str:
    return f"Merged Group - {' & '.join(interests[:2])}"


def merged_group_description(name_a: str, name_b: str) -> str:
    return f"Merged from {name_a} and {name_b}"
