from dataclasses import dataclass
from typing import List, Sequence

from ..config import MAX_POOL_RUN


@dataclass(frozen=True)
class DailyLimits:
    novel: int
    review: int


@dataclass(frozen=True)
class QueueEntry:
    card_id: object
    is_novel: bool


def remaining_allowance(limit: int, shown: int) -> int:
    return max(0, limit - shown)


def interleave(
    reviews: Sequence[QueueEntry],
    novels: Sequence[QueueEntry],
    max_run: int = MAX_POOL_RUN,
) -> List[QueueEntry]:
    """
    Merge the two pools, preferring reviews, never taking more than
    ``max_run`` in a row from one pool while the other still has entries.
    """
    out: List[QueueEntry] = []
    r, n = 0, 0
    run_pool, run_len = None, 0

    while r < len(reviews) or n < len(novels):
        has_review = r < len(reviews)
        has_novel = n < len(novels)

        take_review = has_review
        if has_review and has_novel and run_len >= max_run:
            take_review = run_pool != "review"

        if take_review:
            out.append(reviews[r])
            r += 1
            pool = "review"
        else:
            out.append(novels[n])
            n += 1
            pool = "novel"

        run_len = run_len + 1 if pool == run_pool else 1
        run_pool = pool

    return out


def plan_queue(
    review_candidates: Sequence[QueueEntry],
    novel_candidates: Sequence[QueueEntry],
    limits: DailyLimits,
    novel_shown: int,
    review_shown: int,
) -> List[QueueEntry]:
    """Cap both candidate pools by today's allowance and interleave them."""
    review_take = min(len(review_candidates), remaining_allowance(limits.review, review_shown))
    novel_take = min(len(novel_candidates), remaining_allowance(limits.novel, novel_shown))
    return interleave(review_candidates[:review_take], novel_candidates[:novel_take])
