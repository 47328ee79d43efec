import structlog

from ..data.repos import novel_candidate_ids, review_candidate_ids
from ..domain.queue import DailyLimits, QueueEntry, plan_queue

logger = structlog.get_logger()


def build_queue(user_id, deck_id, limits: DailyLimits, novel_shown: int, review_shown: int, now):
    """
    Pick today's cards for a new session: due reviews (oldest due first) and
    never-seen cards (creation order), each capped by what is left of the
    daily allowance, then interleaved.
    """
    reviews = [QueueEntry(card_id=cid, is_novel=False) for cid in review_candidate_ids(user_id, deck_id, now)]
    novels = [QueueEntry(card_id=cid, is_novel=True) for cid in novel_candidate_ids(user_id, deck_id)]

    queue = plan_queue(reviews, novels, limits, novel_shown, review_shown)

    logger.info("queue_built",
        user_id=str(user_id),
        deck_id=str(deck_id),
        review_candidates=len(reviews),
        novel_candidates=len(novels),
        novel_shown=novel_shown,
        review_shown=review_shown,
        queue_length=len(queue),
    )
    return queue
