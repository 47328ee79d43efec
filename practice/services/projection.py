from ..domain.enums import OUTCOME_LABELS, CardKind, Outcome, SessionState
from ..domain.machine import Cursor

# Viewed states in which the back of the card may be shown
_BACK_VISIBLE = (SessionState.REVEALED, SessionState.ANSWERED)


def cursor_of(session) -> Cursor:
    return Cursor(
        state=SessionState(session.state),
        frontier=session.frontier,
        position=session.cursor,
    )


def _card_payload(item, show_back: bool) -> dict:
    card = item.card
    outcome = Outcome(item.outcome)
    payload = {
        "position": item.position,
        "card_id": str(card.pk),
        "is_novel": item.is_novel,
        "kind": card.kind,
        "front": card.front,
        "back": card.back if show_back else None,
        "mcq_options": None,
        "mcq_correct_index": None,
        "sketch": None,
        "revealed": show_back,
        "outcome": outcome.value,
        "outcome_label": OUTCOME_LABELS[outcome],
        "elapsed_ms": item.elapsed_ms,
    }
    if card.kind == CardKind.MCQ.value and card.mcq_options:
        payload["mcq_options"] = [str(o) for o in card.mcq_options]
        if show_back:
            payload["mcq_correct_index"] = card.mcq_correct_index
    if card.sketch_code:
        payload["sketch"] = {
            "code": card.sketch_code,
            "width": card.sketch_width,
            "height": card.sketch_height,
        }
    return payload


def build_session_view(session, items, counter, conceal_current=False) -> dict:
    """
    Project a session into what a client may see right now.

    The back (and the correct MCQ option) is withheld unless the viewed item
    is revealed or answered. ``conceal_current`` hides it for an answered
    frontier too, keeping the recorded outcome.
    """
    cursor = cursor_of(session)
    viewed = cursor.viewed_state
    answered_count = cursor.farthest_answered + 1

    current = None
    if viewed not in (SessionState.IDLE, SessionState.COMPLETED):
        item = items[cursor.position]
        show_back = viewed in _BACK_VISIBLE
        if conceal_current and not cursor.is_viewing_past:
            show_back = False
        current = _card_payload(item, show_back)
        current["read_only"] = cursor.is_viewing_past

    snapshot = session.practice_settings or {}
    return {
        "id": str(session.pk),
        "deck_id": str(session.deck_id),
        "deck_name": session.deck.name,
        "status": session.status,
        "state": viewed.value,
        "live_state": cursor.state.value,
        "position": cursor.position,
        "frontier": cursor.frontier,
        "farthest_answered": cursor.farthest_answered,
        "queue_length": len(items),
        "answered_count": answered_count,
        "remaining": len(items) - answered_count,
        "version": session.version,
        "daily": {
            "novel_limit": snapshot.get("daily_novel_limit"),
            "review_limit": snapshot.get("daily_review_limit"),
            "novel_shown": counter.novel_shown if counter else 0,
            "review_shown": counter.review_shown if counter else 0,
        },
        "current": current,
    }
