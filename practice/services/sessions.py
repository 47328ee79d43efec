from dataclasses import dataclass

import structlog
from django.db import IntegrityError, transaction

from .events import notify_after_commit
from .projection import build_session_view, cursor_of
from .queue import build_queue
from ..config import MAX_ELAPSED_MS
from ..data.models import PracticeSession, SessionItem
from ..data.repos import (
    bump_daily_counter,
    commit_session,
    find_active_session,
    get_daily_counter,
    get_owned_deck,
    get_schedule_for_update,
    get_session,
    lock_daily_counter,
    save_schedule,
    to_schedule_state,
)
from ..domain.enums import Effect, Outcome, SessionState, SessionStatus
from ..domain.errors import ConcurrencyConflict, NoEligibleCards, PracticeError
from ..domain.logic import ScheduleState, SchedulerSettings, schedule_next
from ..domain.machine import Event, demote_reveal, transition
from ..domain.queue import DailyLimits
from ..utils import time as time_utils

logger = structlog.get_logger()


@dataclass(frozen=True)
class SessionHandle:
    session_id: object
    resumed: bool


def create_or_resume_session(user, deck_id) -> SessionHandle:
    logger.info("session_requested", user_id=str(user.pk), deck_id=str(deck_id))
    try:
        with transaction.atomic():
            return _create_or_resume(user, deck_id)
    except IntegrityError:
        # Another request won the one-active-session race: resume its session
        existing = find_active_session(user.pk, deck_id)
        if existing is None:
            raise
        logger.info("session_resumed_after_race",
            user_id=str(user.pk),
            session_id=str(existing.pk),
        )
        return SessionHandle(existing.pk, True)


def _create_or_resume(user, deck_id) -> SessionHandle:
    deck = get_owned_deck(user.pk, deck_id)

    existing = find_active_session(user.pk, deck.pk)
    if existing:
        logger.info("session_resumed", user_id=str(user.pk), session_id=str(existing.pk))
        return SessionHandle(existing.pk, True)

    now = time_utils.utcnow()
    # Serialize allocation against today's quota
    counter = lock_daily_counter(user.pk, deck.pk, time_utils.practice_date(now))
    # A creator that held the lock before us may have finished meanwhile
    existing = find_active_session(user.pk, deck.pk)
    if existing:
        logger.info("session_resumed", user_id=str(user.pk), session_id=str(existing.pk))
        return SessionHandle(existing.pk, True)

    snapshot = user.practice_settings()
    limits = DailyLimits(
        novel=snapshot["daily_novel_limit"], review=snapshot["daily_review_limit"]
    )
    queue = build_queue(user.pk, deck.pk, limits, counter.novel_shown, counter.review_shown, now)
    if not queue:
        raise NoEligibleCards()

    session = PracticeSession.objects.create(
        user=user, deck=deck, practice_settings=snapshot, created_at=now, updated_at=now
    )
    SessionItem.objects.bulk_create([
        SessionItem(session=session, position=i, card_id=entry.card_id, is_novel=entry.is_novel)
        for i, entry in enumerate(queue)
    ])

    novel = sum(1 for entry in queue if entry.is_novel)
    bump_daily_counter(counter, novel=novel, review=len(queue) - novel)
    notify_after_commit(user.pk)

    logger.info("session_created",
        user_id=str(user.pk),
        session_id=str(session.pk),
        deck_id=str(deck.pk),
        novel=novel,
        review=len(queue) - novel,
    )
    return SessionHandle(session.pk, False)


def _load_items(session):
    return list(session.items.select_related("card").order_by("position"))


def get_session_view(user, session_id, reset_reveal_state=False) -> dict:
    if reset_reveal_state:
        with transaction.atomic():
            session = get_session(user.pk, session_id, for_update=True)
            demoted = demote_reveal(cursor_of(session))
            if demoted.changed:
                items = _load_items(session)
                for _, position in demoted.effects:
                    _unreveal(items[position])
                commit_session(session, session.version, **_cursor_fields(demoted.cursor))
                notify_after_commit(user.pk)
                logger.info("reveal_reset", user_id=str(user.pk), session_id=str(session.pk))

    session = get_session(user.pk, session_id)
    items = _load_items(session)
    counter = get_daily_counter(
        user.pk, session.deck_id, time_utils.practice_date(time_utils.utcnow())
    )
    return build_session_view(session, items, counter, conceal_current=reset_reveal_state)


def apply_event(user, session_id, event: Event, expected_version=None) -> dict:
    log = logger.bind(user_id=str(user.pk), session_id=str(session_id), event=event.type.value)

    with transaction.atomic():
        session = get_session(user.pk, session_id, for_update=True)
        if expected_version is not None and expected_version != session.version:
            log.info("event_stale", expected_version=expected_version, version=session.version)
            raise ConcurrencyConflict()

        items = _load_items(session)
        cursor = cursor_of(session)
        try:
            result = transition(cursor, event, len(items))
        except PracticeError as e:
            log.info("event_rejected", error=e.code, state=cursor.viewed_state.value)
            raise

        if result.changed or result.cursor != cursor:
            now = time_utils.utcnow()
            for effect, position in result.effects:
                _EFFECTS[effect](session, items[position], event, now)
            commit_session(session, session.version, **_cursor_fields(result.cursor))
            notify_after_commit(user.pk)

        log.info("event_applied",
            state=result.cursor.viewed_state.value,
            position=result.cursor.position,
            frontier=result.cursor.frontier,
            version=session.version,
        )

    return get_session_view(user, session_id)


def _cursor_fields(cursor) -> dict:
    status = (
        SessionStatus.COMPLETED if cursor.state is SessionState.COMPLETED else SessionStatus.ACTIVE
    )
    return {
        "state": cursor.state.value,
        "frontier": cursor.frontier,
        "cursor": cursor.position,
        "status": status.value,
    }


def _present(session, item, event, now):
    item.presented_at = now
    item.save(update_fields=["presented_at"])


def _reveal(session, item, event, now):
    item.revealed_at = now
    item.save(update_fields=["revealed_at"])


def _unreveal(item):
    item.revealed_at = None
    item.save(update_fields=["revealed_at"])


def _answer(session, item, event, now):
    settings = SchedulerSettings.from_dict(session.practice_settings)
    elapsed = time_utils.elapsed_ms(item.revealed_at, now) if item.revealed_at else 0
    elapsed = min(elapsed, MAX_ELAPSED_MS)

    row = get_schedule_for_update(session.user_id, item.card_id)
    before = to_schedule_state(row)
    state = schedule_next(before, event.correct, elapsed, settings, now)
    save_schedule(session.user_id, item.card_id, row, state)

    item.answered_at = now
    item.elapsed_ms = elapsed
    item.outcome = Outcome.from_bool(event.correct).value
    item.schedule_before = before.as_dict() if before else None
    item.save(update_fields=["answered_at", "elapsed_ms", "outcome", "schedule_before"])

    logger.info("answer_scheduled",
        user_id=str(session.user_id),
        card_id=str(item.card_id),
        correct=event.correct,
        elapsed_ms=elapsed,
        interval_ms=state.interval_ms,
        streak=state.streak,
        due_at=state.due_at.isoformat(),
    )


def _override(session, item, event, now):
    """Recompute the answer from its recorded inputs, as if it were the original."""
    settings = SchedulerSettings.from_dict(session.practice_settings)
    before = ScheduleState.from_dict(item.schedule_before)
    state = schedule_next(before, event.correct, item.elapsed_ms or 0, settings, item.answered_at)

    row = get_schedule_for_update(session.user_id, item.card_id)
    if to_schedule_state(row) != state:
        save_schedule(session.user_id, item.card_id, row, state)

    outcome = Outcome.from_bool(event.correct).value
    if item.outcome != outcome:
        item.outcome = outcome
        item.save(update_fields=["outcome"])

    logger.info("outcome_overridden",
        user_id=str(session.user_id),
        card_id=str(item.card_id),
        correct=event.correct,
        interval_ms=state.interval_ms,
        streak=state.streak,
    )


def _complete(session, item, event, now):
    logger.info("session_completed", user_id=str(session.user_id), session_id=str(session.pk))


_EFFECTS = {
    Effect.PRESENT: _present,
    Effect.REVEAL: _reveal,
    Effect.ANSWER: _answer,
    Effect.OVERRIDE: _override,
    Effect.COMPLETE: _complete,
}
