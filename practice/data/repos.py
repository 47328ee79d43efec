from django.db import IntegrityError, transaction
from django.db.models import F
from django.db.models.functions import Trim
from django.utils import timezone

from .models import Card, CardSchedule, DailyCounter, Deck, PracticeSession
from ..domain.enums import Outcome, SessionStatus
from ..domain.errors import ConcurrencyConflict, NotFound
from ..domain.logic import ScheduleState


def playable_cards(deck_id):
    """Cards of the deck whose front and back are both non-blank."""
    return (
        Card.objects.filter(deck_id=deck_id)
        .annotate(front_trimmed=Trim("front"), back_trimmed=Trim("back"))
        .exclude(front_trimmed="")
        .exclude(back_trimmed="")
    )


def get_owned_deck(user_id, deck_id):
    deck = Deck.objects.filter(pk=deck_id, user_id=user_id, is_archived=False).first()
    if deck is None:
        raise NotFound("Deck not found")
    return deck


def find_active_session(user_id, deck_id):
    return PracticeSession.objects.filter(
        user_id=user_id, deck_id=deck_id, status=SessionStatus.ACTIVE.value
    ).first()


def get_session(user_id, session_id, for_update=False):
    qs = PracticeSession.objects.filter(pk=session_id, user_id=user_id)
    if for_update:
        qs = qs.select_for_update()
    session = qs.first()
    if session is None:
        raise NotFound("Session not found")
    return session


def commit_session(session, expected_version, **changes):
    """
    Compare-and-swap write of the session row. A concurrent writer that got
    there first leaves zero matching rows and surfaces as ConcurrencyConflict.
    """
    changes["updated_at"] = timezone.now()
    updated = PracticeSession.objects.filter(pk=session.pk, version=expected_version).update(
        version=expected_version + 1, **changes
    )
    if updated != 1:
        raise ConcurrencyConflict()
    for field, value in changes.items():
        setattr(session, field, value)
    session.version = expected_version + 1
    return session


def review_candidate_ids(user_id, deck_id, now):
    playable = playable_cards(deck_id).values("pk")
    return list(
        CardSchedule.objects.filter(user_id=user_id, card_id__in=playable, due_at__lte=now)
        .order_by("due_at", "card__created_at", "card_id")
        .values_list("card_id", flat=True)
    )


def novel_candidate_ids(user_id, deck_id):
    return list(
        playable_cards(deck_id)
        .exclude(schedules__user_id=user_id)
        .order_by("created_at", "id")
        .values_list("id", flat=True)
    )


def lock_daily_counter(user_id, deck_id, day):
    """
    Fetch today's counter row and lock it for update so concurrent session
    creation cannot allocate against a stale read. Create if missing.
    """
    try:
        with transaction.atomic():
            DailyCounter.objects.get_or_create(user_id=user_id, deck_id=deck_id, date=day)
    except IntegrityError:
        # Created concurrently, the locked read below picks it up
        pass
    return (
        DailyCounter.objects.select_for_update()
        .get(user_id=user_id, deck_id=deck_id, date=day)
    )


def get_daily_counter(user_id, deck_id, day):
    return DailyCounter.objects.filter(user_id=user_id, deck_id=deck_id, date=day).first()


def bump_daily_counter(counter, novel, review):
    updated = DailyCounter.objects.filter(pk=counter.pk, version=counter.version).update(
        novel_shown=F("novel_shown") + novel,
        review_shown=F("review_shown") + review,
        version=F("version") + 1,
    )
    if updated != 1:
        raise ConcurrencyConflict("Daily counters changed concurrently")
    counter.refresh_from_db()
    return counter


def get_schedule_for_update(user_id, card_id):
    return (
        CardSchedule.objects.select_for_update()
        .filter(user_id=user_id, card_id=card_id)
        .first()
    )


def to_schedule_state(row):
    if row is None:
        return None
    return ScheduleState(
        interval_ms=row.interval_ms,
        streak=row.streak,
        response_times=tuple(row.response_times),
        due_at=row.due_at,
        last_outcome=Outcome(row.last_outcome),
        answered_at=row.last_answered_at,
    )


def save_schedule(user_id, card_id, existing, state: ScheduleState):
    fields = {
        "due_at": state.due_at,
        "interval_ms": state.interval_ms,
        "streak": state.streak,
        "response_times": list(state.response_times),
        "last_outcome": state.last_outcome.value,
        "last_answered_at": state.answered_at,
    }
    if existing is None:
        try:
            with transaction.atomic():
                return CardSchedule.objects.create(user_id=user_id, card_id=card_id, **fields)
        except IntegrityError:
            raise ConcurrencyConflict("Card schedule created concurrently")

    updated = CardSchedule.objects.filter(pk=existing.pk, version=existing.version).update(
        version=existing.version + 1, **fields
    )
    if updated != 1:
        raise ConcurrencyConflict("Card schedule changed concurrently")
    existing.refresh_from_db()
    return existing
