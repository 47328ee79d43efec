import logging
import threading
import uuid
from datetime import timedelta

import pytest
from django.db import connection

from practice.data.models import (
    Card,
    CardSchedule,
    DailyCounter,
    PracticeSession,
    SessionItem,
)
from practice.data.repos import bump_daily_counter, commit_session
from practice.domain.enums import EventType
from practice.domain.errors import (
    ConcurrencyConflict,
    InvalidNavigation,
    InvalidOverride,
    InvalidTransition,
    NoEligibleCards,
    NotFound,
    SessionCompleted,
)
from practice.domain.machine import Event
from practice.services import sessions as session_service
from practice.services.sessions import (
    apply_event,
    create_or_resume_session,
    get_session_view,
)

from .factories import make_deck

logger = logging.getLogger(__name__)

START = Event(EventType.START)
REVEAL = Event(EventType.REVEAL_BACK)
ADVANCE = Event(EventType.ADVANCE)


def answer(correct):
    return Event(EventType.ANSWER, correct=correct)


def set_outcome(correct):
    return Event(EventType.SET_OUTCOME, correct=correct)


def navigate(to):
    return Event(EventType.NAVIGATE, to=to)


def counters(user, deck):
    return list(
        DailyCounter.objects.filter(user=user, deck=deck).values_list("novel_shown", "review_shown")
    )


def answer_current(user, sid, clock, correct=True, elapsed=4000):
    apply_event(user, sid, REVEAL)
    clock.advance(elapsed)
    return apply_event(user, sid, answer(correct))


def schedule_row(user, card_id):
    row = CardSchedule.objects.get(user=user, card_id=card_id)
    return (row.due_at, row.interval_ms, row.streak, row.response_times, row.last_outcome, row.version)


# Create or resume

@pytest.mark.django_db
def test_create_builds_session_and_counts_today(user, deck, clock):
    handle = create_or_resume_session(user, deck.pk)
    assert handle.resumed is False

    session = PracticeSession.objects.get(pk=handle.session_id)
    assert session.status == "active"
    assert session.state == "idle"
    assert [i.position for i in session.items.all()] == [0, 1, 2]
    assert counters(user, deck) == [(3, 0)]


@pytest.mark.django_db
def test_create_twice_resumes_without_touching_counters(user, deck, clock):
    first = create_or_resume_session(user, deck.pk)
    before = counters(user, deck)
    second = create_or_resume_session(user, deck.pk)

    assert second.session_id == first.session_id
    assert second.resumed is True
    assert counters(user, deck) == before
    assert PracticeSession.objects.filter(user=user, deck=deck).count() == 1
    logger.info("✓ Passed: resume is idempotent")


@pytest.mark.django_db
def test_novel_limit_caps_session_and_day(user, clock, monkeypatch):
    user.daily_novel_limit = 2
    user.save()
    deck = make_deck(user, 3)

    handle = create_or_resume_session(user, deck.pk)
    assert SessionItem.objects.filter(session_id=handle.session_id).count() == 2

    # Simulate a second creator that missed the active session (stale read)
    real_find = session_service.find_active_session
    calls = {"n": 0}

    def stale_find(user_id, deck_id):
        calls["n"] += 1
        return None if calls["n"] == 1 else real_find(user_id, deck_id)

    monkeypatch.setattr(session_service, "find_active_session", stale_find)
    again = create_or_resume_session(user, deck.pk)

    assert again.session_id == handle.session_id
    assert again.resumed is True
    assert counters(user, deck) == [(2, 0)]


@pytest.mark.django_db
def test_losing_creation_race_resumes_winner(user, clock, monkeypatch):
    deck = make_deck(user, 5)
    winner = create_or_resume_session(user, deck.pk)

    real_find = session_service.find_active_session
    calls = {"n": 0}

    def stale_find(user_id, deck_id):
        calls["n"] += 1
        return None if calls["n"] == 1 else real_find(user_id, deck_id)

    monkeypatch.setattr(session_service, "find_active_session", stale_find)
    loser = create_or_resume_session(user, deck.pk)

    assert loser.session_id == winner.session_id
    assert loser.resumed is True
    assert PracticeSession.objects.filter(user=user, deck=deck).count() == 1
    # The second creator resumed before allocating against the counter
    assert counters(user, deck) == [(5, 0)]


@pytest.mark.django_db
def test_stale_daily_counter_write_conflicts(user, deck, clock):
    create_or_resume_session(user, deck.pk)
    counter = DailyCounter.objects.get(user=user, deck=deck)
    stale = DailyCounter.objects.get(pk=counter.pk)
    bump_daily_counter(counter, novel=1, review=0)

    with pytest.raises(ConcurrencyConflict):
        bump_daily_counter(stale, novel=1, review=0)
    assert counters(user, deck) == [(4, 0)]


@pytest.mark.django_db
def test_counters_roll_over_with_the_date(user, clock):
    user.daily_novel_limit = 1
    user.save()
    deck = make_deck(user, 2)

    first = create_or_resume_session(user, deck.pk)
    apply_event(user, first.session_id, START)
    answer_current(user, first.session_id, clock)
    apply_event(user, first.session_id, ADVANCE)

    with pytest.raises(NoEligibleCards):
        create_or_resume_session(user, deck.pk)

    clock.advance(24 * 3_600_000)
    second = create_or_resume_session(user, deck.pk)
    assert second.resumed is False
    assert sorted(counters(user, deck)) == [(1, 0), (1, 1)]


@pytest.mark.django_db
def test_empty_deck_means_nothing_to_practice(user, clock):
    deck = make_deck(user, 0)
    with pytest.raises(NoEligibleCards):
        create_or_resume_session(user, deck.pk)
    assert PracticeSession.objects.count() == 0
    assert counters(user, deck) == []


@pytest.mark.django_db
def test_foreign_archived_and_missing_decks_are_not_found(user, other_user, clock):
    foreign = make_deck(other_user, 2)
    archived = make_deck(user, 2, archived=True)
    for deck_id in (foreign.pk, archived.pk, uuid.uuid4()):
        with pytest.raises(NotFound):
            create_or_resume_session(user, deck_id)


@pytest.mark.django_db
def test_sessions_are_invisible_to_other_users(user, other_user, deck, clock):
    handle = create_or_resume_session(user, deck.pk)
    with pytest.raises(NotFound):
        get_session_view(other_user, handle.session_id)
    with pytest.raises(NotFound):
        apply_event(other_user, handle.session_id, START)


# Event application

@pytest.mark.django_db
def test_full_session_walkthrough(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id

    view = apply_event(user, sid, START)
    assert view["state"] == "presenting"
    assert view["current"]["front"] == "front 0"
    assert view["current"]["back"] is None

    view = apply_event(user, sid, REVEAL)
    assert view["state"] == "revealed"
    assert view["current"]["back"] == "back 0"

    clock.advance(4000)
    view = apply_event(user, sid, answer(True))
    assert view["state"] == "answered"
    assert view["current"]["outcome"] == "correct"
    assert view["current"]["elapsed_ms"] == 4000
    assert view["remaining"] == 2

    for _ in range(2):
        apply_event(user, sid, ADVANCE)
        answer_current(user, sid, clock, correct=False)

    view = apply_event(user, sid, ADVANCE)
    assert view["status"] == "completed"
    assert view["state"] == "completed"
    assert view["current"] is None
    assert view["remaining"] == 0

    with pytest.raises(SessionCompleted):
        apply_event(user, sid, START)
    assert CardSchedule.objects.filter(user=user).count() == 3
    logger.info("✓ Passed: start → reveal → answer → advance across the deck")


@pytest.mark.django_db
def test_answer_applies_scheduler_scenario(user, clock):
    deck = make_deck(user, 1)
    card = Card.objects.get(deck=deck)

    sid = create_or_resume_session(user, deck.pk).session_id
    apply_event(user, sid, START)
    answer_current(user, sid, clock, correct=True, elapsed=4000)
    apply_event(user, sid, ADVANCE)

    row = CardSchedule.objects.get(user=user, card=card)
    assert row.interval_ms == 3_240_000
    assert row.streak == 1

    clock.advance(3_240_000)
    second = create_or_resume_session(user, deck.pk)
    assert second.resumed is False
    item = SessionItem.objects.get(session_id=second.session_id)
    assert item.is_novel is False

    apply_event(user, second.session_id, START)
    answer_current(user, second.session_id, clock, correct=False, elapsed=4000)

    row.refresh_from_db()
    assert row.interval_ms == 1_944_000
    assert row.streak == 0
    assert row.response_times == [4000, 4000]


@pytest.mark.django_db
def test_out_of_order_event_changes_nothing(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    apply_event(user, sid, START)
    version = PracticeSession.objects.get(pk=sid).version

    with pytest.raises(InvalidTransition):
        apply_event(user, sid, answer(True))
    session = PracticeSession.objects.get(pk=sid)
    assert session.version == version
    assert session.state == "presenting"
    assert not CardSchedule.objects.exists()


@pytest.mark.django_db
def test_repeated_start_is_a_no_op(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    first = apply_event(user, sid, START)
    again = apply_event(user, sid, START)
    assert again["version"] == first["version"]


@pytest.mark.django_db
def test_navigation_is_bounded_by_farthest_answered(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    apply_event(user, sid, START)
    answer_current(user, sid, clock)
    apply_event(user, sid, ADVANCE)

    with pytest.raises(InvalidNavigation):
        apply_event(user, sid, navigate(1))
    with pytest.raises(InvalidNavigation):
        apply_event(user, sid, navigate(2))

    view = apply_event(user, sid, navigate(0))
    assert view["state"] == "answered"
    assert view["current"]["read_only"] is True
    assert view["current"]["back"] == "back 0"
    assert view["live_state"] == "presenting"

    view = apply_event(user, sid, ADVANCE)
    assert view["position"] == 1
    assert view["state"] == "presenting"
    assert view["current"]["back"] is None


@pytest.mark.django_db
def test_set_outcome_same_value_leaves_schedule_byte_identical(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    apply_event(user, sid, START)
    answer_current(user, sid, clock, correct=True)
    card_id = SessionItem.objects.get(session_id=sid, position=0).card_id
    before = schedule_row(user, card_id)

    clock.advance(60_000)
    apply_event(user, sid, set_outcome(True))
    assert schedule_row(user, card_id) == before


@pytest.mark.django_db
def test_set_outcome_recomputes_from_recorded_answer(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    apply_event(user, sid, START)
    answer_current(user, sid, clock, correct=True, elapsed=4000)
    item = SessionItem.objects.get(session_id=sid, position=0)
    original = schedule_row(user, item.card_id)

    apply_event(user, sid, ADVANCE)
    apply_event(user, sid, navigate(0))
    clock.advance(600_000)
    view = apply_event(user, sid, set_outcome(False))
    assert view["current"]["outcome"] == "incorrect"

    row = CardSchedule.objects.get(user=user, card_id=item.card_id)
    assert row.interval_ms == 1_080_000
    assert row.streak == 0
    # Replaces the original sample rather than adding one
    assert row.response_times == [4000]
    assert row.due_at == item.answered_at + timedelta(milliseconds=1_080_000)
    assert row.last_answered_at == item.answered_at

    apply_event(user, sid, set_outcome(True))
    restored = schedule_row(user, item.card_id)
    assert restored[:5] == original[:5]


@pytest.mark.django_db
def test_set_outcome_rejected_for_older_items(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    apply_event(user, sid, START)
    for _ in range(2):
        answer_current(user, sid, clock)
        apply_event(user, sid, ADVANCE)

    apply_event(user, sid, navigate(0))
    with pytest.raises(InvalidOverride):
        apply_event(user, sid, set_outcome(False))

    apply_event(user, sid, navigate(1))
    apply_event(user, sid, set_outcome(False))
    assert SessionItem.objects.get(session_id=sid, position=1).outcome == "incorrect"
    assert SessionItem.objects.get(session_id=sid, position=0).outcome == "correct"


@pytest.mark.django_db
def test_settings_are_frozen_at_creation(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    user.scheduler_reward_multiplier = 3.0
    user.save()

    apply_event(user, sid, START)
    answer_current(user, sid, clock, correct=True)
    card_id = SessionItem.objects.get(session_id=sid, position=0).card_id
    assert CardSchedule.objects.get(user=user, card_id=card_id).interval_ms == 3_240_000


# Concurrency

@pytest.mark.django_db
def test_stale_expected_version_conflicts(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    seen = apply_event(user, sid, START)["version"]
    apply_event(user, sid, REVEAL)

    with pytest.raises(ConcurrencyConflict) as exc:
        apply_event(user, sid, answer(True), expected_version=seen)
    assert exc.value.retryable is True
    assert not CardSchedule.objects.exists()


@pytest.mark.django_db
def test_session_compare_and_swap_rejects_second_writer(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    first = PracticeSession.objects.get(pk=sid)
    second = PracticeSession.objects.get(pk=sid)

    commit_session(first, first.version, state="presenting")
    with pytest.raises(ConcurrencyConflict):
        commit_session(second, second.version, state="presenting")
    assert PracticeSession.objects.get(pk=sid).version == 1


# Views

@pytest.mark.django_db
def test_reset_reveal_state_hides_unanswered_back(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    apply_event(user, sid, START)
    apply_event(user, sid, REVEAL)

    view = get_session_view(user, sid, reset_reveal_state=True)
    assert view["state"] == "presenting"
    assert view["current"]["back"] is None
    assert SessionItem.objects.get(session_id=sid, position=0).revealed_at is None

    # A fresh reveal restarts the answer timer
    apply_event(user, sid, REVEAL)
    clock.advance(2500)
    view = apply_event(user, sid, answer(True))
    assert view["current"]["elapsed_ms"] == 2500


@pytest.mark.django_db
def test_reset_reveal_state_keeps_recorded_outcomes(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    apply_event(user, sid, START)
    answer_current(user, sid, clock, correct=False)

    view = get_session_view(user, sid, reset_reveal_state=True)
    assert view["live_state"] == "answered"
    assert view["current"]["back"] is None
    assert view["current"]["outcome"] == "incorrect"

    # Still answered: the session moves on normally
    view = apply_event(user, sid, ADVANCE)
    assert view["position"] == 1


@pytest.mark.django_db
def test_reset_reveal_state_ignores_frontier_while_viewing_history(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    apply_event(user, sid, START)
    answer_current(user, sid, clock)
    apply_event(user, sid, ADVANCE)
    apply_event(user, sid, REVEAL)
    revealed_at = SessionItem.objects.get(session_id=sid, position=1).revealed_at
    apply_event(user, sid, navigate(0))

    view = get_session_view(user, sid, reset_reveal_state=True)
    assert view["state"] == "answered"
    assert view["current"]["back"] == "back 0"

    session = PracticeSession.objects.get(pk=sid)
    assert session.state == "revealed"
    assert SessionItem.objects.get(session_id=sid, position=1).revealed_at == revealed_at

    # Back at the frontier the timer still runs from the first reveal
    clock.advance(3000)
    view = apply_event(user, sid, ADVANCE)
    assert view["state"] == "revealed"
    view = apply_event(user, sid, answer(True))
    assert view["current"]["elapsed_ms"] == 3000


@pytest.mark.django_db
def test_view_withholds_mcq_answer_until_reveal(user, clock):
    deck = make_deck(user, 0)
    Card.objects.create(
        deck=deck, kind="mcq", front="Pick one", back="B",
        mcq_options=["A", "B", "C"], mcq_correct_index=1,
    )
    sid = create_or_resume_session(user, deck.pk).session_id

    view = apply_event(user, sid, START)
    assert view["current"]["mcq_options"] == ["A", "B", "C"]
    assert view["current"]["mcq_correct_index"] is None

    view = apply_event(user, sid, REVEAL)
    assert view["current"]["mcq_correct_index"] == 1


@pytest.mark.django_db
def test_view_reports_daily_usage(user, deck, clock):
    sid = create_or_resume_session(user, deck.pk).session_id
    view = get_session_view(user, sid)
    assert view["queue_length"] == 3
    assert view["daily"] == {
        "novel_limit": 20,
        "review_limit": 200,
        "novel_shown": 3,
        "review_shown": 0,
    }
    assert view["current"] is None


@pytest.mark.django_db(transaction=True)
def test_concurrent_creators_share_one_session(user, clock):
    if connection.vendor == "sqlite":
        pytest.skip("needs row locks; sqlite serializes the whole database")
    user.daily_novel_limit = 2
    user.save()
    deck = make_deck(user, 3)

    barrier = threading.Barrier(2)
    handles, errors = [], []

    def create():
        try:
            barrier.wait()
            handles.append(create_or_resume_session(user, deck.pk))
        except Exception as e:
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=create) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len({h.session_id for h in handles}) == 1
    assert sorted(h.resumed for h in handles) == [False, True]
    assert PracticeSession.objects.filter(user=user, deck=deck).count() == 1
    assert counters(user, deck) == [(2, 0)]
    logger.info("✓ Passed: two concurrent creators got the same session")
