"""
Session state machine.

A session is an append-only list of items plus two indexes: the ``frontier``
(the live, farthest-reached position, whose state is ``state``) and the
``position`` being viewed. Positions before the frontier are always answered,
so viewing one is a read-only ``ANSWERED`` view and navigation is pure cursor
movement.

``transition`` is pure: it returns the next cursor and the effects the store
must persist in the same transaction.
"""
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Tuple

from .enums import Effect, EventType, SessionState
from .errors import (
    InvalidNavigation,
    InvalidOverride,
    InvalidTransition,
    SessionCompleted,
)


@dataclass(frozen=True)
class Event:
    type: EventType
    correct: Optional[bool] = None
    to: Optional[int] = None


@dataclass(frozen=True)
class Cursor:
    state: SessionState
    frontier: int
    position: int

    @property
    def is_viewing_past(self) -> bool:
        return self.position < self.frontier

    @property
    def viewed_state(self) -> SessionState:
        if self.state is SessionState.COMPLETED:
            return SessionState.COMPLETED
        if self.is_viewing_past:
            return SessionState.ANSWERED
        return self.state

    @property
    def farthest_answered(self) -> int:
        """Highest answered position, -1 when nothing is answered yet."""
        if self.state in (SessionState.ANSWERED, SessionState.COMPLETED):
            return self.frontier
        return self.frontier - 1


@dataclass(frozen=True)
class Transition:
    cursor: Cursor
    effects: Tuple[Tuple[Effect, int], ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.effects)


def initial_cursor() -> Cursor:
    return Cursor(state=SessionState.IDLE, frontier=0, position=0)


def _reject(cursor: Cursor, event: Event):
    raise InvalidTransition(
        f"{event.type.value} is not valid while {cursor.viewed_state.value}"
    )


def _start(cursor: Cursor, event: Event, item_count: int) -> Transition:
    if cursor.state is not SessionState.IDLE:
        # Already started
        return Transition(cursor)
    nxt = Cursor(state=SessionState.PRESENTING, frontier=0, position=0)
    return Transition(nxt, ((Effect.PRESENT, 0),))


def _reveal_back(cursor: Cursor, event: Event, item_count: int) -> Transition:
    if cursor.viewed_state is not SessionState.PRESENTING:
        _reject(cursor, event)
    nxt = replace(cursor, state=SessionState.REVEALED)
    return Transition(nxt, ((Effect.REVEAL, cursor.frontier),))


def _answer(cursor: Cursor, event: Event, item_count: int) -> Transition:
    if cursor.viewed_state is not SessionState.REVEALED:
        _reject(cursor, event)
    if event.correct is None:
        raise InvalidTransition("answer requires 'correct'")
    nxt = replace(cursor, state=SessionState.ANSWERED)
    return Transition(nxt, ((Effect.ANSWER, cursor.frontier),))


def _advance(cursor: Cursor, event: Event, item_count: int) -> Transition:
    if cursor.viewed_state is not SessionState.ANSWERED:
        _reject(cursor, event)

    if cursor.is_viewing_past:
        # Read-only history: step towards the frontier without touching items
        return Transition(replace(cursor, position=cursor.position + 1))

    nxt_pos = cursor.frontier + 1
    if nxt_pos >= item_count:
        done = Cursor(state=SessionState.COMPLETED, frontier=cursor.frontier, position=cursor.frontier)
        return Transition(done, ((Effect.COMPLETE, cursor.frontier),))
    nxt = Cursor(state=SessionState.PRESENTING, frontier=nxt_pos, position=nxt_pos)
    return Transition(nxt, ((Effect.PRESENT, nxt_pos),))


def _navigate(cursor: Cursor, event: Event, item_count: int) -> Transition:
    to = event.to
    if cursor.state is SessionState.IDLE:
        raise InvalidNavigation("Session has not started")
    if to is None or to < 0 or to >= item_count:
        raise InvalidNavigation(f"Position {to} is outside the session")
    if to > cursor.farthest_answered:
        raise InvalidNavigation(
            f"Position {to} is beyond the farthest answered position {cursor.farthest_answered}"
        )
    return Transition(replace(cursor, position=to), ())


def _set_outcome(cursor: Cursor, event: Event, item_count: int) -> Transition:
    if cursor.viewed_state is not SessionState.ANSWERED:
        raise InvalidOverride("Only an answered card can be corrected")
    if cursor.position != cursor.farthest_answered:
        raise InvalidOverride()
    if event.correct is None:
        raise InvalidOverride("setOutcome requires 'correct'")
    return Transition(cursor, ((Effect.OVERRIDE, cursor.position),))


TRANSITIONS: Dict[EventType, Callable[[Cursor, Event, int], Transition]] = {
    EventType.START: _start,
    EventType.REVEAL_BACK: _reveal_back,
    EventType.ANSWER: _answer,
    EventType.ADVANCE: _advance,
    EventType.NAVIGATE: _navigate,
    EventType.SET_OUTCOME: _set_outcome,
}


def transition(cursor: Cursor, event: Event, item_count: int) -> Transition:
    if cursor.state is SessionState.COMPLETED:
        raise SessionCompleted()
    handler = TRANSITIONS.get(event.type)
    if handler is None:
        raise InvalidTransition(f"Unknown event {event.type!r}")
    return handler(cursor, event, item_count)


def demote_reveal(cursor: Cursor) -> Transition:
    """Hide an unanswered revealed back again (used on a fresh page load)."""
    if cursor.state is SessionState.REVEALED and not cursor.is_viewing_past:
        return Transition(
            replace(cursor, state=SessionState.PRESENTING),
            ((Effect.UNREVEAL, cursor.frontier),),
        )
    return Transition(cursor)
