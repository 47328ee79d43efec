from enum import Enum


class SessionState(str, Enum):
    IDLE = "idle"
    PRESENTING = "presenting"
    REVEALED = "revealed"
    ANSWERED = "answered"
    COMPLETED = "completed"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class Outcome(str, Enum):
    UNSET = "unset"
    CORRECT = "correct"
    INCORRECT = "incorrect"

    @classmethod
    def from_bool(cls, correct: bool) -> "Outcome":
        return cls.CORRECT if correct else cls.INCORRECT


class CardKind(str, Enum):
    BASIC = "basic"
    MCQ = "mcq"


class EventType(str, Enum):
    START = "start"
    REVEAL_BACK = "revealBack"
    ANSWER = "answer"
    ADVANCE = "advance"
    NAVIGATE = "navigate"
    SET_OUTCOME = "setOutcome"


class Effect(str, Enum):
    """Side effects a transition asks the store to persist."""

    PRESENT = "present"
    REVEAL = "reveal"
    UNREVEAL = "unreveal"
    ANSWER = "answer"
    OVERRIDE = "override"
    COMPLETE = "complete"


OUTCOME_LABELS = {
    Outcome.UNSET: "未回答",
    Outcome.CORRECT: "分かる",
    Outcome.INCORRECT: "分からない",
}
