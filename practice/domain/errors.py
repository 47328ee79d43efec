"""
Practice engine error taxonomy.

Every error carries a stable ``code`` and the HTTP status the API layer
renders it with. ``NotFound`` never tells "absent" apart from "owned by
someone else".
"""


class PracticeError(Exception):
    code = "practice_error"
    status_code = 400
    retryable = False
    default_message = "Practice request failed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotFound(PracticeError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidTransition(PracticeError):
    code = "invalid_transition"
    status_code = 409
    default_message = "Event is not valid in the current state"


class InvalidNavigation(PracticeError):
    code = "invalid_navigation"
    status_code = 409
    default_message = "Cannot navigate to that position"


class InvalidOverride(PracticeError):
    code = "invalid_override"
    status_code = 409
    default_message = "Only the most recently answered card can be corrected"


class SessionCompleted(PracticeError):
    code = "session_completed"
    status_code = 409
    default_message = "Session already completed"


class ConcurrencyConflict(PracticeError):
    code = "concurrency_conflict"
    status_code = 409
    retryable = True
    default_message = "Session changed concurrently, reload and retry"


class NoEligibleCards(PracticeError):
    """Nothing due and no novel allowance left: not a failure."""

    code = "no_eligible_cards"
    status_code = 200
    default_message = "Nothing to practice right now"
