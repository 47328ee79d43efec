from .data.models import (  # noqa: F401
    Card,
    CardSchedule,
    DailyCounter,
    Deck,
    PracticeSession,
    SessionItem,
)
