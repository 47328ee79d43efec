import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from ..domain.enums import CardKind, Outcome, SessionState, SessionStatus


def _choices(enum_cls):
    return [(m.value, m.name.title()) for m in enum_cls]


class Deck(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="decks"
    )
    name = models.CharField(max_length=200)
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=["user", "is_archived"], name="deck_user_archived_idx"),
        ]


class Card(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    deck = models.ForeignKey(Deck, on_delete=models.CASCADE, related_name="cards")
    kind = models.CharField(max_length=10, choices=_choices(CardKind), default=CardKind.BASIC.value)
    front = models.TextField()
    back = models.TextField()

    mcq_options = models.JSONField(null=True, blank=True)
    mcq_correct_index = models.PositiveSmallIntegerField(null=True, blank=True)

    sketch_code = models.TextField(null=True, blank=True)
    sketch_width = models.PositiveIntegerField(null=True, blank=True)
    sketch_height = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=["deck", "created_at"], name="card_deck_created_idx"),
        ]


class CardSchedule(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name="schedules")
    due_at = models.DateTimeField()  # UTC
    interval_ms = models.BigIntegerField()
    streak = models.PositiveIntegerField(default=0)
    response_times = models.JSONField(default=list)
    last_outcome = models.CharField(max_length=10, choices=_choices(Outcome))
    last_answered_at = models.DateTimeField()
    version = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = (("user", "card"),)
        indexes = [
            models.Index(fields=["user", "due_at"], name="schedule_user_due_idx"),
        ]


class PracticeSession(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="practice_sessions"
    )
    deck = models.ForeignKey(Deck, on_delete=models.CASCADE, related_name="practice_sessions")
    status = models.CharField(
        max_length=10, choices=_choices(SessionStatus), default=SessionStatus.ACTIVE.value
    )
    state = models.CharField(
        max_length=12, choices=_choices(SessionState), default=SessionState.IDLE.value
    )
    frontier = models.PositiveIntegerField(default=0)
    cursor = models.PositiveIntegerField(default=0)
    # Practice configuration frozen at creation
    practice_settings = models.JSONField(default=dict)
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "deck"],
                condition=Q(status="active"),
                name="one_active_session_per_user_deck",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "deck", "status"], name="session_user_deck_status_idx"),
        ]


class SessionItem(models.Model):
    session = models.ForeignKey(PracticeSession, on_delete=models.CASCADE, related_name="items")
    position = models.PositiveIntegerField()
    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name="+")
    is_novel = models.BooleanField()
    presented_at = models.DateTimeField(null=True, blank=True)
    revealed_at = models.DateTimeField(null=True, blank=True)
    answered_at = models.DateTimeField(null=True, blank=True)
    outcome = models.CharField(
        max_length=10, choices=_choices(Outcome), default=Outcome.UNSET.value
    )
    elapsed_ms = models.PositiveIntegerField(null=True, blank=True)
    # Card schedule as it was right before this item's answer, null for a novel card
    schedule_before = models.JSONField(null=True, blank=True)

    class Meta:
        unique_together = (("session", "position"),)
        ordering = ["position"]


class DailyCounter(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    deck = models.ForeignKey(Deck, on_delete=models.CASCADE, related_name="+")
    date = models.DateField()
    novel_shown = models.PositiveIntegerField(default=0)
    review_shown = models.PositiveIntegerField(default=0)
    version = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = (("user", "deck", "date"),)
