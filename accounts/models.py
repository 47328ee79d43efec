from django.contrib.auth.models import AbstractUser
from django.db import models

from practice.config import (
    DEFAULT_DAILY_NOVEL_LIMIT,
    DEFAULT_DAILY_REVIEW_LIMIT,
    DEFAULT_SCHEDULER,
)


class User(AbstractUser):
    """
    Custom User model that extends the default Django User model.
    Carries the per-user practice configuration read by the practice engine.
    """

    daily_novel_limit = models.PositiveIntegerField(default=DEFAULT_DAILY_NOVEL_LIMIT)
    daily_review_limit = models.PositiveIntegerField(default=DEFAULT_DAILY_REVIEW_LIMIT)

    scheduler_base_interval_ms = models.BigIntegerField(
        default=DEFAULT_SCHEDULER["base_interval_ms"]
    )
    scheduler_reward_multiplier = models.FloatField(
        default=DEFAULT_SCHEDULER["reward_multiplier"]
    )
    scheduler_penalty_multiplier = models.FloatField(
        default=DEFAULT_SCHEDULER["penalty_multiplier"]
    )
    scheduler_required_time_ms = models.PositiveIntegerField(
        default=DEFAULT_SCHEDULER["required_time_ms"]
    )
    scheduler_history_limit = models.PositiveIntegerField(
        default=DEFAULT_SCHEDULER["history_limit"]
    )

    def practice_settings(self) -> dict:
        """Snapshot of everything a practice session freezes at creation."""
        return {
            "daily_novel_limit": self.daily_novel_limit,
            "daily_review_limit": self.daily_review_limit,
            "base_interval_ms": self.scheduler_base_interval_ms,
            "reward_multiplier": self.scheduler_reward_multiplier,
            "penalty_multiplier": self.scheduler_penalty_multiplier,
            "required_time_ms": self.scheduler_required_time_ms,
            "history_limit": self.scheduler_history_limit,
        }
