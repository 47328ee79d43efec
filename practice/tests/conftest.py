from datetime import datetime, timedelta, timezone

import pytest

from accounts.models import User

from .factories import make_deck


class Clock:
    """Controllable replacement for practice.utils.time.utcnow."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now = self.now + timedelta(milliseconds=ms)
        return self.now


@pytest.fixture
def clock(monkeypatch):
    c = Clock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))
    monkeypatch.setattr("practice.utils.time.utcnow", c)
    return c


@pytest.fixture
def user(db):
    return User.objects.create_user(
        username="learner",
        daily_novel_limit=20,
        daily_review_limit=200,
        scheduler_base_interval_ms=1_800_000,
        scheduler_reward_multiplier=1.8,
        scheduler_penalty_multiplier=0.6,
        scheduler_required_time_ms=10_000,
        scheduler_history_limit=10,
    )


@pytest.fixture
def other_user(db):
    return User.objects.create_user(username="someone-else")


@pytest.fixture
def deck(user):
    return make_deck(user, 3)
