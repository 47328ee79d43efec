import math
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence, Tuple

from .enums import Outcome
from ..config import (
    DEFAULT_SCHEDULER,
    HISTORY_LIMIT_RANGE,
    MAX_ELAPSED_MS,
    MAX_INTERVAL_MS,
    MIN_INTERVAL_MS,
    MULTIPLIER_RANGE,
    REQUIRED_TIME_RANGE_MS,
)


def clamp_int(value, low: int, high: int) -> int:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return low
    if not math.isfinite(value):
        return low
    return max(low, min(high, int(math.floor(value))))


def clamp_float(value, low: float, high: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return low
    if not math.isfinite(value):
        return low
    return max(low, min(high, value))


@dataclass(frozen=True)
class SchedulerSettings:
    base_interval_ms: int
    reward_multiplier: float
    penalty_multiplier: float
    required_time_ms: int
    history_limit: int

    @classmethod
    def from_dict(cls, data: dict) -> "SchedulerSettings":
        """Build settings from stored values, clamping each into its safe range."""
        merged = {**DEFAULT_SCHEDULER, **{k: v for k, v in data.items() if v is not None}}
        return cls(
            base_interval_ms=clamp_int(merged["base_interval_ms"], MIN_INTERVAL_MS, MAX_INTERVAL_MS),
            reward_multiplier=clamp_float(merged["reward_multiplier"], *MULTIPLIER_RANGE),
            penalty_multiplier=clamp_float(merged["penalty_multiplier"], *MULTIPLIER_RANGE),
            required_time_ms=clamp_int(merged["required_time_ms"], *REQUIRED_TIME_RANGE_MS),
            history_limit=clamp_int(merged["history_limit"], *HISTORY_LIMIT_RANGE),
        )

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ScheduleState:
    interval_ms: int
    streak: int
    response_times: Tuple[int, ...]
    due_at: datetime
    last_outcome: Outcome
    answered_at: datetime

    def as_dict(self) -> dict:
        return {
            "interval_ms": self.interval_ms,
            "streak": self.streak,
            "response_times": list(self.response_times),
            "due_at": self.due_at.isoformat(),
            "last_outcome": self.last_outcome.value,
            "answered_at": self.answered_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["ScheduleState"]:
        if not data:
            return None
        return cls(
            interval_ms=int(data["interval_ms"]),
            streak=int(data["streak"]),
            response_times=tuple(int(x) for x in data["response_times"]),
            due_at=datetime.fromisoformat(data["due_at"]),
            last_outcome=Outcome(data["last_outcome"]),
            answered_at=datetime.fromisoformat(data["answered_at"]),
        )


def push_sample(history: Sequence[int], sample: int, limit: int) -> Tuple[int, ...]:
    """Append ``sample`` and evict from the front until ``limit`` holds."""
    nxt = tuple(history) + (sample,)
    if len(nxt) <= limit:
        return nxt
    return nxt[len(nxt) - limit:]


def is_fast_enough(avg_recent_ms: float, required_time_ms: int) -> bool:
    # A zero requirement disables the speed check
    if required_time_ms <= 0:
        return True
    return avg_recent_ms <= required_time_ms


def next_interval_ms(current_ms: int, multiplier: float) -> int:
    return clamp_int(round(current_ms * multiplier), MIN_INTERVAL_MS, MAX_INTERVAL_MS)


def schedule_next(
    previous: Optional[ScheduleState],
    correct: bool,
    elapsed_ms: int,
    settings: SchedulerSettings,
    now: datetime,
) -> ScheduleState:
    elapsed = clamp_int(elapsed_ms, 0, MAX_ELAPSED_MS)
    history = push_sample(
        previous.response_times if previous else (), elapsed, settings.history_limit
    )
    avg_recent = sum(history) / len(history)
    streak = previous.streak if previous else 0

    if not correct:
        multiplier, streak = settings.penalty_multiplier, 0
    elif is_fast_enough(avg_recent, settings.required_time_ms):
        multiplier, streak = settings.reward_multiplier, streak + 1
    else:
        # Correct but slow: acknowledged, no growth
        multiplier, streak = 1.0, streak + 1

    current = previous.interval_ms if previous else settings.base_interval_ms
    interval = next_interval_ms(current, multiplier)

    return ScheduleState(
        interval_ms=interval,
        streak=streak,
        response_times=history,
        due_at=now + timedelta(milliseconds=interval),
        last_outcome=Outcome.from_bool(correct),
        answered_at=now,
    )
