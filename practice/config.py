SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

MIN_INTERVAL_MS = SECOND_MS
MAX_INTERVAL_MS = 365 * DAY_MS
MAX_ELAPSED_MS = HOUR_MS

# Longest run of consecutive queue entries taken from one pool
MAX_POOL_RUN = 3

DEFAULT_DAILY_NOVEL_LIMIT = 20
DEFAULT_DAILY_REVIEW_LIMIT = 200
MAX_DAILY_LIMIT = 10000

DEFAULT_SCHEDULER = {
    "base_interval_ms": 30 * MINUTE_MS,
    "reward_multiplier": 1.8,
    "penalty_multiplier": 0.6,
    "required_time_ms": 10 * SECOND_MS,
    "history_limit": 10,
}

MULTIPLIER_RANGE = (0.0001, 1000.0)
REQUIRED_TIME_RANGE_MS = (0, HOUR_MS)
HISTORY_LIMIT_RANGE = (1, 1000)
