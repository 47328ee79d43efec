from rest_framework import serializers

from accounts.models import User
from practice.config import (
    HISTORY_LIMIT_RANGE,
    MAX_DAILY_LIMIT,
    MAX_INTERVAL_MS,
    MINUTE_MS,
    MULTIPLIER_RANGE,
    REQUIRED_TIME_RANGE_MS,
)


class PracticeSettingsSerializer(serializers.ModelSerializer):
    daily_novel_limit = serializers.IntegerField(min_value=0, max_value=MAX_DAILY_LIMIT)
    daily_review_limit = serializers.IntegerField(min_value=0, max_value=MAX_DAILY_LIMIT)
    scheduler_base_interval_ms = serializers.IntegerField(
        min_value=MINUTE_MS, max_value=MAX_INTERVAL_MS
    )
    scheduler_reward_multiplier = serializers.FloatField(
        min_value=MULTIPLIER_RANGE[0], max_value=MULTIPLIER_RANGE[1]
    )
    scheduler_penalty_multiplier = serializers.FloatField(
        min_value=MULTIPLIER_RANGE[0], max_value=MULTIPLIER_RANGE[1]
    )
    scheduler_required_time_ms = serializers.IntegerField(
        min_value=REQUIRED_TIME_RANGE_MS[0], max_value=REQUIRED_TIME_RANGE_MS[1]
    )
    scheduler_history_limit = serializers.IntegerField(
        min_value=HISTORY_LIMIT_RANGE[0], max_value=HISTORY_LIMIT_RANGE[1]
    )

    class Meta:
        model = User
        fields = [
            "daily_novel_limit",
            "daily_review_limit",
            "scheduler_base_interval_ms",
            "scheduler_reward_multiplier",
            "scheduler_penalty_multiplier",
            "scheduler_required_time_ms",
            "scheduler_history_limit",
        ]
