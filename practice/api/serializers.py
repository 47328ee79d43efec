from rest_framework import serializers

from ..domain.enums import EventType
from ..domain.machine import Event


class SessionCreateSerializer(serializers.Serializer):
    deck_id = serializers.UUIDField()


class SessionViewQuerySerializer(serializers.Serializer):
    reset_reveal_state = serializers.BooleanField(default=True)


class EventInSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[e.value for e in EventType])
    correct = serializers.BooleanField(required=False)
    to = serializers.IntegerField(required=False, min_value=0)
    expected_version = serializers.IntegerField(required=False, min_value=0)

    def validate(self, attrs):
        kind = attrs["type"]
        if kind in (EventType.ANSWER.value, EventType.SET_OUTCOME.value) and "correct" not in attrs:
            raise serializers.ValidationError({"correct": "This field is required."})
        if kind == EventType.NAVIGATE.value and "to" not in attrs:
            raise serializers.ValidationError({"to": "This field is required."})
        return attrs

    def to_event(self) -> Event:
        data = self.validated_data
        return Event(
            type=EventType(data["type"]),
            correct=data.get("correct"),
            to=data.get("to"),
        )
