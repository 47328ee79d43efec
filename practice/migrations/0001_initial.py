import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

OUTCOME_CHOICES = [("unset", "Unset"), ("correct", "Correct"), ("incorrect", "Incorrect")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Deck",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("is_archived", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="decks", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["user", "is_archived"], name="deck_user_archived_idx")],
            },
        ),
        migrations.CreateModel(
            name="Card",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("kind", models.CharField(choices=[("basic", "Basic"), ("mcq", "Mcq")], default="basic", max_length=10)),
                ("front", models.TextField()),
                ("back", models.TextField()),
                ("mcq_options", models.JSONField(blank=True, null=True)),
                ("mcq_correct_index", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("sketch_code", models.TextField(blank=True, null=True)),
                ("sketch_width", models.PositiveIntegerField(blank=True, null=True)),
                ("sketch_height", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("deck", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="cards", to="practice.deck")),
            ],
            options={
                "indexes": [models.Index(fields=["deck", "created_at"], name="card_deck_created_idx")],
            },
        ),
        migrations.CreateModel(
            name="CardSchedule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("due_at", models.DateTimeField()),
                ("interval_ms", models.BigIntegerField()),
                ("streak", models.PositiveIntegerField(default=0)),
                ("response_times", models.JSONField(default=list)),
                ("last_outcome", models.CharField(choices=OUTCOME_CHOICES, max_length=10)),
                ("last_answered_at", models.DateTimeField()),
                ("version", models.PositiveIntegerField(default=0)),
                ("card", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="schedules", to="practice.card")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "unique_together": {("user", "card")},
                "indexes": [models.Index(fields=["user", "due_at"], name="schedule_user_due_idx")],
            },
        ),
        migrations.CreateModel(
            name="PracticeSession",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("status", models.CharField(choices=[("active", "Active"), ("completed", "Completed")], default="active", max_length=10)),
                ("state", models.CharField(choices=[("idle", "Idle"), ("presenting", "Presenting"), ("revealed", "Revealed"), ("answered", "Answered"), ("completed", "Completed")], default="idle", max_length=12)),
                ("frontier", models.PositiveIntegerField(default=0)),
                ("cursor", models.PositiveIntegerField(default=0)),
                ("practice_settings", models.JSONField(default=dict)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("deck", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="practice_sessions", to="practice.deck")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="practice_sessions", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["user", "deck", "status"], name="session_user_deck_status_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "active")),
                        fields=("user", "deck"),
                        name="one_active_session_per_user_deck",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SessionItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField()),
                ("is_novel", models.BooleanField()),
                ("presented_at", models.DateTimeField(blank=True, null=True)),
                ("revealed_at", models.DateTimeField(blank=True, null=True)),
                ("answered_at", models.DateTimeField(blank=True, null=True)),
                ("outcome", models.CharField(choices=OUTCOME_CHOICES, default="unset", max_length=10)),
                ("elapsed_ms", models.PositiveIntegerField(blank=True, null=True)),
                ("schedule_before", models.JSONField(blank=True, null=True)),
                ("card", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="+", to="practice.card")),
                ("session", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="items", to="practice.practicesession")),
            ],
            options={
                "ordering": ["position"],
                "unique_together": {("session", "position")},
            },
        ),
        migrations.CreateModel(
            name="DailyCounter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("novel_shown", models.PositiveIntegerField(default=0)),
                ("review_shown", models.PositiveIntegerField(default=0)),
                ("version", models.PositiveIntegerField(default=0)),
                ("deck", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="+", to="practice.deck")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "unique_together": {("user", "deck", "date")},
            },
        ),
    ]
