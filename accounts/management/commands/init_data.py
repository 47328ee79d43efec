import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounts.models import User
from practice.data.models import Card, Deck

DEMO_CARDS = [
    {"front": "What does SRS stand for?", "back": "Spaced repetition system"},
    {"front": "Capital of Japan?", "back": "Tokyo"},
    {
        "front": "Which multiplier grows an interval?",
        "back": "The reward multiplier",
        "kind": "mcq",
        "mcq_options": ["Penalty", "Reward", "Neither"],
        "mcq_correct_index": 1,
    },
    {"front": "2 + 2 =", "back": "4"},
    {"front": "H2O is commonly called?", "back": "Water"},
]


class Command(BaseCommand):
    help = "Reset users and seed a demo deck for each of them"

    def add_arguments(self, parser):
        parser.add_argument(
            "--file", default=None, help="JSON file with a list of {front, back, ...} cards"
        )
        parser.add_argument("--users", type=int, default=5)

    def handle(self, *args, **options):
        cards = DEMO_CARDS
        file_name = options.get("file")
        if file_name:
            path = Path(file_name)
            if not path.is_absolute():
                path = Path(__file__).parent / file_name
            try:
                with open(path) as json_file:
                    cards = json.load(json_file)
            except (OSError, ValueError) as e:
                raise CommandError(f"Error loading data: {e}")

        with transaction.atomic():
            User.objects.all().delete()
            self.stdout.write(self.style.SUCCESS("All existing user data has been deleted"))

            users = [
                User.objects.create_superuser(
                    "testuser", email="testuser@example.com", password="testpassword"
                )
            ]
            for i in range(1, options["users"] + 1):
                users.append(
                    User.objects.create_user(
                        f"testuser{i}",
                        email=f"testuser{i}@example.com",
                        password="testpassword",
                    )
                )

            for user in users:
                deck = Deck.objects.create(user=user, name="Demo deck")
                Card.objects.bulk_create([Card(deck=deck, **card) for card in cards])

        self.stdout.write(
            self.style.SUCCESS(f"Seeded {len(users)} users with {len(cards)} cards each")
        )
