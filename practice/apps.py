import atexit

from django.apps import AppConfig


class PracticeConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "practice"

    notifier = None

    def ready(self):
        from .services.events import EventNotifier

        self.notifier = EventNotifier()
        self.notifier.start()
        atexit.register(self.notifier.shutdown, quiet=True)
