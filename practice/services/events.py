"""
Per-process change notifier.

Connected clients (SSE streams, websockets, test probes) subscribe a callable
per user; the practice services call ``notify_changed`` after each successful
commit. Delivery is best-effort: a lost notification only delays a client
until its next ``getView`` read.

The registry lives in this process only. Running more than one instance needs
an external broker (Redis pub/sub, Postgres LISTEN/NOTIFY) to fan events out.
"""
import threading
from collections import defaultdict

import structlog
from django.apps import apps
from django.db import transaction

logger = structlog.get_logger()


class EventNotifier:
    def __init__(self):
        self._lock = threading.Lock()
        self._listeners = defaultdict(set)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        with self._lock:
            self._running = True
        logger.info("notifier_started")

    def shutdown(self, quiet=False):
        """Drop every listener; ``quiet`` skips the log line (used at interpreter exit)."""
        with self._lock:
            dropped = sum(len(v) for v in self._listeners.values())
            self._listeners.clear()
            self._running = False
        if not quiet:
            logger.info("notifier_stopped", dropped_listeners=dropped)
        return dropped

    def subscribe(self, user_id, listener):
        """Register ``listener(event)`` for ``user_id``; returns an unsubscribe callable."""
        key = str(user_id)
        with self._lock:
            self._listeners[key].add(listener)

        def unsubscribe():
            with self._lock:
                current = self._listeners.get(key)
                if not current:
                    return
                current.discard(listener)
                if not current:
                    del self._listeners[key]

        return unsubscribe

    def listener_count(self, user_id) -> int:
        with self._lock:
            return len(self._listeners.get(str(user_id), ()))

    def notify_changed(self, user_id, event="sync"):
        with self._lock:
            if not self._running:
                logger.debug("notify_skipped_not_running", user_id=str(user_id))
                return
            listeners = list(self._listeners.get(str(user_id), ()))

        for listener in listeners:
            try:
                listener({"type": event})
            except Exception:
                # One broken stream must not block the others
                logger.warning("listener_failed", user_id=str(user_id), exc_info=True)


def get_notifier() -> EventNotifier:
    return apps.get_app_config("practice").notifier


def notify_after_commit(user_id):
    """Schedule a change notification for when the current transaction commits."""
    transaction.on_commit(lambda: get_notifier().notify_changed(user_id))
