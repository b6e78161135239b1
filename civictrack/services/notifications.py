# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Notification dispatch contract.

The complaint core emits logical events; how they reach users is up to the
dispatcher. Dispatch runs after a transition is committed, so a failed
delivery is reported through the return value and never raised.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List

from ..models.entities import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationDispatcher(ABC):
    """Delivers notification events to an external channel."""

    @abstractmethod
    def notify(self, event: NotificationEvent) -> bool:
        """Deliver one event; returns False when delivery failed."""

    def notify_all(self, events: List[NotificationEvent]) -> int:
        """Deliver events in order and return how many succeeded."""
        delivered = 0
        for event in events:
            if self.notify(event):
                delivered += 1
            else:
                logger.warning(
                    "Notification not delivered",
                    extra={
                        "user_id": event.user_id,
                        "complaint_id": event.complaint_id,
                        "kind": event.kind.value
                    }
                )
        return delivered


class RecordingDispatcher(NotificationDispatcher):
    """Keeps events in memory; used in tests and development."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: List[NotificationEvent] = []

    def notify(self, event: NotificationEvent) -> bool:
        with self._lock:
            self.events.append(event)
        logger.debug(f"Recorded {event.kind.value} for user {event.user_id}")
        return True

    def for_user(self, user_id: str) -> List[NotificationEvent]:
        with self._lock:
            return [event for event in self.events if event.user_id == user_id]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()
