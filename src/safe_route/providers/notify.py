from __future__ import annotations

import logging
from typing import List

from safe_route.contracts.notification_contract import Notification, NotificationKind, Urgency
from safe_route.providers.base import NotificationSink

log = logging.getLogger(__name__)


class LoggingNotificationSink(NotificationSink):
    """Writes every notification to the log; used by the CLI replay and headless runs."""

    def notify(self, notification: Notification) -> None:
        level = logging.WARNING if notification.urgency in (Urgency.CRITICAL, Urgency.HIGH) else logging.INFO
        log.log(level, "[%s] %s: %s", notification.kind.value, notification.title, notification.body)


class CollectingNotificationSink(NotificationSink):
    def __init__(self) -> None:
        self.received: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.received.append(notification)

    def of_kind(self, kind: NotificationKind) -> List[Notification]:
        return [n for n in self.received if n.kind == kind]

    def clear(self) -> None:
        self.received.clear()
