# path: safe-route/src/safe_route/contracts/notification_contract.py

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class NotificationKind(str, Enum):
    ENTER = "ENTER"
    EXIT = "EXIT"
    INSTRUCTION = "INSTRUCTION"
    REROUTE_NEEDED = "REROUTE_NEEDED"
    STATUS = "STATUS"


class Urgency(str, Enum):
    CRITICAL = "critical"  # voice + vibration, must be acknowledged
    HIGH = "high"          # dismissible system notification
    INFO = "info"          # toast
    MILD = "mild"          # subtle notice (zone cleared, status)


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    payload: Dict[str, Any]
    title: str = ""
    body: str = ""
    urgency: Urgency = Urgency.INFO
    speak: bool = False
    vibrate: bool = False
    dismissible: bool = True


@dataclass(frozen=True)
class PositionError:
    code: str  # "PERMISSION_DENIED" / "POSITION_UNAVAILABLE" / "TIMEOUT"
    message: str = ""
