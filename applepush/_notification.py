#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel
"""Module containing the notification model and its mapping onto APNs request headers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum, StrEnum
from typing import Any, Final, Self

EPOCH: Final = datetime(1970, 1, 1, tzinfo=timezone.utc)


class PushType(StrEnum):
    ALERT = "alert"
    BACKGROUND = "background"
    LOCATION = "location"
    VOIP = "voip"
    COMPLICATION = "complication"
    FILE_PROVIDER = "fileprovider"
    MDM = "mdm"
    LIVE_ACTIVITY = "liveactivity"
    PUSH_TO_TALK = "pushtotalk"


class Priority(IntEnum):
    UNSET = 0
    POWER_CONSIDERATIONS = 1
    LOW = 5
    HIGH = 10


@dataclass
class Notification:
    """A remote notification addressed to a single device."""

    device_token: str
    payload: bytes | str | dict[str, Any] = field(default_factory=dict)
    topic: str | None = None
    apns_id: str | None = None
    collapse_id: str | None = None
    priority: Priority | int = Priority.UNSET
    expiration: datetime | None = None
    push_type: PushType | None = None

    def body(self: Self) -> bytes:
        """Serialize the payload as the JSON request body."""
        if isinstance(self.payload, bytes):
            return self.payload

        if isinstance(self.payload, str):
            return self.payload.encode()

        return json.dumps(self.payload, separators=(",", ":")).encode()

    def headers(self: Self) -> dict[str, str]:
        """
        Map the notification's delivery options onto APNs request headers.

        >>> Notification("00fc13adff785122b4ad28809a3420982341241421348097878e577c991de8f0").headers()
        {'content-type': 'application/json; charset=utf-8', 'apns-push-type': 'alert'}
        """
        headers = {"content-type": "application/json; charset=utf-8"}

        if self.topic:
            headers["apns-topic"] = self.topic

        if self.apns_id:
            headers["apns-id"] = self.apns_id

        if self.collapse_id:
            headers["apns-collapse-id"] = self.collapse_id

        if self.priority > 0:
            headers["apns-priority"] = str(int(self.priority))

        if self.expiration is not None and _as_aware(self.expiration) > EPOCH:
            headers["apns-expiration"] = str(int(self.expiration.timestamp()))

        headers["apns-push-type"] = str(self.push_type or PushType.ALERT)

        return headers


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.astimezone()
