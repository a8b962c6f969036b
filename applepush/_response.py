#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel
"""Module containing the APNs gateway response model."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from http import HTTPStatus
from logging import getLogger
from typing import TYPE_CHECKING, Self

from ._exceptions import ResponseDecodeError

if TYPE_CHECKING:
    from httpx import Response as HTTPResponse

logger = getLogger(__name__)


class Reason(StrEnum):
    """Reasons reported by the APNs gateway when a notification is rejected."""

    # 400
    BAD_COLLAPSE_ID = "BadCollapseId"
    BAD_DEVICE_TOKEN = "BadDeviceToken"
    BAD_EXPIRATION_DATE = "BadExpirationDate"
    BAD_MESSAGE_ID = "BadMessageId"
    BAD_PRIORITY = "BadPriority"
    BAD_TOPIC = "BadTopic"
    DEVICE_TOKEN_NOT_FOR_TOPIC = "DeviceTokenNotForTopic"
    DUPLICATE_HEADERS = "DuplicateHeaders"
    IDLE_TIMEOUT = "IdleTimeout"
    INVALID_PUSH_TYPE = "InvalidPushType"
    MISSING_DEVICE_TOKEN = "MissingDeviceToken"
    MISSING_TOPIC = "MissingTopic"
    PAYLOAD_EMPTY = "PayloadEmpty"
    TOPIC_DISALLOWED = "TopicDisallowed"

    # 403
    BAD_CERTIFICATE = "BadCertificate"
    BAD_CERTIFICATE_ENVIRONMENT = "BadCertificateEnvironment"
    EXPIRED_PROVIDER_TOKEN = "ExpiredProviderToken"
    FORBIDDEN = "Forbidden"
    INVALID_PROVIDER_TOKEN = "InvalidProviderToken"
    MISSING_PROVIDER_TOKEN = "MissingProviderToken"

    # 404, 405, 410, 413
    BAD_PATH = "BadPath"
    METHOD_NOT_ALLOWED = "MethodNotAllowed"
    EXPIRED_TOKEN = "ExpiredToken"
    UNREGISTERED = "Unregistered"
    PAYLOAD_TOO_LARGE = "PayloadTooLarge"

    # 429, 500, 503
    TOO_MANY_PROVIDER_TOKEN_UPDATES = "TooManyProviderTokenUpdates"
    TOO_MANY_REQUESTS = "TooManyRequests"
    INTERNAL_SERVER_ERROR = "InternalServerError"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    SHUTDOWN = "Shutdown"


@dataclass
class Response:
    """The APNs gateway's answer to a single push request."""

    status_code: int
    apns_id: str = ""
    apns_unique_id: str = ""
    reason: Reason | str | None = None
    """Rejection reason; reasons missing from `Reason` are kept as the raw string."""
    timestamp: datetime | None = None
    """When the device token was last known to be valid (410 responses only)."""

    @property
    def sent(self: Self) -> bool:
        """Whether the notification was accepted by the gateway."""
        return self.status_code == HTTPStatus.OK

    @classmethod
    def from_http_response(cls: type[Self], http_response: HTTPResponse) -> Self:
        """Decode the status line, `apns-*` headers and JSON error body of a gateway response."""
        response = cls(
            status_code=http_response.status_code,
            apns_id=http_response.headers.get("apns-id", ""),
            apns_unique_id=http_response.headers.get("apns-unique-id", ""),
        )

        content = http_response.content
        if not content.strip():
            return response

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            msg = "Malformed JSON in gateway response."
            raise ResponseDecodeError(msg, http_response.status_code, content) from e

        if not isinstance(data, dict):
            msg = "Expected a JSON object in gateway response."
            raise ResponseDecodeError(msg, http_response.status_code, content)

        if (reason := data.get("reason")) is not None:
            try:
                response.reason = Reason(reason)
            except ValueError:
                logger.warning(f"Unknown APNs rejection reason: {reason!r}")
                response.reason = reason

        if (timestamp := data.get("timestamp")) is not None:
            if not isinstance(timestamp, int) or isinstance(timestamp, bool):
                msg = f"Expected a millisecond timestamp, got {type(timestamp).__name__}."
                raise ResponseDecodeError(msg, http_response.status_code, content)

            response.timestamp = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)

        return response
