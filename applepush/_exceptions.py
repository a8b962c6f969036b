#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel
"""Exceptions raised by the APNs client."""

from __future__ import annotations

from typing import Self


class APNsError(Exception):
    """Base exception for APNs client errors."""


class PushError(APNsError):
    """Exception raised when a notification could not be delivered to the APNs gateway."""

    def __init__(self: Self, message: str = "", device_token: str | None = None) -> None:
        """Initialize the exception with the device token the push was addressed to."""
        self.device_token = device_token

        token_message = ""
        if device_token is not None:
            token_message = f" (device token: {device_token})"

        super().__init__(f"{message}{token_message}")


class ResponseDecodeError(APNsError):
    """Exception raised when the APNs gateway returns a body that cannot be decoded."""

    def __init__(self: Self, message: str, status_code: int, content: bytes) -> None:
        """Initialize the exception with the status code and response content."""
        self.status_code = status_code
        self.content = content
        super().__init__(f"{message} ({status_code}) {content = }")


class TokenError(APNsError):
    """Exception raised when a provider authentication token cannot be created."""
