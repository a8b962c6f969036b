#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel
"""Module containing the HTTP/2 APNs provider client."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from threading import Lock
from typing import TYPE_CHECKING, Final, Self

import httpx

from ._exceptions import PushError
from ._response import Response

if TYPE_CHECKING:
    from ssl import SSLContext
    from types import TracebackType

    from ._credential import Credential
    from ._notification import Notification
    from ._token import Token

HOST_DEVELOPMENT: Final = "https://api.sandbox.push.apple.com"
HOST_PRODUCTION: Final = "https://api.push.apple.com"

logger = getLogger(__name__)


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings applied to every client built from this configuration."""

    host: str = HOST_DEVELOPMENT
    timeout: float = 60.0
    """Limit, in seconds, for a whole request, including reading the response."""

    connect_timeout: float = 20.0
    """Limit, in seconds, for establishing the TLS connection."""

    keepalive_expiry: float = 600.0
    """Seconds an idle connection is kept open. APNs treats rapid reconnection as a denial-of-service attack."""

    transport: httpx.BaseTransport | None = None
    """Replaces the network transport entirely, e.g. with `httpx.MockTransport`."""


class APNsClient:
    """
    A long-lived connection to the APNs provider API.

    The underlying HTTP/2 connection is opened on the first push and reused afterwards.
    Keep a handle on the client rather than creating one per notification.
    """

    def __init__(
        self: Self,
        credential: Credential | None = None,
        token: Token | None = None,
        config: ClientConfig = ClientConfig(),  # noqa: B008
    ) -> None:
        """
        Initialize the APNs client.

        :param credential: TLS client certificate used for certificate-based authentication.
        :param token: Provider token used for token-based authentication.
        :param config: Host and connection settings.
        """
        self.credential = credential
        self.token = token
        self.host = config.host

        self._config = config
        self._http_client: httpx.Client | None = None
        self._lock = Lock()

    def __repr__(self: Self) -> str:
        identity = self.credential.fingerprint.hex() if self.credential is not None else "token"
        return f"<{self.__class__.__name__} {identity} @ {self.host}>"

    def development(self: Self) -> Self:
        """Send notifications through the development (sandbox) gateway."""
        self.host = HOST_DEVELOPMENT
        return self

    def production(self: Self) -> Self:
        """Send notifications through the production gateway."""
        self.host = HOST_PRODUCTION
        return self

    def _create_http_client(self: Self) -> httpx.Client:
        verify: SSLContext | bool = True
        if self.credential is not None and self._config.transport is None:
            verify = self.credential.create_ssl_context()

        return httpx.Client(
            http2=True,
            verify=verify,
            timeout=httpx.Timeout(self._config.timeout, connect=self._config.connect_timeout),
            limits=httpx.Limits(keepalive_expiry=self._config.keepalive_expiry),
            transport=self._config.transport,
        )

    @property
    def http_client(self: Self) -> httpx.Client:
        """The pooled HTTP/2 client, created on first use."""
        with self._lock:
            if self._http_client is None:
                self._http_client = self._create_http_client()

            return self._http_client

    def push(self: Self, notification: Notification) -> Response:
        """
        Send a notification to the APNs gateway.

        :return: The gateway's response, whether the notification was accepted or rejected.
        :raises PushError: If the request could not be completed.
        :raises ResponseDecodeError: If the gateway's response body could not be decoded.
        """
        url = f"{self.host}/3/device/{notification.device_token}"
        headers = notification.headers()

        if self.token is not None:
            headers["authorization"] = f"bearer {self.token.generate_if_expired()}"

        logger.debug(f"Pushing notification to {url} with headers {headers}")

        try:
            http_response = self.http_client.post(url, content=notification.body(), headers=headers)
        except httpx.HTTPError as e:
            msg = f"Failed to push notification: {e}"
            raise PushError(msg, device_token=notification.device_token) from e

        logger.debug(f"{http_response.http_version} {http_response.status_code} {http_response.reason_phrase}")

        response = Response.from_http_response(http_response)

        if not response.sent:
            logger.error(f"Notification {response.apns_id} rejected ({response.status_code}: {response.reason})")

        return response

    def reset_connection(self: Self) -> None:
        """Drop the current connection so that the next push dials a new one."""
        with self._lock:
            http_client, self._http_client = self._http_client, None

        if http_client is not None:
            logger.debug(f"Resetting connection of {self!r}")
            http_client.close()

    def close(self: Self) -> None:
        """Close the underlying connection."""
        self.reset_connection()

    def __enter__(self: Self) -> Self:
        return self

    def __exit__(
        self: Self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()
