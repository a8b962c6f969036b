#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel
"""Client library for delivering push notifications to the Apple Push Notification service (APNs) over HTTP/2."""

from ._client import HOST_DEVELOPMENT, HOST_PRODUCTION, APNsClient, ClientConfig
from ._credential import Credential, fingerprint
from ._exceptions import APNsError, PushError, ResponseDecodeError, TokenError
from ._manager import (
    DEFAULT_MAX_AGE,
    DEFAULT_MAX_SIZE,
    ClientFactory,
    ClientManager,
    LRUClientManager,
    ManagerOption,
    NullClientManager,
    default_factory,
    factory,
    max_age,
    max_size,
    new_client_manager,
)
from ._notification import Notification, Priority, PushType
from ._response import Reason, Response
from ._token import Token

__all__ = [
    "DEFAULT_MAX_AGE",
    "DEFAULT_MAX_SIZE",
    "HOST_DEVELOPMENT",
    "HOST_PRODUCTION",
    "APNsClient",
    "APNsError",
    "ClientConfig",
    "ClientFactory",
    "ClientManager",
    "Credential",
    "LRUClientManager",
    "ManagerOption",
    "Notification",
    "NullClientManager",
    "Priority",
    "PushError",
    "PushType",
    "Reason",
    "Response",
    "ResponseDecodeError",
    "Token",
    "TokenError",
    "default_factory",
    "factory",
    "fingerprint",
    "max_age",
    "max_size",
    "new_client_manager",
]
