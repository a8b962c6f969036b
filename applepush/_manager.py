#  ApplePush - Python library for delivering notifications through the Apple Push Notification service
#  Copyright (C) 2024  Cypheriel
"""
Module containing the client manager, a least-recently-used cache of APNs clients keyed by credential.

APNs treats rapid connection and disconnection as a denial-of-service attack, so providers sending on
behalf of many certificates should reuse one long-lived client per certificate. The manager hands out
those clients, building missing ones with a factory and replacing ones left unused for too long.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import timedelta
from logging import getLogger
from threading import Lock
from typing import Callable, Final, Protocol, Self

from ._client import APNsClient, ClientConfig
from ._credential import Credential, fingerprint

ClientFactory = Callable[[Credential], "APNsClient | None"]
ManagerOption = Callable[["LRUClientManager"], None]

DEFAULT_MAX_SIZE: Final = 64
DEFAULT_MAX_AGE: Final = timedelta(minutes=10)

logger = getLogger(__name__)


class ClientManager(Protocol):
    def add(self: ClientManager, client: APNsClient) -> None: ...

    def get(self: ClientManager, credential: Credential) -> APNsClient | None: ...

    def __len__(self: ClientManager) -> int: ...


def default_factory(config: ClientConfig = ClientConfig()) -> ClientFactory:  # noqa: B008
    """Return a factory building a client with `config` for every credential it is given."""

    def factory(credential: Credential) -> APNsClient | None:
        if not credential.certificate_chain:
            logger.error("Cannot build an APNs client for a credential without certificates.")
            return None

        return APNsClient(credential, config=config)

    return factory


@dataclass
class _ManagerItem:
    key: bytes
    client: APNsClient
    last_used: int
    """Monotonic timestamp, in nanoseconds."""


class LRUClientManager:
    """
    A thread-safe cache of APNs clients, at most one per credential.

    When the cache grows beyond `max_size` clients, the least recently used one is evicted.
    When `get` finds a client that has remained unused for `max_age` or longer, the factory is called to replace it.

    The factory is never called while the cache is locked. Concurrent `get` calls for the same missing credential
    may each build a client; the last one stored is kept, while every caller receives the client it built.
    """

    def __init__(
        self: Self,
        *,
        max_size: int = DEFAULT_MAX_SIZE,
        max_age: timedelta = DEFAULT_MAX_AGE,
        factory: ClientFactory | None = None,
    ) -> None:
        """
        Initialize the client manager.

        :param max_size: Maximum number of clients kept. Zero disables the limit.
        :param max_age: Maximum time a client may remain unused before being replaced. Zero disables expiry.
            Resolution is one microsecond, the finest a `timedelta` holds.
        :param factory: Builds a client for a credential missing from the cache, or returns `None`.
        """
        self._lock = Lock()
        # Least recently used first.
        self._cache: OrderedDict[bytes, _ManagerItem] = OrderedDict()

        self._max_size = 0
        self._max_age = timedelta(0)
        self._max_age_ns = 0
        self._factory: ClientFactory = default_factory()

        self.set_max_size(max_size)
        self.set_max_age(max_age)
        if factory is not None:
            self.set_factory(factory)

    def __repr__(self: Self) -> str:
        return f"<{self.__class__.__name__} {len(self)}/{self._max_size or 'unbounded'} clients>"

    @property
    def max_size(self: Self) -> int:
        return self._max_size

    @property
    def max_age(self: Self) -> timedelta:
        return self._max_age

    @property
    def factory(self: Self) -> ClientFactory:
        return self._factory

    def set_max_size(self: Self, size: int) -> None:
        if size < 0:
            msg = f"Maximum size must not be negative, got {size}."
            raise ValueError(msg)

        with self._lock:
            self._max_size = size

            while size and len(self._cache) > size:
                evicted_key, _ = self._cache.popitem(last=False)
                logger.debug(f"Evicted least recently used client {evicted_key.hex()} after shrinking to {size}.")

    def set_max_age(self: Self, age: timedelta) -> None:
        if age < timedelta(0):
            msg = f"Maximum age must not be negative, got {age}."
            raise ValueError(msg)

        with self._lock:
            self._max_age = age
            self._max_age_ns = age // timedelta(microseconds=1) * 1_000

    def set_factory(self: Self, factory: ClientFactory) -> None:
        if not callable(factory):
            msg = f"Factory must be a callable, got {type(factory).__name__}!"
            raise TypeError(msg)

        with self._lock:
            self._factory = factory

    def _is_stale(self: Self, item: _ManagerItem, now: int) -> bool:
        if not self._max_age_ns:
            return False

        return now - item.last_used >= self._max_age_ns

    def _store(self: Self, key: bytes, client: APNsClient) -> None:
        """Insert or replace the client for `key`, evicting the least recently used client if necessary."""
        now = time.monotonic_ns()

        with self._lock:
            if (item := self._cache.get(key)) is not None:
                item.client = client
                item.last_used = now
                self._cache.move_to_end(key)
                return

            self._cache[key] = _ManagerItem(key, client, now)

            if self._max_size and len(self._cache) > self._max_size:
                evicted_key, evicted = self._cache.popitem(last=False)
                logger.debug(f"Evicted least recently used client {evicted_key.hex()}: {evicted.client!r}")

    def add(self: Self, client: APNsClient) -> None:
        """Add a client to the manager, replacing any client for the same credential."""
        if client.credential is None:
            msg = "Only clients bound to a certificate credential can be managed."
            raise ValueError(msg)

        self._store(fingerprint(client.credential), client)

    def get(self: Self, credential: Credential) -> APNsClient | None:
        """
        Get the client for a credential.

        If no client is cached for the credential, or the cached one has expired, the factory is called and its
        result is stored and returned. `None` is returned, and the cache left untouched, when the factory returns
        `None`.
        """
        key = fingerprint(credential)
        now = time.monotonic_ns()

        with self._lock:
            item = self._cache.get(key)
            if item is not None and not self._is_stale(item, now):
                item.last_used = now
                self._cache.move_to_end(key)
                return item.client

            factory = self._factory

        if item is None:
            logger.debug(f"No client cached for {key.hex()}, building one.")
        else:
            logger.debug(f"Client for {key.hex()} expired, building a replacement.")

        client = factory(credential)

        if client is None:
            if item is not None:
                logger.warning(f"Failed to replace expired client for {key.hex()}, keeping it until the next attempt.")
            return None

        self._store(key, client)
        return client

    def remove(self: Self, credential: Credential) -> APNsClient | None:
        """Remove the client for a credential from the manager, returning it if one was cached."""
        with self._lock:
            item = self._cache.pop(fingerprint(credential), None)

        return None if item is None else item.client

    def __len__(self: Self) -> int:
        with self._lock:
            return len(self._cache)


class NullClientManager:
    """A client manager that never stores anything and never builds clients."""

    def add(self: Self, client: APNsClient) -> None:
        pass

    def get(self: Self, credential: Credential) -> APNsClient | None:  # noqa: ARG002
        return None

    def __len__(self: Self) -> int:
        return 0


def max_size(size: int) -> ManagerOption:
    """Limit the number of cached clients; the least recently used one is evicted beyond it. Zero disables."""
    if size < 0:
        msg = f"Maximum size must not be negative, got {size}."
        raise ValueError(msg)

    def option(manager: LRUClientManager) -> None:
        manager.set_max_size(size)

    return option


def max_age(age: timedelta) -> ManagerOption:
    """Replace clients left unused for `age` or longer when they are next requested. Zero disables.

    `timedelta` resolution is one microsecond, so that is the shortest effective age.
    """
    if age < timedelta(0):
        msg = f"Maximum age must not be negative, got {age}."
        raise ValueError(msg)

    def option(manager: LRUClientManager) -> None:
        manager.set_max_age(age)

    return option


def factory(client_factory: ClientFactory) -> ManagerOption:
    """Build missing or expired clients with `client_factory`."""

    def option(manager: LRUClientManager) -> None:
        manager.set_factory(client_factory)

    return option


def new_client_manager(*options: ManagerOption) -> LRUClientManager:
    """
    Create a client manager with the default configuration, then apply `options` in order.

    By default, at most 64 clients are kept, clients unused for 10 minutes are replaced, and missing clients are
    built with the default `ClientConfig`.

    >>> manager = new_client_manager(max_size(1), max_age(timedelta(seconds=30)))
    >>> manager.max_size, manager.max_age
    (1, datetime.timedelta(seconds=30))
    """
    manager = LRUClientManager()

    for option in options:
        option(manager)

    return manager
