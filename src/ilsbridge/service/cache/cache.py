from __future__ import annotations

import json
import threading
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal, Protocol

import redis

from ilsbridge.service.cache.configuration import CacheConfiguration
from ilsbridge.util.json import json_serializer
from ilsbridge.util.log import LoggerMixin
from ilsbridge.util.sentinel import SentinelType

if TYPE_CHECKING:
    RedisClient = redis.Redis[str]
else:
    RedisClient = redis.Redis

CacheLookup = Any | Literal[SentinelType.NotCached]


class CacheBackend(Protocol):
    """Key-value storage for memoized patron data.

    Entries never expire. Writing a key replaces whatever was stored there.
    """

    def get(self, key: str) -> CacheLookup:
        """Return the stored value, or SentinelType.NotCached if the key was
        never written."""
        ...

    def set(self, key: str, value: Any) -> None: ...


class InMemoryCacheBackend:
    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheLookup:
        with self._lock:
            return self._data.get(key, SentinelType.NotCached)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def __len__(self) -> int:
        return len(self._data)


class RedisCacheBackend(LoggerMixin):
    """Stores values as JSON documents in Redis, so that several processes
    share what one of them learned about a patron.
    """

    SEPARATOR = "::"

    def __init__(self, client: RedisClient, key_prefix: str) -> None:
        self.client = client
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return self.SEPARATOR.join([self.key_prefix, key])

    def get(self, key: str) -> CacheLookup:
        raw = self.client.get(self._key(key))
        if raw is None:
            return SentinelType.NotCached
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self.client.set(self._key(key), json_serializer(value))

    @classmethod
    def from_url(
        cls,
        url: str,
        key_prefix: str,
        socket_timeout: float | None = None,
        socket_connect_timeout: float | None = None,
    ) -> RedisCacheBackend:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
        )
        return cls(client, key_prefix)


def cache_backend_from_config(config: CacheConfiguration | None = None) -> CacheBackend:
    config = config or CacheConfiguration()
    if config.redis_url is None:
        return InMemoryCacheBackend()
    return RedisCacheBackend.from_url(
        config.redis_url,
        config.key_prefix,
        socket_timeout=config.socket_timeout,
        socket_connect_timeout=config.socket_connect_timeout,
    )


class PatronCacheKind(StrEnum):
    BLOCKS = "blocks"
    GROUP_CODE = "group_code"


class PatronCache(LoggerMixin):
    """Per-patron memoization keyed by (patron id, kind).

    There is no expiry and no invalidation: a value stays until the next
    write for the same patron and kind replaces it.
    """

    def __init__(self, backend: CacheBackend | None = None) -> None:
        self.backend: CacheBackend = (
            backend if backend is not None else InMemoryCacheBackend()
        )

    @staticmethod
    def key(patron_id: str, kind: PatronCacheKind) -> str:
        return f"alma|user|{patron_id}|{kind.value}"

    def get(self, patron_id: str, kind: PatronCacheKind) -> CacheLookup:
        value = self.backend.get(self.key(patron_id, kind))
        if value is not SentinelType.NotCached:
            self.log.debug(f"Cache hit for {self.key(patron_id, kind)}")
        return value

    def put(self, patron_id: str, kind: PatronCacheKind, value: Any) -> None:
        self.backend.set(self.key(patron_id, kind), value)
