"""
Connection to the external key-value cache (Redis).

The welcome service never reads or writes the cache; it only checks that the
configured instance answers PING so that readiness can be reported.
"""

import logging
import threading

import redis
from redis.backoff import EqualJitterBackoff, NoBackoff
from redis.exceptions import RedisError
from redis.retry import Retry

from .config import Config
from .errors import CacheUnavailable

LOG = logging.getLogger()


class CacheClient:
    def __init__(
        self,
        host: str,
        port: int,
        required: bool = False,
        retries: int = 5,
        backoff_base: float = 0.1,
        backoff_cap: float = 2.0,
        timeout: float = 1.0,
    ):
        self.host = host
        self.port = port
        self.required = required
        self._retries = retries
        self._backoff_base = backoff_base
        self._backoff_cap = backoff_cap
        self._ready = False

        # exactly one connection, and every use of it is serialized
        self._lock = threading.Lock()
        self._redis = redis.Redis(
            host=host,
            port=port,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
            max_connections=1,
            retry=Retry(NoBackoff(), 0),
        )

    @classmethod
    def from_config(cls, config: Config) -> "CacheClient":
        return cls(
            config.cache_host,
            config.cache_port,
            required=config.cache_required,
            retries=config.cache_retries,
            backoff_base=config.cache_backoff_base_ms / 1000,
            backoff_cap=config.cache_backoff_cap_ms / 1000,
            timeout=config.cache_timeout_ms / 1000,
        )

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def ready(self) -> bool:
        """Result of the most recent probe"""
        return self._ready

    def _ping(self) -> bool:
        with self._lock:
            self._redis.ping()
        return True

    def connect(self) -> bool:
        """
        Probe the cache at startup. When the cache is not required a single attempt
        is made and failure only disables readiness. When it is required, attempts are
        retried with jittered exponential backoff and CacheUnavailable is raised once
        the retries are exhausted.
        """
        if self.required:
            retry = Retry(EqualJitterBackoff(cap=self._backoff_cap, base=self._backoff_base), self._retries)
        else:
            retry = Retry(NoBackoff(), 0)

        attempts = []

        def failed(error):
            attempts.append(error)
            LOG.warning(f"Cache {self.address} probe {len(attempts)} failed: {error}")

        try:
            self._ready = retry.call_with_retry(self._ping, failed)
        except RedisError as e:
            self._ready = False
            if self.required:
                raise CacheUnavailable(self.host, self.port, f"{len(attempts)} attempts failed: {e}") from e
            LOG.warning(f"Cache {self.address} is unreachable, continuing without it")
            return False

        LOG.info(f"Connected to cache {self.address}")
        return True

    def is_ready(self) -> bool:
        try:
            self._ready = self._ping()
        except RedisError as e:
            LOG.debug(f"Cache {self.address} not ready: {e}")
            self._ready = False
        return self._ready

    def close(self):
        with self._lock:
            self._redis.close()
            self._redis.connection_pool.disconnect()
        self._ready = False
