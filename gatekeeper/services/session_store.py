"""
Internal service API for the distributed session store.

Sessions are created at login (outside of the gatekeeper), and are stored in
Redis as JSON under ``session:<token>``, where ``<token>`` is the access token
issued to the customer. Entries expire on their own after the session TTL, and
are deleted explicitly at logout.

The same connection backs :class:`IntrospectionCache`, which may hold recent
introspection results if that is enabled.
"""

import atexit
import json
import threading
from functools import wraps
from typing import Any, Mapping, Optional, Union
import logging

from flask import Flask, current_app
import redis
from redis.cluster import RedisCluster

from ..domain import CredentialConfig, SessionRecord, TokenInfo
from ..exceptions import MalformedPayload, StoreNotInitialized, \
    TransportError

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'gatekeeper.session_store'
SESSION_PREFIX = 'session'
INTROSPECTION_PREFIX = 'introspection'

_init_lock = threading.Lock()

Redis = Union[redis.StrictRedis, RedisCluster]


def session_key(token: str) -> str:
    """Key under which the session for ``token`` is stored."""
    return f'{SESSION_PREFIX}:{token}'


def introspection_key(token: str) -> str:
    """Key under which an introspection result for ``token`` is cached."""
    return f'{INTROSPECTION_PREFIX}:{token}'


def connect(config: Mapping[str, Any]) -> Redis:
    """
    Create a Redis client from the application config.

    The client holds a connection pool, and connections are attached at the
    time a command is executed, so a single client may be shared by all
    requests.
    """
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    db = int(config.get('REDIS_DATABASE', '0'))
    password = config.get('REDIS_PASSWORD') or None
    cluster = str(config.get('REDIS_CLUSTER', '0')) == '1'
    timeout = config.get('REDIS_SOCKET_TIMEOUT')
    socket_timeout = float(timeout) if timeout else None

    logger.debug('New Redis connection at %s, port %s', host, port)
    if cluster:
        return RedisCluster(host=host, port=port, password=password,
                            socket_timeout=socket_timeout)
    return redis.StrictRedis(host=host, port=port, db=db, password=password,
                             socket_timeout=socket_timeout)


class SessionStore(object):
    """
    Stores customer sessions in Redis.

    This class is a thin container for the Redis client and the session TTL.
    The client is created once for the application (see :meth:`init_app`) and
    passed in; nothing here is mutated after construction.
    """

    def __init__(self, client: Redis, ttl: int) -> None:
        """Attach the Redis client and the resolved session TTL."""
        self.r = client
        self.ttl = ttl

    @classmethod
    def init_app(cls, app: Flask, client: Optional[Redis] = None,
                 config: Optional[CredentialConfig] = None) -> 'SessionStore':
        """
        Attach a session store to ``app``.

        Runs once per application, even if called concurrently; later calls
        return the store that is already attached. If ``client`` is not given,
        one is created from the application config, and its connection pool
        is closed when the process exits.
        """
        with _init_lock:
            if EXTENSION_KEY in app.extensions:
                return app.extensions[EXTENSION_KEY]
            if config is None:
                config = CredentialConfig.from_config(app.config)
            if client is None:
                client = connect(app.config)
                store = cls(client, config.session_ttl)
                atexit.register(store.close)
            else:
                store = cls(client, config.session_ttl)
            app.extensions[EXTENSION_KEY] = store
            app.extensions[IntrospectionCache.EXTENSION_KEY] = \
                IntrospectionCache(client, config.introspection_cache_ttl)
            logger.info('Session store ready; session TTL is %i seconds',
                        store.ttl)
        return store

    @classmethod
    def current_session(cls) -> 'SessionStore':
        """Get the session store attached to the current application."""
        try:
            return current_app.extensions[EXTENSION_KEY]
        except KeyError as e:
            raise StoreNotInitialized('Session store is not initialized') \
                from e

    def store(self, token: str, record: SessionRecord) -> None:
        """
        Store the session for ``token``, replacing any existing one.

        Parameters
        ----------
        token : str
            The customer's access token.
        record : :class:`SessionRecord`

        Raises
        ------
        :class:`TransportError`
            Raised if Redis could not be reached.
        """
        payload = json.dumps(record.to_dict())
        try:
            self.r.set(session_key(token), payload, ex=self.ttl)
        except redis.exceptions.RedisError as e:
            raise TransportError(f'Failed to store session: {e}') from e

    def fetch(self, token: str) -> Optional[SessionRecord]:
        """
        Load the session for ``token``.

        Returns ``None`` if there is no session, including if it has expired.

        Raises
        ------
        :class:`MalformedPayload`
            Raised if the stored session could not be decoded.
        :class:`TransportError`
            Raised if Redis could not be reached.
        """
        try:
            raw = self.r.get(session_key(token))
        except redis.exceptions.RedisError as e:
            raise TransportError(f'Failed to fetch session: {e}') from e
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise MalformedPayload('Invalid or corrupted session') from e
        return SessionRecord.from_dict(data)

    def delete(self, token: str) -> None:
        """
        Delete the session for ``token``.

        Deleting a session that does not exist is not an error.
        """
        try:
            self.r.delete(session_key(token))
        except redis.exceptions.RedisError as e:
            raise TransportError(f'Failed to delete session: {e}') from e

    def ping(self) -> bool:
        """Check that Redis can be reached."""
        try:
            return bool(self.r.ping())
        except redis.exceptions.RedisError as e:
            logger.error('Redis is not available: %s', e)
            return False

    def close(self) -> None:
        """Release the connections held by the Redis client."""
        try:
            self.r.close()
        except redis.exceptions.RedisError as e:
            logger.warning('Error while closing Redis connections: %s', e)


class IntrospectionCache(object):
    """
    Short-lived cache of active introspection results.

    With a TTL of zero (the default) nothing is cached, and every request is
    introspected. Only active results are cached. Cache failures are logged
    and treated as a miss, so the authorization server is asked instead.
    """

    EXTENSION_KEY = 'gatekeeper.introspection_cache'

    def __init__(self, client: Redis, ttl: int = 0) -> None:
        self.r = client
        self.ttl = ttl

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def get(self, token: str) -> Optional[TokenInfo]:
        """Get a cached result for ``token``, if there is one."""
        if not self.enabled:
            return None
        try:
            raw = self.r.get(introspection_key(token))
            if raw is None:
                return None
            info = TokenInfo.from_dict(json.loads(raw))
        except (redis.exceptions.RedisError, ValueError,
                MalformedPayload) as e:
            logger.warning('Ignoring introspection cache: %s', e)
            return None
        return info if info.active else None

    def put(self, token: str, info: TokenInfo) -> None:
        """Cache an introspection result for ``token``."""
        if not self.enabled or not info.active:
            return
        try:
            self.r.set(introspection_key(token), json.dumps(info.to_dict()),
                       ex=self.ttl)
        except redis.exceptions.RedisError as e:
            logger.warning('Could not cache introspection result: %s', e)


def current_session() -> SessionStore:
    """Get the :class:`SessionStore` for this application."""
    return SessionStore.current_session()


def current_introspection_cache() -> Optional[IntrospectionCache]:
    """Get the :class:`IntrospectionCache` for this application, if any."""
    cache: Optional[IntrospectionCache] = \
        current_app.extensions.get(IntrospectionCache.EXTENSION_KEY)
    return cache


@wraps(SessionStore.store)
def store(token: str, record: SessionRecord) -> None:
    """Store a session in the key-value store."""
    return current_session().store(token, record)


@wraps(SessionStore.fetch)
def fetch(token: str) -> Optional[SessionRecord]:
    """Load a session from the key-value store."""
    return current_session().fetch(token)


@wraps(SessionStore.delete)
def delete(token: str) -> None:
    """Delete a session in the key-value store."""
    return current_session().delete(token)
