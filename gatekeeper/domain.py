"""Core concepts of the gatekeeper."""

from typing import Any, Mapping, NamedTuple, Optional, Set
import logging

from .exceptions import MalformedPayload

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = 3600
"""Sessions expire after an hour unless configured otherwise."""


def resolve_ttl(raw: Any, default: int = DEFAULT_SESSION_TTL) -> int:
    """
    Interpret a configured TTL in seconds.

    Anything that is not a positive integer falls back to ``default``.
    """
    if raw is None or raw == '':
        return default
    try:
        seconds = int(raw)
    except (TypeError, ValueError):
        logger.warning('Ignoring invalid TTL %r; using %i', raw, default)
        return default
    if seconds <= 0:
        logger.warning('Ignoring non-positive TTL %r; using %i', raw, default)
        return default
    return seconds


def _optional_seconds(raw: Any) -> Optional[float]:
    if raw is None or raw == '':
        return None
    try:
        seconds = float(raw)
    except (TypeError, ValueError):
        logger.warning('Ignoring invalid timeout %r', raw)
        return None
    return seconds if seconds > 0 else None


def _non_negative(raw: Any) -> int:
    try:
        seconds = int(raw)
    except (TypeError, ValueError):
        return 0
    return max(seconds, 0)


class CredentialConfig(NamedTuple):
    """
    Snapshot of the settings needed to talk to the authorization server.

    Built once, when the application is created, and never changed
    afterwards.
    """

    introspection_url: Optional[str] = None
    token_url: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    required_scope: str = ''
    token_scope: Optional[str] = None
    session_ttl: int = DEFAULT_SESSION_TTL
    timeout: Optional[float] = None
    """Seconds to wait for the authorization server. ``None`` waits."""

    introspection_cache_ttl: int = 0
    """Seconds an active introspection result may be reused. 0 disables."""

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'CredentialConfig':
        """Build a snapshot from a Flask-style config mapping."""
        return cls(
            introspection_url=config.get('OAUTH2_INTROSPECTION_URL') or None,
            token_url=config.get('OAUTH2_TOKEN_URL') or None,
            client_id=config.get('OAUTH2_CLIENT_ID') or None,
            client_secret=config.get('OAUTH2_CLIENT_SECRET') or None,
            required_scope=config.get('REQUIRED_SCOPE') or '',
            token_scope=config.get('OAUTH2_TOKEN_SCOPE') or None,
            session_ttl=resolve_ttl(config.get('SESSION_TTL_SECONDS')),
            timeout=_optional_seconds(config.get('OAUTH2_TIMEOUT')),
            introspection_cache_ttl=_non_negative(
                config.get('INTROSPECTION_CACHE_SECONDS', 0)
            )
        )


class TokenInfo(NamedTuple):
    """Result of introspecting a token (RFC 7662)."""

    active: bool = False
    scope: str = ''
    """Space-delimited scopes granted to the token."""

    @property
    def scopes(self) -> Set[str]:
        """Granted scopes as a set."""
        return set(self.scope.split(' '))

    @classmethod
    def from_dict(cls, data: Any) -> 'TokenInfo':
        """Instantiate from an introspection response body."""
        if not isinstance(data, dict):
            raise MalformedPayload('Introspection response is not an object')
        scope = data.get('scope') or ''
        if not isinstance(scope, str):
            raise MalformedPayload('Introspection scope is not a string')
        return cls(active=data.get('active') is True, scope=scope)

    def to_dict(self) -> dict:
        """Generate a dict representation of this token info."""
        return {'active': self.active, 'scope': self.scope}


class SessionRecord(NamedTuple):
    """Identity stored for an authenticated customer, keyed by token."""

    customer_id: int
    phone: str
    name: str

    def to_dict(self) -> dict:
        """Generate the stored representation of this session."""
        return self._asdict()

    @classmethod
    def from_dict(cls, data: Any) -> 'SessionRecord':
        """
        Instantiate from the stored representation.

        Raises
        ------
        :class:`MalformedPayload`
            If a field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise MalformedPayload('Session payload is not an object')
        try:
            customer_id = data['customer_id']
            phone = data['phone']
            name = data['name']
        except KeyError as e:
            raise MalformedPayload(f'Session payload missing {e}') from e
        # bool is an int, but not a customer ID.
        if type(customer_id) is not int or customer_id < 0:
            raise MalformedPayload('customer_id must be an unsigned integer')
        if not isinstance(phone, str) or not isinstance(name, str):
            raise MalformedPayload('phone and name must be strings')
        return cls(customer_id=customer_id, phone=phone, name=name)


class Customer(NamedTuple):
    """The authenticated customer, as seen by request handlers."""

    id: int
    name: str
    phone: str

    @classmethod
    def from_session(cls, record: SessionRecord) -> 'Customer':
        """Build the identity for a session."""
        return cls(id=record.customer_id, name=record.name,
                   phone=record.phone)

    def to_json(self) -> dict:
        """Render the public representation of the customer."""
        return {'ID': self.id, 'name': self.name, 'phone': self.phone}
