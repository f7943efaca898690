"""Exceptions raised by the gatekeeper and its services."""

from werkzeug.exceptions import HTTPException, Unauthorized, Forbidden, \
    InternalServerError


class ConfigurationError(RuntimeError):
    """A required service parameter is missing."""


class StoreNotInitialized(ConfigurationError):
    """The session store was used before it was attached to the app."""


class TransportError(IOError):
    """Could not reach the authorization server or the session store."""


class ProtocolError(RuntimeError):
    """The authorization server responded in an unexpected way."""


class MalformedPayload(ProtocolError):
    """A payload could not be decoded."""


class AuthorizationDenied(Exception):
    """
    The request is not allowed through the gate.

    Each subclass carries the public ``reason`` and the HTTP exception used to
    render it. The message passed to the constructor is for the logs only.
    """

    reason = 'Unauthorized'
    http_exception = Unauthorized

    def to_http(self) -> HTTPException:
        """Generate the werkzeug exception that renders this denial."""
        return self.http_exception(self.reason)

    @property
    def status_code(self) -> int:
        """HTTP status code of the rejection."""
        return self.http_exception.code


class MissingToken(AuthorizationDenied):
    """No bearer token on the request."""


class InvalidToken(AuthorizationDenied):
    """The authorization server did not confirm the token as active."""

    reason = 'Invalid token'


class InsufficientScope(AuthorizationDenied):
    """The token does not carry the required scope."""

    reason = 'Insufficient scope'
    http_exception = Forbidden


class SessionExpired(AuthorizationDenied):
    """The token is active, but there is no session for it."""

    reason = 'Session expired'


class SessionLookupFailed(AuthorizationDenied):
    """The session store could not be consulted."""

    reason = 'Internal server error'
    http_exception = InternalServerError
