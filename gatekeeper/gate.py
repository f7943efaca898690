"""
Bearer-token authentication and scope-based authorization of requests.

This module provides :class:`Gate`, a Flask extension, and the
:func:`authenticated` and :func:`scoped` decorators used to protect routes.

When a protected route is called...

- The ``Authorization`` header must be of the form ``Bearer <token>``. If it
  is not, the request is rejected with 401 ``Unauthorized``.
- The token is introspected by the authorization server. If that fails for
  any reason, or the token is not active, the request is rejected with 401
  ``Invalid token``. An outage of the authorization server therefore denies
  all traffic.
- The scopes granted to the token must include the required scope (if one is
  configured). If not, the request is rejected with 403
  ``Insufficient scope``.
- The session for the token is loaded from the session store. If the store
  can't be consulted, the request is rejected with 500
  ``Internal server error``; if there is no session, with 401
  ``Session expired``.
- Finally, the customer identity is attached to the request context as
  ``flask.g.user`` (a :class:`.domain.Customer`), and the raw token as
  ``flask.g.token``, and the route is called.

Rejections are rendered as JSON, ``{"error": "<reason>"}``. The underlying
cause is logged, never returned to the client.
"""

from functools import wraps
from typing import Any, Callable, Optional, Tuple
import logging

from flask import Flask, Response, current_app, g, has_app_context, \
    jsonify, request
from werkzeug.exceptions import Forbidden, HTTPException, \
    InternalServerError, Unauthorized

from .domain import CredentialConfig, Customer, TokenInfo
from .exceptions import ConfigurationError, InsufficientScope, \
    InvalidToken, MissingToken, SessionExpired, SessionLookupFailed, \
    AuthorizationDenied
from .services import authserver, session_store
from .services.session_store import IntrospectionCache, SessionStore

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'gatekeeper.gate'
SCOPE_KEY = 'gatekeeper.required_scope'
BEARER = 'Bearer '

Introspector = Callable[[str], Optional[TokenInfo]]


def jsonify_exception(error: HTTPException) -> Response:
    """Render an HTTP exception as ``{"error": <description>}``."""
    exc_resp = error.get_response()
    response = jsonify(error=error.description)
    response.status_code = exc_resp.status_code
    return response


def has_scope(granted: str, required: str) -> bool:
    """
    Check whether ``required`` is among the ``granted`` scopes.

    ``granted`` is split on single spaces. An empty ``required`` scope is
    always satisfied.
    """
    if not required:
        return True
    return required in granted.split(' ')


def extract_token(authorization: Optional[str]) -> str:
    """Get the bearer token from the value of an ``Authorization`` header."""
    if not authorization or not authorization.startswith(BEARER):
        raise MissingToken('No bearer token in Authorization header')
    token = authorization[len(BEARER):]
    if not token:
        raise MissingToken('Empty bearer token')
    return token


class Gate(object):
    """
    Authenticates requests and attaches the customer identity.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       app = Flask('someapp')
       app.config.from_object('gatekeeper.config')
       SessionStore.init_app(app)
       AuthServerClient.init_app(app)
       Gate(app)

    The required scope is taken from the ``REQUIRED_SCOPE`` config parameter,
    and introspection is performed by the application's
    :class:`.AuthServerClient`. Both can be replaced by passing
    ``required_scope`` and ``introspect`` to the constructor, as can the
    session ``store`` and the ``introspection_cache``.
    """

    def __init__(self, app: Optional[Flask] = None,
                 introspect: Optional[Introspector] = None,
                 required_scope: Optional[str] = None,
                 store: Optional[SessionStore] = None,
                 introspection_cache: Optional[IntrospectionCache] = None) \
            -> None:
        self._introspect = introspect
        self._store = store
        self._introspection_cache = introspection_cache
        self.required_scope = required_scope
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask,
                 config: Optional[CredentialConfig] = None) -> None:
        """
        Attach the gate to ``app``.

        The required scope configured for ``app`` is kept with the app, so
        that one gate may serve several applications. Also registers JSON
        error handlers for the rejections that the gate produces.
        """
        if config is None:
            config = CredentialConfig.from_config(app.config)
        app.extensions[SCOPE_KEY] = config.required_scope
        app.extensions[EXTENSION_KEY] = self
        for exc in (Unauthorized, Forbidden, InternalServerError):
            app.register_error_handler(exc, jsonify_exception)

    @property
    def store(self) -> SessionStore:
        if self._store is not None:
            return self._store
        return session_store.current_session()

    def configured_scope(self) -> str:
        """Scope required when a route does not ask for one."""
        if self.required_scope is not None:
            return self.required_scope
        if has_app_context():
            return current_app.extensions.get(SCOPE_KEY, '')
        return ''

    def introspect(self, token: str) -> Optional[TokenInfo]:
        """Introspect ``token``, using cached results if enabled."""
        cache = self._introspection_cache
        if cache is None and has_app_context():
            cache = session_store.current_introspection_cache()
        if cache is not None:
            info = cache.get(token)
            if info is not None:
                logger.debug('Using cached introspection result')
                return info

        if self._introspect is not None:
            info = self._introspect(token)
        else:
            info = authserver.introspect(token)

        if cache is not None and info is not None:
            cache.put(token, info)
        return info

    def authorize(self, authorization: Optional[str],
                  required_scope: Optional[str] = None) \
            -> Tuple[Customer, str]:
        """
        Authenticate and authorize a request.

        Parameters
        ----------
        authorization : str
            Value of the ``Authorization`` header, if any.
        required_scope : str
            Overrides the configured required scope, if provided.

        Returns
        -------
        tuple
            The :class:`.Customer` and the raw bearer token.

        Raises
        ------
        :class:`.AuthorizationDenied`
            One of its subclasses, depending on where the request failed.

        """
        token = extract_token(authorization)

        try:
            info = self.introspect(token)
        except Exception as e:
            logger.error('Token introspection failed: %s', e)
            raise InvalidToken(f'Introspection failed: {e}') from e
        if info is None or not info.active:
            logger.info('Token is not active')
            raise InvalidToken('Token is not active')

        if required_scope is None:
            required_scope = self.configured_scope()
        if not has_scope(info.scope, required_scope):
            logger.info('Token missing required scope %s', required_scope)
            raise InsufficientScope(f'Missing scope {required_scope}')

        try:
            record = self.store.fetch(token)
        except Exception as e:
            logger.error('Failed to fetch session: %s', e)
            raise SessionLookupFailed(f'Session lookup failed: {e}') from e
        if record is None:
            logger.info('No session for active token')
            raise SessionExpired('No session for token')

        return Customer.from_session(record), token


def current_gate() -> Gate:
    """Get the :class:`Gate` attached to the current application."""
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError as e:
        raise ConfigurationError('Gate is not initialized') from e


def scoped(required: Optional[str] = None) -> Callable:
    """
    Generate a decorator that protects a route.

    Parameters
    ----------
    required : str
        Scope required for the decorated route. If not provided, the
        application's ``REQUIRED_SCOPE`` is enforced.

    Returns
    -------
    function
        A decorator that runs the gate before calling the route.

    """
    def protector(func: Callable) -> Callable:
        """Decorator that runs the gate."""
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            gate = current_gate()
            try:
                g.user, g.token = gate.authorize(
                    request.headers.get('Authorization'),
                    required_scope=required
                )
            except AuthorizationDenied as e:
                raise e.to_http() from e
            return func(*args, **kwargs)
        return wrapper
    return protector


authenticated = scoped()
"""Protects a route, enforcing the application's required scope."""
