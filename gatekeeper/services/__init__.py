"""Services used by the gatekeeper: the session store and the auth server."""

from .session_store import SessionStore, IntrospectionCache
from .authserver import AuthServerClient
