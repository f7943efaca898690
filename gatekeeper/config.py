"""Flask configuration for the gatekeeper."""

import os

REQUIRED_SCOPE = os.environ.get('REQUIRED_SCOPE', '')
"""Scope that every protected request must carry. Empty disables the check."""

OAUTH2_INTROSPECTION_URL = os.environ.get('OAUTH2_INTROSPECTION_URL')
"""Token introspection endpoint on the authorization server (admin API)."""

OAUTH2_TOKEN_URL = os.environ.get('OAUTH2_TOKEN_URL')
"""Token endpoint, used for the client credentials grant."""

OAUTH2_CLIENT_ID = os.environ.get('OAUTH2_CLIENT_ID')
OAUTH2_CLIENT_SECRET = os.environ.get('OAUTH2_CLIENT_SECRET')

OAUTH2_TOKEN_SCOPE = os.environ.get('OAUTH2_TOKEN_SCOPE')
"""Scope requested when this service obtains its own access token."""

OAUTH2_TIMEOUT = os.environ.get('OAUTH2_TIMEOUT')
"""
Timeout (seconds) for calls to the authorization server.

If not set, calls are not bounded and rely on the transport's behavior.
"""

INTROSPECTION_CACHE_SECONDS = os.environ.get('INTROSPECTION_CACHE_SECONDS',
                                             '0')
"""
How long an active introspection result may be reused.

Defaults to 0, i.e. every request is introspected so that revocation takes
effect immediately.
"""

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_PASSWORD = os.environ.get('REDIS_PASSWORD')
REDIS_CLUSTER = os.environ.get('REDIS_CLUSTER', '0')
REDIS_SOCKET_TIMEOUT = os.environ.get('REDIS_SOCKET_TIMEOUT')

SESSION_TTL_SECONDS = os.environ.get('SESSION_TTL_SECONDS', '3600')
"""Lifetime of a session in the store. Must be a positive integer."""

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
