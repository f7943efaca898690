"""
Client for the OAuth2 authorization server.

Two calls are supported:

- the client credentials grant (RFC 6749 §4.4), used when this service needs
  an access token of its own to call another protected service; and
- token introspection (RFC 7662), used to check bearer tokens presented to
  this service.

Neither call is retried, and nothing is cached here. Callers that need
resilience should wrap these calls themselves.
"""

from functools import wraps
from typing import Optional
import logging

from flask import Flask, current_app
import requests
from requests.auth import HTTPBasicAuth

from ..domain import CredentialConfig, TokenInfo
from ..exceptions import ConfigurationError, MalformedPayload, \
    ProtocolError, TransportError

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'gatekeeper.authserver'


class AuthServerClient(object):
    """Talks to the authorization server on behalf of this service."""

    def __init__(self, config: CredentialConfig,
                 session: Optional[requests.Session] = None) -> None:
        """
        Set up the client.

        Parameters
        ----------
        config : :class:`CredentialConfig`
            Endpoints and client credentials.
        session : :class:`requests.Session`
            Optional; a new session is created if not provided.
        """
        self.config = config
        self._session = session if session is not None else requests.Session()

    @classmethod
    def init_app(cls, app: Flask,
                 config: Optional[CredentialConfig] = None) \
            -> 'AuthServerClient':
        """Attach a client to ``app``, built from the application config."""
        if config is None:
            config = CredentialConfig.from_config(app.config)
        client = cls(config)
        app.extensions[EXTENSION_KEY] = client
        return client

    @classmethod
    def current_client(cls) -> 'AuthServerClient':
        """Get the client attached to the current application."""
        try:
            return current_app.extensions[EXTENSION_KEY]
        except KeyError as e:
            raise ConfigurationError('Authorization server client is not '
                                     'initialized') from e

    def _auth(self) -> HTTPBasicAuth:
        return HTTPBasicAuth(self.config.client_id or '',
                             self.config.client_secret or '')

    def _post(self, url: str, data: dict, **kwargs) -> requests.Response:
        try:
            return self._session.post(url, data=data, auth=self._auth(),
                                      timeout=self.config.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError(f'Request to {url} failed: {e}') from e

    def acquire_service_token(self) -> str:
        """
        Get an access token for this service (client credentials grant).

        Returns
        -------
        str
            The access token.

        Raises
        ------
        :class:`ConfigurationError`
            The token endpoint or the client credentials are not configured.
        :class:`TransportError`
            The authorization server could not be reached.
        :class:`ProtocolError`
            The server did not respond with 200, or did not issue a token.

        """
        if not self.config.token_url or not self.config.client_id \
                or not self.config.client_secret:
            raise ConfigurationError('Client credentials are not configured')

        data = {'grant_type': 'client_credentials'}
        if self.config.token_scope:
            data['scope'] = self.config.token_scope

        response = self._post(self.config.token_url, data)
        if response.status_code != 200:
            logger.error('Token endpoint returned status %i',
                         response.status_code)
            raise ProtocolError('Token creation failed')

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedPayload('Could not decode token response') from e

        access_token = body.get('access_token') if isinstance(body, dict) \
            else None
        if not access_token or not isinstance(access_token, str):
            raise ProtocolError('Received empty access token')
        return access_token

    def introspect(self, token: str) -> TokenInfo:
        """
        Ask the authorization server about a bearer token.

        Parameters
        ----------
        token : str
            The token presented by the client.

        Returns
        -------
        :class:`TokenInfo`

        Raises
        ------
        :class:`ConfigurationError`
            The introspection endpoint is not configured.
        :class:`TransportError`
            The authorization server could not be reached.
        :class:`ProtocolError`
            The server did not respond with 200.
        :class:`MalformedPayload`
            The response body could not be decoded.

        """
        if not self.config.introspection_url:
            raise ConfigurationError('Introspection URL is not configured')

        response = self._post(self.config.introspection_url,
                              {'token': token},
                              headers={'Accept': 'application/json'})
        if response.status_code != 200:
            raise ProtocolError('Introspection failed with status code '
                                f'{response.status_code}')
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedPayload('Could not decode introspection '
                                   'response') from e
        return TokenInfo.from_dict(body)


def current_client() -> AuthServerClient:
    """Get the :class:`AuthServerClient` for this application."""
    return AuthServerClient.current_client()


@wraps(AuthServerClient.acquire_service_token)
def acquire_service_token() -> str:
    """Get an access token for this service."""
    return current_client().acquire_service_token()


@wraps(AuthServerClient.introspect)
def introspect(token: str) -> TokenInfo:
    """Introspect a bearer token."""
    return current_client().introspect(token)
