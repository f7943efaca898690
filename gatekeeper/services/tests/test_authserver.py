"""Tests for :mod:`gatekeeper.services.authserver`."""

from unittest import TestCase, mock

import requests
from flask import Flask
from requests.auth import HTTPBasicAuth

from gatekeeper.domain import CredentialConfig, TokenInfo
from gatekeeper.exceptions import ConfigurationError, MalformedPayload, \
    ProtocolError, TransportError
from gatekeeper.services import authserver

CONFIG = CredentialConfig(
    introspection_url='https://auth.example.com/admin/introspect',
    token_url='https://auth.example.com/oauth2/token',
    client_id='orders',
    client_secret='foosecret',
    token_scope='products:read'
)


def mock_response(status_code=200, body=None):
    response = mock.MagicMock(status_code=status_code)
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


class TestAcquireServiceToken(TestCase):
    """Tests for :meth:`.AuthServerClient.acquire_service_token`."""

    def setUp(self):
        self.session = mock.MagicMock()
        self.client = authserver.AuthServerClient(CONFIG, self.session)

    def test_token_issued(self):
        """The server issues an access token."""
        self.session.post.return_value = mock_response(200, {
            'access_token': 'ory_at_foo',
            'token_type': 'bearer',
            'expires_in': 3599
        })
        self.assertEqual(self.client.acquire_service_token(), 'ory_at_foo')

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], CONFIG.token_url)
        self.assertDictEqual(kwargs['data'], {
            'grant_type': 'client_credentials',
            'scope': 'products:read'
        })
        self.assertEqual(kwargs['auth'].username, 'orders')
        self.assertEqual(kwargs['auth'].password, 'foosecret')
        self.assertIsNone(kwargs['timeout'])

    def test_no_scope(self):
        """The scope parameter is left out if not configured."""
        client = authserver.AuthServerClient(
            CONFIG._replace(token_scope=None), self.session
        )
        self.session.post.return_value = \
            mock_response(200, {'access_token': 'ory_at_foo'})
        client.acquire_service_token()
        _, kwargs = self.session.post.call_args
        self.assertDictEqual(kwargs['data'],
                             {'grant_type': 'client_credentials'})

    def test_not_configured(self):
        """The token URL and credentials are required."""
        for field in ('token_url', 'client_id', 'client_secret'):
            client = authserver.AuthServerClient(
                CONFIG._replace(**{field: None}), self.session
            )
            with self.assertRaises(ConfigurationError):
                client.acquire_service_token()
        self.session.post.assert_not_called()

    def test_connection_failed(self):
        """The authorization server can't be reached."""
        self.session.post.side_effect = requests.exceptions.ConnectionError
        with self.assertRaises(TransportError):
            self.client.acquire_service_token()

    def test_bad_status(self):
        """The server responds with something other than 200."""
        self.session.post.return_value = \
            mock_response(401, {'error': 'invalid_client'})
        with self.assertRaises(ProtocolError):
            self.client.acquire_service_token()

    def test_bad_body(self):
        """The response is not JSON."""
        self.session.post.return_value = mock_response(200, ValueError())
        with self.assertRaises(MalformedPayload):
            self.client.acquire_service_token()

    def test_empty_token(self):
        """The response does not include a token."""
        for body in ({}, {'access_token': ''}, {'access_token': None}, []):
            self.session.post.return_value = mock_response(200, body)
            with self.assertRaises(ProtocolError):
                self.client.acquire_service_token()

    def test_timeout(self):
        """A configured timeout is passed to the transport."""
        client = authserver.AuthServerClient(CONFIG._replace(timeout=2.0),
                                             self.session)
        self.session.post.return_value = \
            mock_response(200, {'access_token': 'ory_at_foo'})
        client.acquire_service_token()
        _, kwargs = self.session.post.call_args
        self.assertEqual(kwargs['timeout'], 2.0)


class TestIntrospect(TestCase):
    """Tests for :meth:`.AuthServerClient.introspect`."""

    def setUp(self):
        self.session = mock.MagicMock()
        self.client = authserver.AuthServerClient(CONFIG, self.session)

    def test_active(self):
        """The token is active."""
        self.session.post.return_value = mock_response(200, {
            'active': True,
            'scope': 'api offline',
            'client_id': 'web'
        })
        info = self.client.introspect('tok-1')
        self.assertEqual(info, TokenInfo(active=True, scope='api offline'))

        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], CONFIG.introspection_url)
        self.assertDictEqual(kwargs['data'], {'token': 'tok-1'})
        self.assertEqual(kwargs['headers'], {'Accept': 'application/json'})
        self.assertEqual(kwargs['auth'].username, 'orders')

    def test_inactive(self):
        """The token is not active."""
        self.session.post.return_value = \
            mock_response(200, {'active': False})
        self.assertFalse(self.client.introspect('tok-1').active)

    def test_not_configured(self):
        """The introspection URL is required."""
        client = authserver.AuthServerClient(
            CONFIG._replace(introspection_url=None), self.session
        )
        with self.assertRaises(ConfigurationError):
            client.introspect('tok-1')
        self.session.post.assert_not_called()

    def test_no_client_credentials(self):
        """Without client credentials, empty basic auth is still sent."""
        client = authserver.AuthServerClient(
            CONFIG._replace(client_id=None, client_secret=None), self.session
        )
        self.session.post.return_value = \
            mock_response(200, {'active': True, 'scope': 'api'})
        client.introspect('tok-1')
        _, kwargs = self.session.post.call_args
        self.assertEqual(kwargs['auth'], HTTPBasicAuth('', ''))

    def test_connection_failed(self):
        """The authorization server can't be reached."""
        self.session.post.side_effect = requests.exceptions.Timeout
        with self.assertRaises(TransportError):
            self.client.introspect('tok-1')

    def test_bad_status(self):
        """The server responds with something other than 200."""
        self.session.post.return_value = mock_response(500)
        with self.assertRaises(ProtocolError):
            self.client.introspect('tok-1')

    def test_bad_body(self):
        """The response can't be decoded."""
        self.session.post.return_value = mock_response(200, ValueError())
        with self.assertRaises(MalformedPayload):
            self.client.introspect('tok-1')


class TestModuleFunctions(TestCase):
    """Module-level functions use the client attached to the app."""

    def test_not_initialized(self):
        """No client has been attached to the app."""
        app = Flask('test')
        with app.app_context():
            with self.assertRaises(ConfigurationError):
                authserver.introspect('tok-1')

    @mock.patch(f'{authserver.__name__}.requests.Session')
    def test_introspect(self, mock_session_class):
        """The app's client is built from the config."""
        mock_session = mock.MagicMock()
        mock_session.post.return_value = \
            mock_response(200, {'active': True, 'scope': 'api'})
        mock_session_class.return_value = mock_session

        app = Flask('test')
        app.config['OAUTH2_INTROSPECTION_URL'] = CONFIG.introspection_url
        authserver.AuthServerClient.init_app(app)
        with app.app_context():
            info = authserver.introspect('tok-1')
        self.assertTrue(info.active)
        self.assertEqual(mock_session.post.call_args[0][0],
                         CONFIG.introspection_url)

    @mock.patch(f'{authserver.__name__}.requests.Session')
    def test_init_app_with_config(self, mock_session_class):
        """A config snapshot that is passed in is used as-is."""
        app = Flask('test')
        app.config['OAUTH2_INTROSPECTION_URL'] = 'https://elsewhere/introspect'
        client = authserver.AuthServerClient.init_app(app, config=CONFIG)
        self.assertIs(client.config, CONFIG)
