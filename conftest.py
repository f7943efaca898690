import pytest

from gatekeeper.factory import create_app
from gatekeeper.tests.util import make_redis


@pytest.fixture()
def redis_client():
    return make_redis()


@pytest.fixture()
def app(redis_client):
    app = create_app(
        redis_client=redis_client,
        REQUIRED_SCOPE='api',
        OAUTH2_INTROSPECTION_URL='https://auth.example.com/admin/introspect',
        OAUTH2_TOKEN_URL='https://auth.example.com/oauth2/token',
        OAUTH2_CLIENT_ID='orders',
        OAUTH2_CLIENT_SECRET='foosecret',
        SESSION_TTL_SECONDS='120',
    )
    app.config['TESTING'] = True
    return app


@pytest.fixture()
def client(app):
    return app.test_client()
