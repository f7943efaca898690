"""Helpers for testing the gatekeeper."""

from unittest import mock


def make_redis() -> mock.MagicMock:
    """A stand-in for a Redis client that keeps values in a dict."""
    data = {}
    expiry = {}

    def _set(key, value, ex=None):
        data[key] = value.encode('utf-8') if isinstance(value, str) else value
        expiry[key] = ex
        return True

    def _get(key):
        return data.get(key)

    def _delete(*keys):
        return sum(1 for key in keys if data.pop(key, None) is not None)

    client = mock.MagicMock()
    client.set.side_effect = _set
    client.get.side_effect = _get
    client.delete.side_effect = _delete
    client.ping.return_value = True
    client.data = data
    client.expiry = expiry
    return client
