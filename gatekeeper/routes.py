"""Provides the API routes of the gatekeeper service."""

from flask import Blueprint, Response, g, jsonify
from werkzeug.exceptions import InternalServerError
import logging

from .exceptions import TransportError
from .gate import authenticated
from .services import session_store

logger = logging.getLogger(__name__)

blueprint = Blueprint('gatekeeper', __name__, url_prefix='/api/v1')


@blueprint.route('/status', methods=['GET'])
def status() -> Response:
    """Report whether the session store is reachable."""
    if session_store.current_session().ping():
        return jsonify({'Redis': 'OK'})
    response = jsonify({'Redis': 'Unavailable'})
    response.status_code = 503
    return response


@blueprint.route('/me', methods=['GET'])
@authenticated
def me() -> Response:
    """Get the authenticated customer."""
    return jsonify(g.user.to_json())


@blueprint.route('/logout', methods=['POST'])
@authenticated
def logout() -> Response:
    """End the session for the current token."""
    try:
        session_store.delete(g.token)
    except TransportError as e:
        logger.error('Failed to delete session: %s', e)
        raise InternalServerError('Internal server error') from e
    logger.debug('Session deleted for customer %s', g.user.id)
    return Response(status=204)
