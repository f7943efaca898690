"""
Request-time authentication and authorization for bearer-token APIs.

The gatekeeper is a Flask extension that protects API routes. On each request
to a protected route, the bearer token in the ``Authorization`` header is
checked against the OAuth2 authorization server's introspection endpoint
(RFC 7662). If the token is active and carries the required scope, the
identity of the customer that owns the token is loaded from the distributed
session store (Redis), where it was placed at login.

Both sources of truth must agree: an active token without a session, or a
session whose token the authorization server no longer considers active, is
rejected. Any failure along the way (network, cache, configuration) results in
a rejection; the gate fails closed.

Quick start
-----------

.. code-block:: python

   from flask import Flask, g, jsonify
   from gatekeeper.gate import Gate, authenticated
   from gatekeeper.services import AuthServerClient, SessionStore


   def create_web_app() -> Flask:
       app = Flask('someapp')
       app.config.from_object('gatekeeper.config')
       SessionStore.init_app(app)
       AuthServerClient.init_app(app)
       Gate(app)
       return app


   @blueprint.route('/orders', methods=['GET'])
   @authenticated
   def orders():
       return jsonify(customer_id=g.user.id)

See :mod:`gatekeeper.gate` for the request state machine, and
:mod:`gatekeeper.services` for the session store and the authorization server
client.
"""
