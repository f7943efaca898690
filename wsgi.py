"""Web Server Gateway Interface entry-point."""

import threading

from gatekeeper.factory import create_app

__flask_app__ = None
__app_lock__ = threading.Lock()


def application(environ, start_response):
    """WSGI application factory."""
    global __flask_app__
    if __flask_app__ is None:
        with __app_lock__:
            if __flask_app__ is None:
                __flask_app__ = create_app()
    return __flask_app__(environ, start_response)
