"""Web Server Gateway Interface entry-point."""

import os

from members.factory import create_web_app

__flask_app__ = None


def application(environ, start_response):    # type: ignore
    """WSGI application."""
    global __flask_app__
    for key, value in environ.items():
        # Copy string WSGI environ to os.environ. This is to get apache
        # SetEnv vars. It needs to be done before the call to
        # create_web_app() due to config being read at module load.
        if key == 'SERVER_NAME':
            continue
        if isinstance(value, str):
            os.environ[key] = value

    if __flask_app__ is None:
        __flask_app__ = create_web_app()
    return __flask_app__(environ, start_response)
