# app.py
"""
WSGI entry point.

    gunicorn -c gunicorn_config.py app:app
"""

import os

from efest import create_app


def create_application():
    """Create the application for the environment named by FLASK_ENV."""
    config_name = os.environ.get('FLASK_ENV', 'development')
    return create_app(config_name)


app = create_application()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False))
