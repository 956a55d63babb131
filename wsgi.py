"""
WSGI entry point.

    gunicorn -w 4 -b 0.0.0.0:8000 wsgi:app

APP_CONFIG selects the config class (default: config.Config).
"""
import os

from storefront import create_app

app = create_app(os.getenv('APP_CONFIG', 'config.Config'))

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', '8000')))
