# run.py
import os

from sippool import create_app

# Use the app factory to create the app instance
# It will load configuration based on FLASK_ENV (from .env) via config.py
app = create_app()

if __name__ == '__main__':
    # Flask's built-in server is for development only. Use Gunicorn in production.
    host = os.environ.get('FLASK_RUN_HOST', '127.0.0.1')
    port = int(os.environ.get('FLASK_RUN_PORT', 5000))

    # threaded=True: concurrent assign requests exercise the same paths as under Gunicorn
    app.run(host=host, port=port, threaded=True)
