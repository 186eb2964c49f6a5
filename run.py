"""
Development entry point.

    python run.py                  # development config, http://127.0.0.1:5000
    FLASK_CONFIG=production ...    # any key of watchwise.config.config

In production serve ``watchwise:create_app('production')`` from a WSGI
server instead; ``flask --app run db upgrade`` runs Flask-Migrate.
"""
import os

from watchwise import create_app

app = create_app(os.environ.get("FLASK_CONFIG", "default"))

if __name__ == "__main__":
    app.run(
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "5000")),
        debug=app.config.get("DEBUG", False),
    )
