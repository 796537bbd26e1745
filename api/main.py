"""
Process entry point: `uvicorn api.main:app`.

The repository and search index are opened here, from DATABASE_URL and
WHOOSH_DIR, and closed when the server shuts down.
"""

from api.app import create_app

app = create_app()
