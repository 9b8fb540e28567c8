"""WSGI entrypoint for the ARMi account API."""

from __future__ import annotations

from app import create_app
from config import DEBUG, PORT

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=PORT, debug=DEBUG)  # nosec B104
