# CORS configuration
import logging

from flask import request
from flask_cors import CORS

logger = logging.getLogger(__name__)


def configure_cors(app, origins):
    # Admin refresh endpoints only accept POST (+ preflight)
    CORS(app, resources={
        r"/api/*": {
            "origins": list(origins),
            "methods": ["POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
            "max_age": 86400,
        }
    }, supports_credentials=True)

    @app.after_request
    def log_preflight(response):
        if request.method == "OPTIONS":
            logger.debug(
                f"CORS preflight - Origin: {request.headers.get('Origin')} "
                f"Headers: {request.headers.get('Access-Control-Request-Headers')} "
                f"Response: {response.status_code}"
            )
        return response

    return app
