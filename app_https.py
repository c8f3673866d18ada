"""
Auth code sample: certificate key read from a local PEM file, served over HTTPS.

Same as `app.py`, but the dev server terminates TLS itself using
HTTPS_CERT_PATH / HTTPS_KEY_PATH (the key may be protected with
HTTPS_KEY_PASSPHRASE), so the redirect URI can be https://localhost.

Run:
    python app_https.py
"""

import logging

from dotenv import load_dotenv
from flask import Flask

from auth.certificates import load_local_certificate
from auth.config import load_auth_settings, load_certificate_settings, load_server_settings
from auth.logging_config import configure_logging
from auth.web import create_app, ssl_context_from_settings

DEFAULT_REDIRECT_URI = "https://localhost:3000/redirect"

logger = logging.getLogger(__name__)


def build_app() -> Flask:
    auth_settings = load_auth_settings(DEFAULT_REDIRECT_URI)
    server_settings = load_server_settings()
    certificate = load_local_certificate(load_certificate_settings())

    app = create_app(auth_settings, certificate, server_settings)
    app.config["PORT"] = auth_settings.port
    app.config["SSL_CONTEXT"] = ssl_context_from_settings(server_settings)
    return app


def main() -> None:
    load_dotenv()
    configure_logging()
    app = build_app()
    port = app.config["PORT"]
    logger.info("Auth code sample app listening on port %s!", port)
    app.run(host="0.0.0.0", port=port, ssl_context=app.config["SSL_CONTEXT"])


if __name__ == "__main__":
    main()
