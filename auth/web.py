"""
Flask application factory shared by the three entry points.

The app is deliberately minimal: server-side sessions (filesystem) via
Flask-Session to hold the OAuth2 `state`, the auth blueprint, and the MSAL
confidential client stored in `app.extensions["msal"]`.
"""

from __future__ import annotations

import os
import ssl

from flask import Flask
from flask_session import Session
from werkzeug.middleware.proxy_fix import ProxyFix

from .certificates import ClientCertificate
from .config import AuthSettings, ServerSettings
from .errors import ConfigurationError
from .msal_auth import build_msal_app
from .routes import auth_bp


def create_app(
    auth_settings: AuthSettings,
    certificate: ClientCertificate,
    server_settings: ServerSettings,
    proxied: bool = False,
) -> Flask:
    """
    Build the Flask app.

    Set `proxied` when running behind a reverse proxy (Azure App Service) so
    url_for(..., _external=True) generates correct https URLs.
    """

    app = Flask(__name__)
    if proxied:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[assignment]

    app.secret_key = server_settings.secret_key
    app.config.update(
        SESSION_TYPE="filesystem",
        SESSION_PERMANENT=False,
        SESSION_USE_SIGNER=True,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        SESSION_COOKIE_SECURE=server_settings.cookie_secure,
    )
    os.makedirs(server_settings.session_dir, exist_ok=True)
    app.config["SESSION_FILE_DIR"] = server_settings.session_dir
    Session(app)

    app.config["AUTH_SETTINGS"] = auth_settings
    app.extensions["msal"] = build_msal_app(auth_settings, certificate)
    app.register_blueprint(auth_bp)
    return app


def ssl_context_from_settings(settings: ServerSettings) -> ssl.SSLContext:
    """TLS server context from HTTPS_CERT_PATH / HTTPS_KEY_PATH (key may be passphrase-protected)."""

    missing = [
        k
        for k, v in [("HTTPS_CERT_PATH", settings.https_cert_path), ("HTTPS_KEY_PATH", settings.https_key_path)]
        if not v
    ]
    if missing:
        raise ConfigurationError("Missing required environment variables: " + ", ".join(missing) + ".")

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(
        certfile=settings.https_cert_path,  # type: ignore[arg-type]
        keyfile=settings.https_key_path,
        password=settings.https_key_passphrase,
    )
    return context
