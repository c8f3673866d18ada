"""
Auth code sample: certificate key read from a local PEM file, served over HTTP.

The private key is passphrase protected; it is decrypted and handed to MSAL as
PKCS8. If a Key Vault and CERT_NAME are configured, the thumbprint of the vault
copy of the certificate is fetched and logged, and used when CERT_THUMBPRINT
is not set.

Run:
    python app.py
"""

import dataclasses
import logging

from dotenv import load_dotenv
from flask import Flask

from auth.certificates import load_local_certificate
from auth.config import load_auth_settings, load_certificate_settings, load_server_settings
from auth.logging_config import configure_logging
from auth.web import create_app
from vault.keyvault import KeyVaultClient

DEFAULT_REDIRECT_URI = "http://localhost:3000/redirect"

logger = logging.getLogger(__name__)


def build_app() -> Flask:
    auth_settings = load_auth_settings(DEFAULT_REDIRECT_URI)
    cert_settings = load_certificate_settings()
    server_settings = load_server_settings(
        cookie_secure_default=auth_settings.redirect_uri.startswith("https://")
    )

    if cert_settings.vault_configured:
        vault = KeyVaultClient.from_settings(cert_settings)
        vault_thumbprint = vault.get_certificate_thumbprint(cert_settings.cert_name)  # type: ignore[arg-type]
        if not cert_settings.thumbprint:
            cert_settings = dataclasses.replace(cert_settings, thumbprint=vault_thumbprint)

    certificate = load_local_certificate(cert_settings)
    app = create_app(auth_settings, certificate, server_settings)
    app.config["PORT"] = auth_settings.port
    return app


def main() -> None:
    load_dotenv()
    configure_logging()
    app = build_app()
    port = app.config["PORT"]
    logger.info("Auth code sample app listening on port %s!", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
