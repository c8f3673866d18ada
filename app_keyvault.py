"""
Auth code sample: certificate fetched from Azure Key Vault.

Meant for Azure App Service with a Managed Identity that can read the vault's
certificates and secrets. The thumbprint comes from the Key Vault certificate,
the private key from the secret of the same name (a base64 PKCS12 blob).
REDIRECT_URI must be set; there is no localhost fallback for this variant.

Run locally:
    python app_keyvault.py
On App Service:
    gunicorn --bind=0.0.0.0 'app_keyvault:create_app()'
"""

import logging

from dotenv import load_dotenv
from flask import Flask

from auth.config import load_auth_settings, load_certificate_settings, load_server_settings
from auth.errors import ConfigurationError
from auth.logging_config import configure_logging
from auth.web import create_app as create_flask_app
from vault.keyvault import KeyVaultClient

logger = logging.getLogger(__name__)


def build_app(vault: KeyVaultClient | None = None) -> Flask:
    auth_settings = load_auth_settings()
    cert_settings = load_certificate_settings()
    server_settings = load_server_settings(
        cookie_secure_default=auth_settings.redirect_uri.startswith("https://")
    )

    if not cert_settings.cert_name:
        raise ConfigurationError("Missing CERT_NAME (name of the Key Vault certificate).")

    vault = vault or KeyVaultClient.from_settings(cert_settings)
    certificate = vault.load_client_certificate(cert_settings.cert_name)
    logger.info("Loaded client certificate '%s' from %s", cert_settings.cert_name, vault.vault_url)

    # App Service terminates TLS in front of the app.
    app = create_flask_app(auth_settings, certificate, server_settings, proxied=True)
    app.config["PORT"] = auth_settings.port
    return app


def create_app() -> Flask:
    """WSGI factory: environment and logging set up, then the app built."""
    load_dotenv()
    configure_logging()
    return build_app()


def main() -> None:
    app = create_app()
    port = app.config["PORT"]
    logger.info("Auth code sample app listening on port %s!", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
