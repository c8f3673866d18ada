"""
Configuration for the sample apps.

All settings are sourced from environment variables (a local `.env` file is
loaded by the entry points via python-dotenv). This module validates presence
of required settings and exposes one loader per settings group.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .errors import ConfigurationError

DEFAULT_SCOPES = ["user.read"]
DEFAULT_PORT = 3000


def _env(name: str, default: str | None = None) -> str | None:
    val = os.environ.get(name)
    if val is None:
        return default
    val = val.strip()
    return val or default


def _require(pairs: list[tuple[str, str | None]]) -> None:
    missing = [k for k, v in pairs if not v]
    if missing:
        raise ConfigurationError(
            "Missing required environment variables: "
            + ", ".join(missing)
            + ". Set them in your environment (or a .env file) before starting the app."
        )


@dataclass(frozen=True)
class AuthSettings:
    """Configuration needed for the MSAL confidential client."""

    client_id: str
    authority: str
    redirect_uri: str
    scopes: list[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    port: int = DEFAULT_PORT

    @property
    def logout_url(self) -> str:
        return f"{self.authority.rstrip('/')}/oauth2/v2.0/logout"


@dataclass(frozen=True)
class CertificateSettings:
    """Where the client certificate comes from."""

    key_path: str | None = None
    key_passphrase: str | None = None
    thumbprint: str | None = None
    public_cert_path: str | None = None
    key_vault_url: str | None = None
    cert_name: str | None = None

    @property
    def vault_configured(self) -> bool:
        return bool(self.key_vault_url and self.cert_name)


@dataclass(frozen=True)
class ServerSettings:
    """Web server and session settings."""

    secret_key: str
    session_dir: str
    cookie_secure: bool = True
    https_cert_path: str | None = None
    https_key_path: str | None = None
    https_key_passphrase: str | None = None


def _parse_port(raw: str | None) -> int:
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        raise ConfigurationError(f"PORT must be an integer, got {raw!r}.") from None
    if not 0 < port < 65536:
        raise ConfigurationError(f"PORT out of range: {port}.")
    return port


def load_auth_settings(default_redirect_uri: str | None = None) -> AuthSettings:
    """
    Load MSAL settings from environment variables.

    Required:
      - CLIENT_ID
      - AUTHORITY, or TENANT_ID (authority is then built for the public cloud)
      - REDIRECT_URI, when no `default_redirect_uri` is given

    Optional:
      - REDIRECT_URI (default: `default_redirect_uri`)
      - SCOPE (space separated, default: 'user.read')
      - PORT (default: 3000)
    """

    client_id = _env("CLIENT_ID")
    authority = _env("AUTHORITY")
    tenant_id = _env("TENANT_ID")
    if not authority and tenant_id:
        authority = f"https://login.microsoftonline.com/{tenant_id}"

    redirect_uri = _env("REDIRECT_URI", default_redirect_uri)

    _require(
        [
            ("CLIENT_ID", client_id),
            ("AUTHORITY (or TENANT_ID)", authority),
            ("REDIRECT_URI", redirect_uri),
        ]
    )

    scopes_raw = _env("SCOPE", "") or ""
    scopes = [s for s in scopes_raw.split() if s] or list(DEFAULT_SCOPES)

    return AuthSettings(
        client_id=client_id,  # type: ignore[arg-type]
        authority=authority,  # type: ignore[arg-type]
        redirect_uri=redirect_uri,  # type: ignore[arg-type]
        scopes=scopes,
        port=_parse_port(_env("PORT")),
    )


def load_certificate_settings() -> CertificateSettings:
    """
    Load client certificate settings.

    Nothing is required here; each entry point checks the subset it needs.
    KEY_VAULT_URL wins over KEY_VAULT_NAME.
    """

    vault_url = _env("KEY_VAULT_URL")
    vault_name = _env("KEY_VAULT_NAME")
    if not vault_url and vault_name:
        vault_url = f"https://{vault_name}.vault.azure.net"

    thumbprint = _env("CERT_THUMBPRINT")
    if thumbprint:
        thumbprint = thumbprint.replace(":", "").upper()

    return CertificateSettings(
        key_path=_env("CERT_KEY_PATH"),
        key_passphrase=_env("CERT_KEY_PASSPHRASE"),
        thumbprint=thumbprint,
        public_cert_path=_env("CERT_PUBLIC_CERT_PATH"),
        key_vault_url=vault_url,
        cert_name=_env("CERT_NAME"),
    )


def load_server_settings(cookie_secure_default: bool = True) -> ServerSettings:
    """
    Load web server settings.

    Required:
      - FLASK_SECRET_KEY (signs the session cookie)

    Optional:
      - FLASK_SESSION_DIR (default: ./.flask_session)
      - FLASK_COOKIE_SECURE (default: `cookie_secure_default`)
      - HTTPS_CERT_PATH, HTTPS_KEY_PATH, HTTPS_KEY_PASSPHRASE (HTTPS sample only)
    """

    secret_key = _env("FLASK_SECRET_KEY")
    _require([("FLASK_SECRET_KEY", secret_key)])

    session_dir = _env("FLASK_SESSION_DIR") or os.path.join(os.getcwd(), ".flask_session")

    return ServerSettings(
        secret_key=secret_key,  # type: ignore[arg-type]
        session_dir=session_dir,
        cookie_secure=(_env("FLASK_COOKIE_SECURE") or str(cookie_secure_default)).lower() == "true",
        https_cert_path=_env("HTTPS_CERT_PATH"),
        https_key_path=_env("HTTPS_KEY_PATH"),
        https_key_passphrase=_env("HTTPS_KEY_PASSPHRASE"),
    )
