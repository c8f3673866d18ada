"""
Shared fixtures: throwaway keys and certificates, a fake MSAL client and a
configured Flask app. Nothing here touches the network.
"""

from __future__ import annotations

import datetime
import logging
from types import SimpleNamespace
from typing import Any
from urllib.parse import urlencode

import msal
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from auth.certificates import ClientCertificate, thumbprint_of
from auth.config import AuthSettings, ServerSettings
from auth.web import create_app

PASSPHRASE = "225588"

ENV_VARS = (
    "CLIENT_ID",
    "AUTHORITY",
    "TENANT_ID",
    "SCOPE",
    "REDIRECT_URI",
    "PORT",
    "CERT_KEY_PATH",
    "CERT_KEY_PASSPHRASE",
    "CERT_THUMBPRINT",
    "CERT_PUBLIC_CERT_PATH",
    "KEY_VAULT_NAME",
    "KEY_VAULT_URL",
    "CERT_NAME",
    "HTTPS_CERT_PATH",
    "HTTPS_KEY_PATH",
    "HTTPS_KEY_PASSPHRASE",
    "FLASK_SECRET_KEY",
    "FLASK_SESSION_DIR",
    "FLASK_COOKIE_SECURE",
    "LOG_LEVEL",
    "MSAL_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test from an environment without any app settings."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate(rsa_key: rsa.RSAPrivateKey) -> x509.Certificate:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "example.com")])
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(rsa_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def thumbprint(certificate: x509.Certificate) -> str:
    return thumbprint_of(certificate)


@pytest.fixture(scope="session")
def encrypted_key_pem(rsa_key: rsa.RSAPrivateKey) -> bytes:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.BestAvailableEncryption(PASSPHRASE.encode()),
    )


@pytest.fixture(scope="session")
def cert_pem(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope="session")
def pfx_bytes(rsa_key: rsa.RSAPrivateKey, certificate: x509.Certificate) -> bytes:
    return pkcs12.serialize_key_and_certificates(
        b"ExampleCert1", rsa_key, certificate, None, serialization.NoEncryption()
    )


@pytest.fixture
def key_file(tmp_path, encrypted_key_pem: bytes):
    path = tmp_path / "example.key"
    path.write_bytes(encrypted_key_pem)
    return path


@pytest.fixture
def cert_file(tmp_path, cert_pem: bytes):
    path = tmp_path / "example.crt"
    path.write_bytes(cert_pem)
    return path


class FakeConfidentialClientApplication:
    """Stands in for msal.ConfidentialClientApplication; records its calls."""

    instances: list["FakeConfidentialClientApplication"] = []
    token_result: Any = None
    token_exception: Exception | None = None

    def __init__(self, client_id: str, client_credential: Any = None, authority: str | None = None, **kwargs: Any):
        self.client_id = client_id
        self.client_credential = client_credential
        self.authority = authority
        self.kwargs = kwargs
        self.code_requests: list[dict[str, Any]] = []
        FakeConfidentialClientApplication.instances.append(self)

    def get_authorization_request_url(self, scopes, state=None, redirect_uri=None, **kwargs):
        query = urlencode(
            {
                "client_id": self.client_id,
                "scope": " ".join(scopes),
                "state": state,
                "redirect_uri": redirect_uri,
            }
        )
        return f"{self.authority}/oauth2/v2.0/authorize?{query}"

    def acquire_token_by_authorization_code(self, code, scopes, redirect_uri=None, **kwargs):
        self.code_requests.append({"code": code, "scopes": scopes, "redirect_uri": redirect_uri})
        if self.token_exception is not None:
            raise self.token_exception
        return self.token_result


@pytest.fixture
def fake_msal(monkeypatch: pytest.MonkeyPatch):
    FakeConfidentialClientApplication.instances = []
    FakeConfidentialClientApplication.token_exception = None
    FakeConfidentialClientApplication.token_result = {
        "token_type": "Bearer",
        "access_token": "eyJ0eXAiOiJKV1QiLCJhbGciOiJSUzI1NiJ9.access",
        "id_token": "eyJ0eXAiOiJKV1QiLCJhbGciOiJSUzI1NiJ9.id",
        "expires_in": 3599,
        "id_token_claims": {"name": "Ada Lovelace", "preferred_username": "ada@contoso.com"},
    }
    monkeypatch.setattr(msal, "ConfidentialClientApplication", FakeConfidentialClientApplication)
    return FakeConfidentialClientApplication


@pytest.fixture
def auth_settings() -> AuthSettings:
    return AuthSettings(
        client_id="6931864c-9eec-43ca-9351-06c3579e662a",
        authority="https://login.microsoftonline.com/contoso.onmicrosoft.com",
        redirect_uri="http://localhost:3000/redirect",
        scopes=["user.read"],
    )


@pytest.fixture
def server_settings(tmp_path) -> ServerSettings:
    return ServerSettings(
        secret_key="test-secret",
        session_dir=str(tmp_path / "sessions"),
        cookie_secure=False,
    )


@pytest.fixture
def client_certificate(rsa_key, thumbprint) -> ClientCertificate:
    key_pem = rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    return ClientCertificate(private_key=key_pem, thumbprint=thumbprint)


@pytest.fixture
def app(fake_msal, auth_settings, client_certificate, server_settings):
    flask_app = create_app(auth_settings, client_certificate, server_settings)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


class FakeCertificateClient:
    def __init__(self, thumbprint: bytes | None, vault_url: str = "https://example-vault.vault.azure.net"):
        self.vault_url = vault_url
        self._thumbprint = thumbprint
        self.requested: list[str] = []

    def get_certificate(self, name: str):
        self.requested.append(name)
        return SimpleNamespace(name=name, properties=SimpleNamespace(x509_thumbprint=self._thumbprint))


class FakeSecretClient:
    def __init__(self, value: str | None, content_type: str | None = "application/x-pkcs12"):
        self._value = value
        self._content_type = content_type
        self.requested: list[str] = []

    def get_secret(self, name: str):
        self.requested.append(name)
        return SimpleNamespace(name=name, value=self._value, properties=SimpleNamespace(content_type=self._content_type))


@pytest.fixture
def restore_log_levels():
    """Undo level changes made by configure_logging()."""
    loggers = [logging.getLogger(), logging.getLogger("msal"), logging.getLogger("auth.routes")]
    saved = [lg.level for lg in loggers]
    yield
    for lg, level in zip(loggers, saved):
        lg.setLevel(level)
