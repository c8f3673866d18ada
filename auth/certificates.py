"""
Client certificate loading.

MSAL authenticates a confidential client with a certificate by signing a JWT
client assertion. It needs two things from us:
  - the private key, as unencrypted PEM (we hand it PKCS8)
  - the certificate's SHA-1 thumbprint, as hex

The key material comes either from a passphrase-protected PEM file on disk or
from Azure Key Vault, which exposes a certificate's private part as a secret
holding a base64 PKCS12 blob (or PEM text, depending on the certificate's
content type). All parsing is done by `cryptography`.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from .config import CertificateSettings
from .errors import CertificateError

logger = logging.getLogger(__name__)

PKCS12_CONTENT_TYPE = "application/x-pkcs12"
PEM_CONTENT_TYPE = "application/x-pem-file"

_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([A-Z0-9 ]+)-----.+?-----END \1-----",
    re.DOTALL,
)


@dataclass(frozen=True)
class ClientCertificate:
    """Certificate credential in the shape MSAL consumes."""

    private_key: str
    thumbprint: str
    public_certificate: str | None = None

    def as_client_credential(self) -> dict[str, Any]:
        """
        Return the `client_credential` dict for `msal.ConfidentialClientApplication`.

        When the public certificate is known it is included so MSAL sends the
        x5c header (needed for Subject Name/Issuer authentication).
        """
        cred: dict[str, Any] = {
            "private_key": self.private_key,
            "thumbprint": self.thumbprint,
        }
        if self.public_certificate:
            cred["public_certificate"] = self.public_certificate
        return cred


def _password(passphrase: str | bytes | None) -> bytes | None:
    if passphrase is None or passphrase == "":
        return None
    if isinstance(passphrase, str):
        return passphrase.encode("utf-8")
    return passphrase


def _to_pkcs8_pem(key: Any) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def format_thumbprint(raw: bytes) -> str:
    """Hex-encode a raw thumbprint, upper case (the form Entra ID displays)."""
    return raw.hex().upper()


def thumbprint_of(certificate: x509.Certificate) -> str:
    """SHA-1 thumbprint of a certificate, upper-case hex."""
    return format_thumbprint(certificate.fingerprint(hashes.SHA1()))


def private_key_to_pkcs8(data: bytes, passphrase: str | bytes | None = None) -> str:
    """
    Decrypt a PEM private key and re-export it as unencrypted PKCS8 PEM.

    Accepts any PEM private key flavour (PKCS1, SEC1, PKCS8, encrypted PKCS8).
    """
    try:
        key = serialization.load_pem_private_key(data, password=_password(passphrase))
    except (TypeError, ValueError) as e:
        # TypeError: passphrase given for a plain key, or missing for an encrypted one.
        raise CertificateError(f"Unable to read private key: {e}") from e
    return _to_pkcs8_pem(key)


def load_pem_private_key(path: str | Path, passphrase: str | bytes | None = None) -> str:
    """Read a PEM private key file and return it as unencrypted PKCS8 PEM."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise CertificateError(f"Unable to read private key file {path}: {e}") from e
    return private_key_to_pkcs8(data, passphrase)


def load_pem_certificate(path: str | Path) -> x509.Certificate:
    """Read a PEM certificate file."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise CertificateError(f"Unable to read certificate file {path}: {e}") from e
    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError as e:
        raise CertificateError(f"Invalid certificate in {path}: {e}") from e


def _public_pem(certificate: x509.Certificate) -> str:
    return certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")


def load_pkcs12(data: bytes, passphrase: str | bytes | None = None) -> ClientCertificate:
    """
    Decode a PKCS12 (PFX) blob into a `ClientCertificate`.

    Key Vault exports certificates without a password, so `passphrase` is
    usually None.
    """
    try:
        key, certificate, _ = pkcs12.load_key_and_certificates(data, _password(passphrase))
    except ValueError as e:
        raise CertificateError(f"Unable to decode PKCS12 data: {e}") from e

    if key is None:
        raise CertificateError("PKCS12 data contains no private key.")
    if certificate is None:
        raise CertificateError("PKCS12 data contains no certificate.")

    return ClientCertificate(
        private_key=_to_pkcs8_pem(key),
        thumbprint=thumbprint_of(certificate),
        public_certificate=_public_pem(certificate),
    )


def load_pem_bundle(data: bytes, passphrase: str | bytes | None = None) -> ClientCertificate:
    """
    Decode PEM text holding a private key and its certificate.

    The first certificate block is taken as the leaf.
    """
    key_pem: bytes | None = None
    cert_pem: bytes | None = None
    for match in _PEM_BLOCK.finditer(data):
        label = match.group(1)
        if label.endswith(b"PRIVATE KEY") and key_pem is None:
            key_pem = match.group(0)
        elif label == b"CERTIFICATE" and cert_pem is None:
            cert_pem = match.group(0)

    if key_pem is None:
        raise CertificateError("PEM data contains no private key.")
    if cert_pem is None:
        raise CertificateError("PEM data contains no certificate.")

    try:
        certificate = x509.load_pem_x509_certificate(cert_pem)
    except ValueError as e:
        raise CertificateError(f"Invalid certificate in PEM data: {e}") from e

    return ClientCertificate(
        private_key=private_key_to_pkcs8(key_pem, passphrase),
        thumbprint=thumbprint_of(certificate),
        public_certificate=_public_pem(certificate),
    )


def decode_vault_secret(value: str, content_type: str | None = None) -> ClientCertificate:
    """
    Decode the secret Key Vault keeps for a certificate.

    `content_type` is the secret's content type; Key Vault defaults to PKCS12.
    """
    if (content_type or PKCS12_CONTENT_TYPE).lower() == PEM_CONTENT_TYPE:
        return load_pem_bundle(value.encode("utf-8"))

    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CertificateError(f"Secret value is not valid base64: {e}") from e
    return load_pkcs12(data)


def load_local_certificate(settings: CertificateSettings) -> ClientCertificate:
    """
    Build the client certificate from files on disk.

    The thumbprint comes from CERT_THUMBPRINT, or is computed from
    CERT_PUBLIC_CERT_PATH when that is set. When both are given and disagree,
    the configured one is used and a warning is logged.
    """
    if not settings.key_path:
        raise CertificateError("CERT_KEY_PATH is not set.")

    private_key = load_pem_private_key(settings.key_path, settings.key_passphrase)

    public_certificate = None
    computed = None
    if settings.public_cert_path:
        certificate = load_pem_certificate(settings.public_cert_path)
        public_certificate = _public_pem(certificate)
        computed = thumbprint_of(certificate)

    thumbprint = settings.thumbprint or computed
    if not thumbprint:
        raise CertificateError(
            "No certificate thumbprint: set CERT_THUMBPRINT or CERT_PUBLIC_CERT_PATH."
        )
    if computed and computed != thumbprint:
        logger.warning(
            "Configured thumbprint %s does not match certificate %s (%s)",
            thumbprint,
            settings.public_cert_path,
            computed,
        )

    logger.info("Loaded client certificate key from %s (thumbprint %s)", settings.key_path, thumbprint)
    return ClientCertificate(
        private_key=private_key,
        thumbprint=thumbprint,
        public_certificate=public_certificate,
    )
