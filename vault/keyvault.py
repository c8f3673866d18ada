"""
Azure Key Vault utilities.

This module provides a small wrapper around `azure-keyvault-certificates` and
`azure-keyvault-secrets` for:
  - reading a certificate's x509 thumbprint
  - reading the secret that backs a certificate (its private part)
  - turning both into a `ClientCertificate` for MSAL

Authentication uses `DefaultAzureCredential`: environment credentials or the
Azure CLI locally, Managed Identity on App Service.

Environment variables:
  - KEY_VAULT_URL, or KEY_VAULT_NAME (required)
  - CERT_NAME (required)
"""

from __future__ import annotations

import logging
from typing import Any

from azure.identity import DefaultAzureCredential
from azure.keyvault.certificates import CertificateClient
from azure.keyvault.secrets import SecretClient

from auth.certificates import ClientCertificate, decode_vault_secret, format_thumbprint
from auth.config import CertificateSettings
from auth.errors import CertificateError, ConfigurationError

logger = logging.getLogger(__name__)


class KeyVaultClient:
    """Thin wrapper around Key Vault certificate and secret operations."""

    def __init__(self, certificates: CertificateClient, secrets: SecretClient):
        self._certificates = certificates
        self._secrets = secrets

    @staticmethod
    def from_settings(settings: CertificateSettings, credential: Any = None) -> "KeyVaultClient":
        if not settings.key_vault_url:
            raise ConfigurationError(
                "Missing KEY_VAULT_URL (or KEY_VAULT_NAME). Set it in your environment before starting."
            )
        credential = credential or DefaultAzureCredential()
        return KeyVaultClient(
            CertificateClient(vault_url=settings.key_vault_url, credential=credential),
            SecretClient(vault_url=settings.key_vault_url, credential=credential),
        )

    @property
    def vault_url(self) -> str:
        return self._certificates.vault_url

    def get_certificate_thumbprint(self, name: str) -> str:
        """Return the certificate's SHA-1 thumbprint as upper-case hex."""
        certificate = self._certificates.get_certificate(name)
        raw = certificate.properties.x509_thumbprint
        if not raw:
            raise CertificateError(f"Key Vault certificate '{name}' has no x509 thumbprint.")
        thumbprint = format_thumbprint(raw)
        logger.info("Key Vault certificate '%s' thumbprint: %s", name, thumbprint)
        return thumbprint

    def get_certificate_secret(self, name: str) -> tuple[str, str | None]:
        """
        Return `(value, content_type)` of the secret backing a certificate.

        For PKCS12 certificates the value is the base64-encoded PFX.
        """
        secret = self._secrets.get_secret(name)
        if not secret.value:
            raise CertificateError(f"Key Vault secret '{name}' is empty.")
        return secret.value, secret.properties.content_type

    def load_client_certificate(self, name: str) -> ClientCertificate:
        """
        Fetch certificate `name` and decode it into a `ClientCertificate`.

        The thumbprint reported by Key Vault is authoritative.
        """
        thumbprint = self.get_certificate_thumbprint(name)
        value, content_type = self.get_certificate_secret(name)
        decoded = decode_vault_secret(value, content_type)

        if decoded.thumbprint != thumbprint:
            logger.warning(
                "Thumbprint of secret '%s' (%s) differs from certificate thumbprint (%s); "
                "the certificate may have a newer version pending.",
                name,
                decoded.thumbprint,
                thumbprint,
            )

        return ClientCertificate(
            private_key=decoded.private_key,
            thumbprint=thumbprint,
            public_certificate=decoded.public_certificate,
        )
