"""
MSAL helpers.

This wraps MSAL (Microsoft Authentication Library) setup for Entra ID
authentication with a certificate credential. We use the OAuth2 Authorization
Code Flow.
"""

from __future__ import annotations

import secrets
from typing import Any

import msal

from .certificates import ClientCertificate
from .config import AuthSettings

# Fields of a token response that carry bearer material.
_TOKEN_FIELDS = ("access_token", "refresh_token", "id_token")


def build_msal_app(settings: AuthSettings, certificate: ClientCertificate) -> msal.ConfidentialClientApplication:
    """Create an MSAL confidential client app authenticated by `certificate`."""

    return msal.ConfidentialClientApplication(
        client_id=settings.client_id,
        client_credential=certificate.as_client_credential(),
        authority=settings.authority,
        enable_pii_log=False,
    )


def new_state_token() -> str:
    """Generate a cryptographically secure state token for CSRF protection."""

    return secrets.token_urlsafe(32)


def summarize_token_response(result: dict[str, Any]) -> dict[str, Any]:
    """
    Copy of a token response safe to log at INFO.

    Token strings are replaced by their length and ID token claims by the
    sorted list of claim names, so no user data is kept.
    """

    summary = dict(result)
    for key in _TOKEN_FIELDS:
        val = summary.get(key)
        if isinstance(val, str):
            summary[key] = f"<redacted {len(val)} chars>"
    claims = summary.get("id_token_claims")
    if isinstance(claims, dict):
        summary["id_token_claims"] = sorted(claims)
    return summary


def get_username_from_claims(claims: dict[str, Any] | None) -> str | None:
    """
    Extract an email/UPN-like identifier from ID token claims.

    Entra ID commonly uses:
      - preferred_username (often UPN/email)
      - email
      - upn
    """

    if not claims:
        return None
    for key in ("preferred_username", "email", "upn"):
        val = claims.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return None
