"""
Auth routes (MSAL / Entra ID, certificate credential).

Endpoints:
  - GET  /           start sign-in
  - GET  /redirect   OAuth2 redirect target
  - GET  /logout

Implementation notes:
  - Uses MSAL Authorization Code Flow; the token request is authenticated
    with a client assertion signed by the app's certificate.
  - Failures reported by MSAL are passed through as HTTP 500.
  - The token response is logged, not stored.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import msal
from flask import Blueprint, current_app, redirect, request, session, url_for

from .config import AuthSettings
from .msal_auth import get_username_from_claims, new_state_token, summarize_token_response

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)

SUCCESS_MESSAGE = "Congratulations! You have signed in successfully"


def _settings() -> AuthSettings:
    settings = current_app.config.get("AUTH_SETTINGS")
    if not isinstance(settings, AuthSettings):
        raise RuntimeError("Auth settings not initialized. Build the app with auth.web.create_app().")
    return settings


def _msal_app() -> msal.ConfidentialClientApplication:
    msal_app = current_app.extensions.get("msal")
    if msal_app is None:
        raise RuntimeError("MSAL app not initialized. Build the app with auth.web.create_app().")
    return msal_app


@auth_bp.get("/")
def login():
    """Redirect the user to Microsoft to sign in and consent to the scopes."""

    s = _settings()
    state = new_state_token()
    session["auth_state"] = state

    try:
        auth_url = _msal_app().get_authorization_request_url(
            scopes=s.scopes,
            state=state,
            redirect_uri=s.redirect_uri,
        )
    except Exception:
        logger.exception("Failed to build authorization request URL")
        session.pop("auth_state", None)
        return "Unable to start sign-in.", 500

    logger.debug("Redirecting to %s", auth_url)
    return redirect(auth_url)


@auth_bp.get("/redirect")
def callback():
    """Exchange the authorization code for tokens."""

    # CSRF check
    expected_state = session.get("auth_state")
    received_state = request.args.get("state")
    if not expected_state or expected_state != received_state:
        session.clear()
        logger.warning("Rejected redirect with invalid state")
        return "Authentication failed (invalid state). Please try again.", 400

    code = request.args.get("code")
    if not code:
        # Entra ID sends error params when login fails or is cancelled.
        error = request.args.get("error")
        desc = request.args.get("error_description")
        session.clear()
        logger.warning("Sign-in returned no code: %s %s", error, desc)
        return f"Authentication failed: {error or 'unknown_error'}\n\n{desc or ''}", 400

    s = _settings()
    try:
        result = _msal_app().acquire_token_by_authorization_code(
            code=code,
            scopes=s.scopes,
            redirect_uri=s.redirect_uri,
        )
    except Exception as e:
        logger.exception("Token request failed")
        session.clear()
        return f"Authentication failed: {e}", 500

    if not isinstance(result, dict) or "error" in result:
        result = result if isinstance(result, dict) else {}
        logger.error(
            "Token request rejected: %s - %s (correlation id %s)",
            result.get("error"),
            result.get("error_description"),
            result.get("correlation_id"),
        )
        session.clear()
        return f"Authentication failed: {result.get('error')} - {result.get('error_description')}", 500

    logger.info("Response: %s", summarize_token_response(result))
    logger.debug("Full token response: %s", result)

    claims = result.get("id_token_claims") or {}
    username = get_username_from_claims(claims)
    session["user"] = {
        "name": claims.get("name") or username,
        "username": username,
    }
    session.pop("auth_state", None)

    return SUCCESS_MESSAGE, 200


@auth_bp.get("/logout")
def logout():
    """Clear the local session and redirect to Microsoft logout."""

    s = _settings()
    session.clear()

    post_logout_redirect = url_for("auth.login", _external=True)
    return redirect(f"{s.logout_url}?{urlencode({'post_logout_redirect_uri': post_logout_redirect})}")
