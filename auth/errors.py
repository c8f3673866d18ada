"""Errors raised while preparing the app, before the server starts."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Required settings are missing or malformed."""


class CertificateError(RuntimeError):
    """Client certificate material could not be loaded or decoded."""
