"""
Authentication package for the certificate-credential sample apps.

This package implements the OAuth2 Authorization Code Flow against Microsoft
Entra ID via MSAL, with the confidential client authenticated by an X.509
certificate instead of a client secret.
"""
