"""
Azure Key Vault access.

Used by the vault-backed sample to fetch the client certificate's thumbprint
and its private part (stored by Key Vault as a secret of the same name).
"""
