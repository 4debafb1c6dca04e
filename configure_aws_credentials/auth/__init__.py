"""AWS credential exchange, ambient credential reload and identity lookup."""

from .ambient import AmbientCredentials, CredentialRefresher, default_credential_sources
from .exchanger import CredentialExchanger, create_sts_client
from .identity import IdentityResolver

__all__ = [
    "AmbientCredentials",
    "CredentialExchanger",
    "CredentialRefresher",
    "IdentityResolver",
    "create_sts_client",
    "default_credential_sources",
]
