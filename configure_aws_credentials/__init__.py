"""Exchange a GitHub Actions OIDC token for temporary AWS credentials."""

from .actions import ActionsCore
from .auth import AmbientCredentials, CredentialExchanger, CredentialRefresher, IdentityResolver
from .errors import (
    CredentialsActionError,
    ExchangeError,
    IdentityLookupError,
    RefreshError,
    TokenRequestError,
    ValidationError,
)
from .models import AccountIdentity, ExchangeRequest, TemporaryCredentials
from .orchestrator import run
from .retry_utils import execute
from .version import __version__

__all__ = [
    "AccountIdentity",
    "ActionsCore",
    "AmbientCredentials",
    "CredentialExchanger",
    "CredentialRefresher",
    "CredentialsActionError",
    "ExchangeError",
    "ExchangeRequest",
    "IdentityLookupError",
    "IdentityResolver",
    "RefreshError",
    "TemporaryCredentials",
    "TokenRequestError",
    "ValidationError",
    "__version__",
    "execute",
    "run",
]
