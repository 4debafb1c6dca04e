"""Exception hierarchy for the credential exchange.

Every failure that can end an invocation derives from CredentialsActionError.
Components raise these unmodified; only the orchestrator turns them into a
failure signal for the runner.
"""


class CredentialsActionError(Exception):
    """Base class for all errors raised by this action."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CredentialsActionError):
    """Raised when a required input or runner environment value is missing."""


class TokenRequestError(CredentialsActionError):
    """Raised when the runner cannot supply a workload identity token."""


class ExchangeError(CredentialsActionError):
    """Raised when STS rejects the web identity exchange."""


class RefreshError(CredentialsActionError):
    """Raised when ambient credentials cannot be re-resolved."""


class IdentityLookupError(CredentialsActionError):
    """Raised when the caller identity query fails."""
