from dataclasses import dataclass, field

#: Seconds requested for the assumed role session when no duration is given
DEFAULT_ROLE_DURATION_SECONDS = 3600

#: Session name recorded in CloudTrail when no session name is given
DEFAULT_ROLE_SESSION_NAME = "GitHubActions"


@dataclass(frozen=True)
class ExchangeRequest:
    region: str
    role_arn: str
    session_name: str = DEFAULT_ROLE_SESSION_NAME
    duration_seconds: int = DEFAULT_ROLE_DURATION_SECONDS
    identity_token: str = field(default="", repr=False)


@dataclass(frozen=True)
class TemporaryCredentials:
    access_key_id: str = field(repr=False)
    secret_access_key: str = field(repr=False)
    session_token: str = field(repr=False)
    assumed_role_id: str

    def secrets(self) -> tuple[str, str, str]:
        """Values that must be masked before anything else is logged."""
        return (self.access_key_id, self.secret_access_key, self.session_token)


@dataclass(frozen=True)
class AccountIdentity:
    account_id: str
