from dataclasses import dataclass

import structlog

from .errors import ValidationError
from .models import DEFAULT_ROLE_DURATION_SECONDS, DEFAULT_ROLE_SESSION_NAME, ExchangeRequest

logger = structlog.get_logger(__name__)

#: Audience the runner's OIDC token must carry for STS to accept it
STS_AUDIENCE = "sts.amazonaws.com"


def parse_duration(raw: str) -> int:
    """Parse role-duration-seconds, falling back to the default when falsy.

    The fallback is a truthiness check, so an explicit "0" also becomes the
    default rather than being passed to STS.

    Raises:
        ValidationError: If the value is not a non-negative integer
    """
    try:
        duration = int(raw or 0)
    except ValueError:
        raise ValidationError(f"Invalid role-duration-seconds: {raw!r} is not an integer") from None
    if duration < 0:
        raise ValidationError(f"Invalid role-duration-seconds: {raw!r} must be positive")
    return duration or DEFAULT_ROLE_DURATION_SECONDS


@dataclass(frozen=True)
class ActionInputs:
    """Step inputs for the credential exchange.

    Inputs (from the workflow's ``with:`` block):
        - aws-region: AWS region for the STS endpoint (required)
        - role-to-assume: ARN of the role to assume (required)
        - role-session-name: Session name (default: GitHubActions)
        - role-duration-seconds: Session duration (default: 3600)
    """

    region: str
    role_to_assume: str
    role_session_name: str = DEFAULT_ROLE_SESSION_NAME
    role_duration_seconds: int = DEFAULT_ROLE_DURATION_SECONDS

    @classmethod
    def from_core(cls, core) -> "ActionInputs":
        inputs = cls(
            region=core.get_input("aws-region", required=True),
            role_to_assume=core.get_input("role-to-assume", required=True),
            role_session_name=core.get_input("role-session-name") or DEFAULT_ROLE_SESSION_NAME,
            role_duration_seconds=parse_duration(core.get_input("role-duration-seconds")),
        )
        logger.debug(
            "Action inputs loaded",
            region=inputs.region,
            role_to_assume=inputs.role_to_assume,
            role_session_name=inputs.role_session_name,
            role_duration_seconds=inputs.role_duration_seconds,
        )
        return inputs

    def to_request(self, identity_token: str = "") -> ExchangeRequest:
        return ExchangeRequest(
            region=self.region,
            role_arn=self.role_to_assume,
            session_name=self.role_session_name,
            duration_seconds=self.role_duration_seconds,
            identity_token=identity_token,
        )
