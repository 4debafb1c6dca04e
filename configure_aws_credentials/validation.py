"""Preconditions checked before any network call is made.

Identity tokens may be single-use or short-lived, so missing parameters are
reported before a token is requested or an STS round trip is spent.
"""

import os
from typing import Mapping, Optional

import structlog

from .errors import ValidationError
from .models import ExchangeRequest

logger = structlog.get_logger(__name__)

#: Runner variables that must be present when running inside GitHub Actions
REQUIRED_GITHUB_ENV_VARS = (
    "GITHUB_REPOSITORY",
    "GITHUB_WORKFLOW",
    "GITHUB_ACTION",
    "GITHUB_ACTOR",
    "GITHUB_SHA",
)


def validate_request(request: ExchangeRequest, require_token: bool = False) -> None:
    """Check that every exchange parameter is present and truthy.

    Args:
        request: Parameters for the web identity exchange
        require_token: Also require the identity token (set once it has been fetched)

    Raises:
        ValidationError: If any required parameter is missing
    """
    required = {
        "aws-region": request.region,
        "role-to-assume": request.role_arn,
        "role-session-name": request.session_name,
        "role-duration-seconds": request.duration_seconds,
    }
    if require_token:
        required["identity-token"] = request.identity_token

    missing = [name for name, value in required.items() if not value]
    if missing:
        logger.error("Missing required input", missing=missing)
        raise ValidationError(f"Missing required input when assuming a Role. Missing: {', '.join(missing)}")


def validate_environment(environ: Optional[Mapping[str, str]] = None) -> None:
    """Check that the GitHub Actions runner variables are set.

    These values are not sent to AWS; their presence is what tells us we are
    running inside a workflow job.

    Raises:
        ValidationError: If any runner variable is missing or empty
    """
    environ = os.environ if environ is None else environ
    missing = [name for name in REQUIRED_GITHUB_ENV_VARS if not environ.get(name)]
    if missing:
        logger.error("Missing GitHub Actions environment", missing=missing)
        raise ValidationError(
            "Missing required environment value. Are you running in GitHub Actions? "
            f"Missing: {', '.join(missing)}"
        )
