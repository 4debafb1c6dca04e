"""AWS STS web identity exchange.

Trades a GitHub Actions OIDC token for temporary credentials of an IAM role
whose trust policy accepts the token.
"""

import asyncio
from typing import Any, Callable, Optional

import boto3
import botocore.session
import structlog
from botocore import UNSIGNED
from botocore.config import Config as BotocoreConfig
from botocore.credentials import ReadOnlyCredentials
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import ExchangeError
from ..models import ExchangeRequest, TemporaryCredentials

logger = structlog.get_logger(__name__)


def create_sts_client(
    region: str,
    credentials: Optional[ReadOnlyCredentials] = None,
    unsigned: bool = False,
):
    """Create an STS client routed to the regional endpoint.

    botocore makes a single attempt per call; retry policy is
    owned by the caller. An unsigned client never consults the
    credential chain.

    Args:
        region: AWS region whose STS endpoint should be used
        credentials: Explicit credentials to sign requests with (default: botocore chain)
        unsigned: Send requests without a SigV4 signature (web identity calls)

    Returns:
        boto3 STS client
    """
    botocore_session = botocore.session.get_session()
    botocore_session.set_config_variable("sts_regional_endpoints", "regional")

    session_kwargs: dict[str, Any] = {"botocore_session": botocore_session, "region_name": region}
    if credentials is not None:
        session_kwargs.update(
            aws_access_key_id=credentials.access_key,
            aws_secret_access_key=credentials.secret_key,
            aws_session_token=credentials.token,
        )

    config_kwargs: dict[str, Any] = {
        "retries": {"total_max_attempts": 1, "mode": "standard"},
        "connect_timeout": 5,
        "read_timeout": 10,
    }
    if unsigned:
        config_kwargs["signature_version"] = UNSIGNED

    session = boto3.Session(**session_kwargs)
    return session.client("sts", config=BotocoreConfig(**config_kwargs))


class CredentialExchanger:
    """Performs AssumeRoleWithWebIdentity and extracts temporary credentials.

    The exchanger does not interpret STS failures. Every rejection (invalid
    or expired token, trust policy mismatch, throttling) is raised as an
    ExchangeError so the caller can decide whether to retry.
    """

    def __init__(self, client_factory: Callable[..., Any] = create_sts_client):
        self._client_factory = client_factory

    async def exchange(self, request: ExchangeRequest) -> TemporaryCredentials:
        """Exchange the request's identity token for role credentials.

        Raises:
            ExchangeError: If STS rejects the request or cannot be reached
        """
        return await asyncio.to_thread(self._assume_role_with_web_identity, request)

    def _assume_role_with_web_identity(self, request: ExchangeRequest) -> TemporaryCredentials:
        logger.debug(
            "Assuming role with web identity",
            role_arn=request.role_arn,
            session_name=request.session_name,
            duration_seconds=request.duration_seconds,
            region=request.region,
        )

        try:
            sts_client = self._client_factory(request.region, unsigned=True)
            response = sts_client.assume_role_with_web_identity(
                RoleArn=request.role_arn,
                RoleSessionName=request.session_name,
                DurationSeconds=request.duration_seconds,
                WebIdentityToken=request.identity_token,
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                "Role assumption attempt failed",
                role_arn=request.role_arn,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ExchangeError(str(e)) from e

        credentials = response["Credentials"]
        assumed_role_id = response["AssumedRoleUser"]["AssumedRoleId"]

        logger.info("Role assumed successfully", role_arn=request.role_arn, assumed_role_id=assumed_role_id)

        return TemporaryCredentials(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            assumed_role_id=assumed_role_id,
        )
