"""End-to-end credential configuration for a single workflow step.

Steps run strictly in order; the first error aborts the rest and is reported
to the runner as the step's single failure message.
"""

import os
from typing import Any, Awaitable, Callable, MutableMapping, Optional

import structlog

from .auth import (
    AmbientCredentials,
    CredentialExchanger,
    CredentialRefresher,
    IdentityResolver,
    create_sts_client,
    default_credential_sources,
)
from .config import STS_AUDIENCE, ActionInputs
from .retry_utils import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_ATTEMPTS, execute
from .validation import validate_environment, validate_request

logger = structlog.get_logger(__name__)

#: Environment variables botocore and the AWS CLI read static credentials from
ENV_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_SESSION_TOKEN = "AWS_SESSION_TOKEN"


async def run(
    core,
    exchanger: Optional[CredentialExchanger] = None,
    refresher: Optional[CredentialRefresher] = None,
    resolver: Optional[IdentityResolver] = None,
    ambient: Optional[AmbientCredentials] = None,
    environ: Optional[MutableMapping[str, str]] = None,
    client_factory: Callable[..., Any] = create_sts_client,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> None:
    """Exchange the job's OIDC token for role credentials and publish them.

    1. Validate inputs and the runner environment
    2. Fetch the OIDC token for sts.amazonaws.com
    3. AssumeRoleWithWebIdentity with full-jitter backoff
    4. Mask the three secret values
    5. Publish credential outputs
    6. Export the credentials as AWS_* environment variables
    7. Reload ambient credentials
    8. Publish the account id of the assumed role

    Args:
        core: ActionsCore (or compatible) used for inputs, outputs and failure
        exchanger: Performs the STS exchange (default: CredentialExchanger)
        refresher: Reloads ambient credentials (default: built on ``ambient``)
        resolver: Looks up the account id (default: built on ``ambient``)
        ambient: Credential state shared by refresher and resolver (default:
            the injected component's state, else the default sources over ``environ``)
        environ: Process environment to export credentials into (default: os.environ)
        client_factory: Builds STS clients for the default exchanger and resolver
        max_attempts: Exchange attempts, including the first
        base_delay_ms: Base delay of the exchange backoff
        sleep: Coroutine used for backoff sleeps
    """
    environ = os.environ if environ is None else environ
    exchanger = exchanger or CredentialExchanger(client_factory=client_factory)
    if ambient is None:
        if refresher is not None:
            ambient = refresher.state
        elif resolver is not None:
            ambient = resolver.state
        else:
            ambient = AmbientCredentials(default_credential_sources(environ))
    refresher = refresher or CredentialRefresher(ambient)
    resolver = resolver or IdentityResolver(ambient, client_factory=client_factory)

    try:
        inputs = ActionInputs.from_core(core)
        validate_request(inputs.to_request())
        validate_environment(environ)

        logger.debug("Getting ID token")
        identity_token = await core.get_id_token(STS_AUDIENCE)
        request = inputs.to_request(identity_token)
        validate_request(request, require_token=True)

        logger.debug("Assuming role", role_arn=request.role_arn, max_attempts=max_attempts)
        credentials = await execute(
            lambda: exchanger.exchange(request),
            max_attempts=max_attempts,
            base_delay_ms=base_delay_ms,
            sleep=sleep,
        )

        for secret in credentials.secrets():
            core.set_secret(secret)

        core.set_output("aws-access-key-id", credentials.access_key_id)
        core.set_output("aws-secret-access-key", credentials.secret_access_key)
        core.set_output("aws-session-token", credentials.session_token)
        core.set_output("aws-role-id", credentials.assumed_role_id)

        environ[ENV_ACCESS_KEY_ID] = credentials.access_key_id
        environ[ENV_SECRET_ACCESS_KEY] = credentials.secret_access_key
        environ[ENV_SESSION_TOKEN] = credentials.session_token
        await refresher.refresh()

        account_id = await resolver.resolve_account_id(inputs.region)
        core.set_output("aws-account-id", account_id)

        logger.info(
            "AWS credentials configured",
            assumed_role_id=credentials.assumed_role_id,
            account_id=account_id,
        )
    except Exception as error:
        logger.error("Failed to configure AWS credentials", error=str(error), error_type=type(error).__name__)
        core.set_failed(str(error))
