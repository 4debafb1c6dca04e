"""Caller identity lookup with the freshly exported credentials."""

import asyncio
from typing import Any, Callable

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import IdentityLookupError
from ..models import AccountIdentity
from .ambient import AmbientCredentials
from .exchanger import create_sts_client

logger = structlog.get_logger(__name__)


class IdentityResolver:
    """Queries STS GetCallerIdentity using the ambient credentials.

    No retries are applied here: the credentials were just issued, so a
    failure points at a permissions or network problem.
    """

    def __init__(self, state: AmbientCredentials, client_factory: Callable[..., Any] = create_sts_client):
        self._state = state
        self._client_factory = client_factory

    @property
    def state(self) -> AmbientCredentials:
        return self._state

    async def resolve_account_id(self, region: str) -> str:
        identity = await asyncio.to_thread(self.resolve_identity, region)
        return identity.account_id

    def resolve_identity(self, region: str) -> AccountIdentity:
        """Look up the account that owns the ambient credentials.

        Raises:
            IdentityLookupError: If GetCallerIdentity fails
            RefreshError: If the ambient credentials cannot be resolved
        """
        credentials = self._state.frozen()

        try:
            sts_client = self._client_factory(region, credentials)
            response = sts_client.get_caller_identity()
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to get caller identity", error=str(e), error_type=type(e).__name__)
            raise IdentityLookupError(str(e)) from e

        logger.debug("Resolved caller identity", account_id=response["Account"])
        return AccountIdentity(account_id=response["Account"])
