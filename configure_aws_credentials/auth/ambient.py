"""Process-wide ambient AWS credentials and their forced reload.

botocore resolves credentials once and keeps them for the lifetime of a
session; environment variables written later in the same process are never
picked up. AmbientCredentials makes that cache explicit so it can be dropped
and resolved again after new credentials are exported.
"""

import asyncio
import os
from typing import Mapping, Optional, Sequence

import structlog
from botocore.credentials import (
    ContainerProvider,
    CredentialProvider,
    CredentialResolver,
    Credentials,
    EnvProvider,
    InstanceMetadataFetcher,
    InstanceMetadataProvider,
    ReadOnlyCredentials,
    SharedCredentialProvider,
)
from botocore.exceptions import BotoCoreError

from ..errors import RefreshError

logger = structlog.get_logger(__name__)


def default_credential_sources(environ: Optional[Mapping[str, str]] = None) -> list[CredentialProvider]:
    """Build the ordered list of credential sources consulted on resolution.

    Order (first match wins):
        1. Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_SESSION_TOKEN)
        2. Shared credentials file (AWS_SHARED_CREDENTIALS_FILE or ~/.aws/credentials)
        3. Container credentials (ECS / CodeBuild task role)
        4. EC2 instance metadata (self-hosted runners)

    Args:
        environ: Environment to read from (default: os.environ, read at resolution time)

    Returns:
        List of botocore credential providers
    """
    environ = os.environ if environ is None else environ
    credentials_file = os.path.expanduser(environ.get("AWS_SHARED_CREDENTIALS_FILE", "~/.aws/credentials"))

    return [
        EnvProvider(environ=environ),
        SharedCredentialProvider(
            creds_filename=credentials_file,
            profile_name=environ.get("AWS_PROFILE", "default"),
        ),
        ContainerProvider(environ=environ),
        InstanceMetadataProvider(iam_role_fetcher=InstanceMetadataFetcher(timeout=1, num_attempts=1)),
    ]


class AmbientCredentials:
    """Holds the credentials currently active for this process.

    The value is resolved lazily on first read. ``invalidate`` discards it
    entirely, since a new resolution may produce a different kind of
    credentials (instance metadata before, static environment keys after).
    """

    def __init__(self, sources: Optional[Sequence[CredentialProvider]] = None):
        self._sources = list(sources) if sources is not None else default_credential_sources()
        self._credentials: Optional[Credentials] = None

    @property
    def sources(self) -> list[CredentialProvider]:
        return list(self._sources)

    @property
    def is_resolved(self) -> bool:
        return self._credentials is not None

    def invalidate(self) -> None:
        self._credentials = None

    def reresolve(self) -> Credentials:
        """Walk the credential sources in order and keep the first match.

        Raises:
            RefreshError: If a source fails (e.g. partial environment credentials)
                or no source yields credentials
        """
        resolver = CredentialResolver(providers=self._sources)
        try:
            credentials = resolver.load_credentials()
        except BotoCoreError as e:
            logger.error("Failed to resolve AWS credentials", error=str(e), error_type=type(e).__name__)
            raise RefreshError(f"Failed to resolve AWS credentials: {e}") from e

        if credentials is None:
            raise RefreshError("Unable to locate AWS credentials from any configured source")

        self._credentials = credentials
        return credentials

    def current(self) -> Credentials:
        if self._credentials is None:
            return self.reresolve()
        return self._credentials

    def frozen(self) -> ReadOnlyCredentials:
        """Snapshot of the current access key, secret key and token."""
        return self.current().get_frozen_credentials()


class CredentialRefresher:
    """Forces the ambient credentials to be rebuilt after new ones are exported."""

    def __init__(self, state: AmbientCredentials):
        self._state = state

    @property
    def state(self) -> AmbientCredentials:
        return self._state

    async def refresh(self) -> None:
        """Discard the ambient credentials and resolve them again.

        Raises:
            RefreshError: If re-resolution fails
        """
        self._state.invalidate()
        credentials = await asyncio.to_thread(self._state.reresolve)
        logger.info("Ambient AWS credentials reloaded", method=credentials.method)
