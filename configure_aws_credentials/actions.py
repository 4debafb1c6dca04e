"""GitHub Actions runner protocol.

Reads step inputs, writes step outputs, masks secrets, reports failure and
requests the job's OIDC token. Everything here talks to the runner through
environment variables, the GITHUB_OUTPUT file and workflow commands on
stdout.
"""

import os
import sys
import uuid
from typing import IO, Mapping, Optional

import httpx
import structlog

from .errors import TokenRequestError, ValidationError
from .retry_utils import ID_TOKEN_RETRY

logger = structlog.get_logger(__name__)


def escape_data(value: str) -> str:
    """Escape a workflow command value."""
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    """Escape a workflow command property."""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


@ID_TOKEN_RETRY
async def fetch_id_token(
    request_url: str,
    request_token: str,
    audience: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Request an OIDC token from the runner's token service.

    Connection errors, timeouts and 429/5xx responses are retried.

    Args:
        request_url: Value of ACTIONS_ID_TOKEN_REQUEST_URL
        request_token: Value of ACTIONS_ID_TOKEN_REQUEST_TOKEN
        audience: Audience claim to request
        transport: httpx transport override (tests)

    Returns:
        The raw JWT

    Raises:
        TokenRequestError: If the response carries no token
        httpx.HTTPError: If the request keeps failing
    """
    async with httpx.AsyncClient(transport=transport, timeout=10.0) as client:
        response = await client.get(
            request_url,
            params={"audience": audience} if audience else None,
            headers={
                "Authorization": f"Bearer {request_token}",
                "Accept": "application/json",
            },
        )
        response.raise_for_status()

    token = response.json().get("value")
    if not token:
        raise TokenRequestError("Response json body do not have ID Token field")
    return token


class ActionsCore:
    """Minimal port of the @actions/core toolkit used by this action.

    Attributes:
        exit_code: 0 until set_failed is called, then 1
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        stdout: Optional[IO[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._environ = os.environ if environ is None else environ
        self._stdout = stdout
        self._transport = transport
        self.exit_code = 0

    def _issue(self, command: str, message: str = "", **properties: str) -> None:
        rendered = f"::{command}"
        if properties:
            rendered += " " + ",".join(f"{key}={escape_property(str(value))}" for key, value in properties.items())
        rendered += f"::{escape_data(message)}"
        stream = self._stdout if self._stdout is not None else sys.stdout
        stream.write(rendered + os.linesep)
        stream.flush()

    def get_input(self, name: str, required: bool = False) -> str:
        """Read a step input from its INPUT_* environment variable.

        Raises:
            ValidationError: If a required input is empty or unset
        """
        value = self._environ.get(f"INPUT_{name.replace(' ', '_').upper()}", "").strip()
        if required and not value:
            raise ValidationError(f"Input required and not supplied: {name}")
        return value

    def set_secret(self, value: str) -> None:
        """Register a value to be masked in the job log."""
        self._issue("add-mask", value)

    def set_output(self, name: str, value: str) -> None:
        output_file = self._environ.get("GITHUB_OUTPUT", "")
        if not output_file:
            # Runners older than the GITHUB_OUTPUT file only understand the command form
            self._issue("set-output", value, name=name)
            return

        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        if delimiter in name or delimiter in value:
            raise ValueError(f"Unexpected input: name and value should not contain the delimiter {delimiter}")

        with open(output_file, "a", encoding="utf-8") as f:
            f.write(f"{name}<<{delimiter}{os.linesep}{value}{os.linesep}{delimiter}{os.linesep}")

    def set_failed(self, message: str) -> None:
        """Log an error annotation and mark the step as failed."""
        self.exit_code = 1
        self._issue("error", message)

    async def get_id_token(self, audience: Optional[str] = None) -> str:
        """Fetch the job's OIDC token for the given audience.

        Raises:
            TokenRequestError: If the runner does not expose an ID token or the request fails
        """
        request_url = self._environ.get("ACTIONS_ID_TOKEN_REQUEST_URL")
        if not request_url:
            raise TokenRequestError("Unable to get ACTIONS_ID_TOKEN_REQUEST_URL env variable")
        request_token = self._environ.get("ACTIONS_ID_TOKEN_REQUEST_TOKEN")
        if not request_token:
            raise TokenRequestError("Unable to get ACTIONS_ID_TOKEN_REQUEST_TOKEN env variable")

        try:
            token = await fetch_id_token(request_url, request_token, audience, transport=self._transport)
        except httpx.HTTPError as e:
            logger.error("ID token request failed", error=str(e), error_type=type(e).__name__)
            raise TokenRequestError(f"Failed to get ID Token. Error message: {e}") from e

        self.set_secret(token)
        return token
