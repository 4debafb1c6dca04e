"""Unit tests for AmbientCredentials and CredentialRefresher.

Tests lazy resolution, source ordering and forced reload after new
credentials are exported into the environment.
"""

import asyncio

import pytest
from botocore.credentials import (
    ContainerProvider,
    CredentialProvider,
    Credentials,
    EnvProvider,
    InstanceMetadataProvider,
    SharedCredentialProvider,
)

from configure_aws_credentials.auth.ambient import (
    AmbientCredentials,
    CredentialRefresher,
    default_credential_sources,
)
from configure_aws_credentials.errors import RefreshError


class FakeMetadataProvider(CredentialProvider):
    """Stands in for instance metadata credentials on a self-hosted runner."""

    METHOD = "fake-iam-role"

    def __init__(self):
        self.load_count = 0

    def load(self):
        self.load_count += 1
        return Credentials("ASIAINSTANCE", "instance-secret", "instance-token", method=self.METHOD)


def _export(monkeypatch, access_key, secret_key, token):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", access_key)
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", secret_key)
    monkeypatch.setenv("AWS_SESSION_TOKEN", token)


class TestDefaultCredentialSources:
    """Test the documented source order."""

    def test_order(self):
        sources = default_credential_sources()

        assert [type(source) for source in sources] == [
            EnvProvider,
            SharedCredentialProvider,
            ContainerProvider,
            InstanceMetadataProvider,
        ]

    def test_env_source_reads_given_environment(self):
        environ = {"AWS_ACCESS_KEY_ID": "AKIAFROMDICT", "AWS_SECRET_ACCESS_KEY": "secret"}

        credentials = default_credential_sources(environ)[0].load()

        assert credentials.access_key == "AKIAFROMDICT"

    def test_shared_credentials_file_from_environment(self, tmp_path):
        credentials_file = tmp_path / "credentials"
        credentials_file.write_text(
            "[ci]\naws_access_key_id = AKIAFROMFILE\naws_secret_access_key = file-secret\n"
        )
        environ = {"AWS_SHARED_CREDENTIALS_FILE": str(credentials_file), "AWS_PROFILE": "ci"}

        state = AmbientCredentials(default_credential_sources(environ)[:2])

        assert state.current().access_key == "AKIAFROMFILE"
        assert state.current().method == "shared-credentials-file"


class TestAmbientCredentials:
    """Test the explicit credential cell."""

    def test_lazy_resolution(self, monkeypatch):
        _export(monkeypatch, "AKIAFIRST", "secret", "token")
        state = AmbientCredentials([EnvProvider()])

        assert state.is_resolved is False
        assert state.current().access_key == "AKIAFIRST"
        assert state.is_resolved is True

    def test_cached_until_invalidated(self, monkeypatch):
        """Without invalidation, later environment changes are not observed."""
        _export(monkeypatch, "AKIAFIRST", "secret", "token")
        state = AmbientCredentials([EnvProvider()])
        state.current()

        _export(monkeypatch, "AKIASECOND", "secret-2", "token-2")

        assert state.current().access_key == "AKIAFIRST"

        state.invalidate()
        assert state.is_resolved is False
        assert state.current().access_key == "AKIASECOND"

    def test_first_source_wins(self, monkeypatch):
        _export(monkeypatch, "AKIAENV", "env-secret", "env-token")
        metadata = FakeMetadataProvider()
        state = AmbientCredentials([EnvProvider(), metadata])

        assert state.current().method == "env"
        assert metadata.load_count == 0

    def test_no_credentials(self):
        state = AmbientCredentials([EnvProvider()])

        with pytest.raises(RefreshError, match="Unable to locate AWS credentials"):
            state.reresolve()

    def test_partial_environment_credentials(self, monkeypatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAONLYKEY")
        state = AmbientCredentials([EnvProvider()])

        with pytest.raises(RefreshError, match="Failed to resolve AWS credentials"):
            state.reresolve()

        assert state.is_resolved is False


class TestCredentialRefresher:
    """Test forced reload of ambient credentials."""

    def test_refresh_observes_injected_values(self, monkeypatch):
        _export(monkeypatch, "AKIASTALE", "stale-secret", "stale-token")
        state = AmbientCredentials([EnvProvider()])
        assert state.current().access_key == "AKIASTALE"

        _export(monkeypatch, "AKIAFRESH", "fresh-secret", "fresh-token")
        asyncio.run(CredentialRefresher(state).refresh())

        frozen = state.frozen()
        assert frozen.access_key == "AKIAFRESH"
        assert frozen.secret_key == "fresh-secret"
        assert frozen.token == "fresh-token"

    def test_refresh_replaces_credential_kind(self, monkeypatch):
        """Instance credentials loaded at start are replaced by exported ones."""
        metadata = FakeMetadataProvider()
        state = AmbientCredentials([EnvProvider(), metadata])
        assert state.current().method == FakeMetadataProvider.METHOD

        _export(monkeypatch, "AKIAFRESH", "fresh-secret", "fresh-token")
        asyncio.run(CredentialRefresher(state).refresh())

        assert state.current().method == "env"
        assert state.current().access_key == "AKIAFRESH"

    def test_refresh_failure(self, monkeypatch):
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIAONLYKEY")
        state = AmbientCredentials([EnvProvider()])

        with pytest.raises(RefreshError):
            asyncio.run(CredentialRefresher(state).refresh())
