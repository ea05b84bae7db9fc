from pathlib import Path

import pytest

from sessionkeeper.config import RemoteStorageConfig, SessionConfig, load_config
from sessionkeeper.errors import ConfigurationIncomplete

FULL_REMOTE = {
    "S3_ACCESS_KEY_ID": "AKIA",
    "S3_SECRET_ACCESS_KEY": "secret",
    "S3_BUCKET": "bucket",
}


class TestLoadConfigDefaults:
    def test_empty_environment(self):
        config = load_config({})

        assert config.remote.available is False
        assert config.legacy_available is False
        assert config.any_source_available is False
        assert config.remote.file_name == "session.json"
        assert config.remote.region == "us-east-1"
        assert config.remote.prefix == "sessions"
        assert config.remote.endpoint_url is None
        assert config.session_dir == Path("session")
        assert config.creds_path == Path("session") / "creds.json"
        assert config.mode == "private"
        assert config.port == 3000
        assert config.client is None


class TestLoadConfigSources:
    def test_remote_available_with_all_fields(self):
        config = load_config(FULL_REMOTE)

        assert config.remote.available is True
        assert config.any_source_available is True

    @pytest.mark.parametrize("missing", sorted(FULL_REMOTE))
    def test_remote_unavailable_when_field_missing(self, missing):
        environ = {k: v for k, v in FULL_REMOTE.items() if k != missing}

        assert load_config(environ).remote.available is False

    def test_blank_values_count_as_missing(self):
        environ = dict(FULL_REMOTE, S3_SECRET_ACCESS_KEY="   ")

        assert load_config(environ).remote.available is False

    def test_legacy_session_id(self):
        config = load_config({"SESSION_ID": "Ethix-MD&abc123"})

        assert config.legacy_available is True
        assert config.legacy_session_id == "Ethix-MD&abc123"

    def test_custom_remote_settings(self):
        config = load_config(
            dict(
                FULL_REMOTE,
                S3_SESSION_FILE="bot.json",
                S3_PREFIX="/bots/",
                S3_ENDPOINT_URL="http://localhost:9000",
            )
        )

        assert config.remote.file_name == "bot.json"
        assert config.remote.prefix == "bots"
        assert config.remote.endpoint_url == "http://localhost:9000"


class TestLoadConfigValidation:
    def test_mode_is_normalized(self):
        assert load_config({"MODE": "Public"}).mode == "public"

    def test_unknown_mode(self):
        with pytest.raises(ConfigurationIncomplete, match="MODE"):
            load_config({"MODE": "secret"})

    def test_invalid_port(self):
        with pytest.raises(ConfigurationIncomplete, match="PORT"):
            load_config({"PORT": "http"})

    def test_session_dir_and_client(self):
        config = load_config({"SESSION_DIR": "/data/wa", "SESSION_CLIENT": "bot.client:make"})

        assert config.creds_path == Path("/data/wa/creds.json")
        assert config.client == "bot.client:make"


class TestRemoteStorageConfig:
    def test_empty_file_name_is_unavailable(self):
        remote = RemoteStorageConfig(
            access_key_id="id", secret_access_key="s", bucket="b", file_name=""
        )
        assert remote.available is False

    def test_session_config_defaults(self):
        assert SessionConfig().remote.available is False
