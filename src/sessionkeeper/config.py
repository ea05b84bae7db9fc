import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from sessionkeeper.errors import ConfigurationIncomplete

CREDS_FILENAME = "creds.json"
DEFAULT_SESSION_DIR = "session"
DEFAULT_REMOTE_FILE = "session.json"
DEFAULT_S3_REGION = "us-east-1"
DEFAULT_S3_PREFIX = "sessions"
DEFAULT_PORT = 3000
MODES = ("public", "private")


@dataclass
class RemoteStorageConfig:
    access_key_id: str = ""
    secret_access_key: str = ""
    bucket: str = ""
    file_name: str = DEFAULT_REMOTE_FILE
    region: str = DEFAULT_S3_REGION
    prefix: str = DEFAULT_S3_PREFIX
    endpoint_url: Optional[str] = None

    @property
    def available(self) -> bool:
        return all(
            [self.access_key_id, self.secret_access_key, self.bucket, self.file_name]
        )


@dataclass
class SessionConfig:
    remote: RemoteStorageConfig = field(default_factory=RemoteStorageConfig)
    legacy_session_id: str = ""
    session_dir: Path = Path(DEFAULT_SESSION_DIR)
    mode: str = "private"
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    client: Optional[str] = None

    @property
    def creds_path(self) -> Path:
        return self.session_dir / CREDS_FILENAME

    @property
    def legacy_available(self) -> bool:
        return bool(self.legacy_session_id)

    @property
    def any_source_available(self) -> bool:
        return self.remote.available or self.legacy_available


def _get(environ: Mapping[str, str], key: str, default: str = "") -> str:
    return (environ.get(key) or default).strip()


def load_config(environ: Optional[Mapping[str, str]] = None) -> SessionConfig:
    if environ is None:
        load_dotenv()
        environ = os.environ

    remote = RemoteStorageConfig(
        access_key_id=_get(environ, "S3_ACCESS_KEY_ID"),
        secret_access_key=_get(environ, "S3_SECRET_ACCESS_KEY"),
        bucket=_get(environ, "S3_BUCKET"),
        file_name=_get(environ, "S3_SESSION_FILE", DEFAULT_REMOTE_FILE),
        region=_get(environ, "S3_REGION", DEFAULT_S3_REGION),
        prefix=_get(environ, "S3_PREFIX", DEFAULT_S3_PREFIX).strip("/"),
        endpoint_url=_get(environ, "S3_ENDPOINT_URL") or None,
    )

    mode = _get(environ, "MODE", "private").lower()
    if mode not in MODES:
        raise ConfigurationIncomplete(
            f"MODE must be one of {', '.join(MODES)}, got '{mode}'"
        )

    port = _get(environ, "PORT", str(DEFAULT_PORT))
    try:
        port_number = int(port)
    except ValueError:
        raise ConfigurationIncomplete(f"PORT must be an integer, got '{port}'")

    return SessionConfig(
        remote=remote,
        legacy_session_id=_get(environ, "SESSION_ID"),
        session_dir=Path(_get(environ, "SESSION_DIR", DEFAULT_SESSION_DIR)),
        mode=mode,
        port=port_number,
        log_level=_get(environ, "LOG_LEVEL", "INFO").upper(),
        client=_get(environ, "SESSION_CLIENT") or None,
    )
