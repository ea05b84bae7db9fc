from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from loguru import logger

from sessionkeeper.config import SessionConfig
from sessionkeeper.storage.backend import RemoteSessionBackend, find_entry
from sessionkeeper.storage.local import CredentialStore
from sessionkeeper.storage.paste import PasteBackend
from sessionkeeper.storage.s3 import S3SessionBackend

REMOTE_SOURCE = "remote"
LEGACY_SOURCE = "legacy-paste"


class AcquisitionStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class AcquisitionResult:
    status: AcquisitionStatus
    source: Optional[str] = None
    path: Optional[Path] = None

    @property
    def found(self) -> bool:
        return self.status is AcquisitionStatus.FOUND

    @classmethod
    def found_at(cls, source: str, path: Path) -> "AcquisitionResult":
        return cls(AcquisitionStatus.FOUND, source, path)

    @classmethod
    def not_found(cls, source: Optional[str] = None) -> "AcquisitionResult":
        return cls(AcquisitionStatus.NOT_FOUND, source)

    @classmethod
    def unavailable(cls, source: str) -> "AcquisitionResult":
        return cls(AcquisitionStatus.UNAVAILABLE, source)


class SessionAcquirer:
    """Locate a session and write it to the local credential path.

    Sources are tried in order (remote storage, then the legacy paste
    service) and the first one that yields a session wins. A failing source
    is logged and skipped; it never aborts the chain.
    """

    def __init__(
        self,
        store: CredentialStore,
        remote_backend: Optional[RemoteSessionBackend] = None,
        remote_file_name: str = "session.json",
        paste_backend: Optional[PasteBackend] = None,
        legacy_session_id: str = "",
    ):
        self.store = store
        self.remote_backend = remote_backend
        self.remote_file_name = remote_file_name
        self.paste_backend = paste_backend
        self.legacy_session_id = legacy_session_id

    @classmethod
    def from_config(cls, config: SessionConfig, store: CredentialStore) -> "SessionAcquirer":
        remote_backend = (
            S3SessionBackend.from_config(config.remote) if config.remote.available else None
        )
        return cls(
            store,
            remote_backend=remote_backend,
            remote_file_name=config.remote.file_name,
            paste_backend=PasteBackend() if config.legacy_available else None,
            legacy_session_id=config.legacy_session_id,
        )

    async def acquire(self) -> AcquisitionResult:
        results = []
        for attempt in (self._from_remote_storage, self._from_legacy_paste):
            result = await attempt()
            if result.found:
                return result
            results.append(result)

        if all(r.status is AcquisitionStatus.UNAVAILABLE for r in results):
            logger.error(
                "No session source configured: set S3_ACCESS_KEY_ID, S3_SECRET_ACCESS_KEY "
                "and S3_BUCKET, or SESSION_ID"
            )
        else:
            logger.warning("No session could be downloaded from any configured source")
        return AcquisitionResult.not_found()

    async def _from_remote_storage(self) -> AcquisitionResult:
        if self.remote_backend is None:
            return AcquisitionResult.unavailable(REMOTE_SOURCE)

        try:
            async with self.remote_backend.connect() as handle:
                entry = find_entry(await handle.list_entries(), self.remote_file_name)
                if entry is None:
                    logger.info(
                        f"Session file '{self.remote_file_name}' not found in remote storage"
                    )
                    return AcquisitionResult.not_found(REMOTE_SOURCE)

                logger.info(f"Downloading session file from remote storage: {entry.ref}")
                content = await handle.download(entry)
                path = await self.store.write(content)
        except Exception as e:
            logger.error(f"Failed to download session from remote storage: {e}")
            return AcquisitionResult.not_found(REMOTE_SOURCE)

        logger.info(f"Session loaded from remote storage to {path}")
        return AcquisitionResult.found_at(REMOTE_SOURCE, path)

    async def _from_legacy_paste(self) -> AcquisitionResult:
        if self.paste_backend is None or not self.legacy_session_id:
            return AcquisitionResult.unavailable(LEGACY_SOURCE)

        if self.remote_backend is not None:
            logger.info("Falling back to legacy paste session download")

        try:
            content = await self.paste_backend.fetch_session(self.legacy_session_id)
            path = await self.store.write(content)
        except Exception as e:
            logger.error(f"Failed to download session from legacy paste: {e}")
            return AcquisitionResult.not_found(LEGACY_SOURCE)

        logger.info(f"Session loaded from legacy paste to {path}")
        return AcquisitionResult.found_at(LEGACY_SOURCE, path)
