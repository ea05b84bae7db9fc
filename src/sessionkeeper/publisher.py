import asyncio
from pathlib import Path
from typing import Optional

import aiofiles
from loguru import logger

from sessionkeeper.config import SessionConfig
from sessionkeeper.errors import PublishFailure
from sessionkeeper.storage.backend import RemoteHandle, RemoteSessionBackend, find_entries
from sessionkeeper.storage.local import CredentialStore
from sessionkeeper.storage.s3 import S3SessionBackend


class SessionPublisher:
    """Push the local session to remote storage, replacing any previous copy.

    Publishes are serialized so that concurrent rotation events cannot
    interleave their delete and upload steps.
    """

    def __init__(
        self,
        store: CredentialStore,
        remote_backend: Optional[RemoteSessionBackend] = None,
        remote_file_name: str = "session.json",
    ):
        self.store = store
        self.remote_backend = remote_backend
        self.remote_file_name = remote_file_name
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: SessionConfig, store: CredentialStore) -> "SessionPublisher":
        remote_backend = (
            S3SessionBackend.from_config(config.remote) if config.remote.available else None
        )
        return cls(store, remote_backend, config.remote.file_name)

    async def publish(self, local_path: Optional[Path] = None) -> bool:
        local_path = local_path or self.store.creds_path

        if self.remote_backend is None:
            logger.debug("Remote storage not configured, skipping session upload")
            return False

        if not local_path.is_file():
            logger.debug(f"No local session file to upload at {local_path}")
            return False

        async with self._lock:
            try:
                await self._replace_remote_copy(local_path)
            except Exception as e:
                logger.error(f"Failed to upload session to remote storage: {e}")
                return False

        logger.info(f"Session uploaded to remote storage as '{self.remote_file_name}'")
        return True

    async def _replace_remote_copy(self, local_path: Path) -> None:
        async with aiofiles.open(local_path, "rb") as f:
            content = await f.read()

        async with self.remote_backend.connect() as handle:
            await self._delete_existing(handle)
            try:
                await handle.upload(self.remote_file_name, content, size=len(content))
            except Exception as e:
                raise PublishFailure(f"upload of '{self.remote_file_name}' failed: {e}") from e

    async def _delete_existing(self, handle: RemoteHandle) -> None:
        existing = find_entries(await handle.list_entries(), self.remote_file_name)
        for entry in existing:
            logger.debug(f"Removing existing remote session file {entry.ref}")
            try:
                await handle.delete(entry)
            except NotImplementedError:
                logger.warning(
                    "Remote storage cannot delete files, uploading alongside the old copy"
                )
                return
            except Exception as e:
                raise PublishFailure(f"delete of {entry.ref} failed: {e}") from e
