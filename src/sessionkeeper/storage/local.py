import asyncio
import os
import uuid
from pathlib import Path

import aiofiles
import aiofiles.os

from sessionkeeper.config import CREDS_FILENAME


class CredentialStore:
    def __init__(self, session_dir: Path, creds_filename: str = CREDS_FILENAME):
        self.session_dir = session_dir
        self.creds_path = session_dir / creds_filename

    def exists(self) -> bool:
        return self.creds_path.is_file()

    def ensure_dir(self) -> None:
        self.session_dir.mkdir(parents=True, exist_ok=True)

    async def read(self) -> bytes:
        async with aiofiles.open(self.creds_path, "rb") as f:
            return await f.read()

    async def write(self, content: bytes | str) -> Path:
        if isinstance(content, str):
            content = content.encode("utf-8")

        self.ensure_dir()
        tmp_path = self.session_dir / f".{self.creds_path.name}.{uuid.uuid4().hex}.tmp"
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(content)
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            await aiofiles.os.replace(tmp_path, self.creds_path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        return self.creds_path
