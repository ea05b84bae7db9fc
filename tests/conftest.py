import tempfile
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from loguru import logger

from sessionkeeper.errors import SourceUnavailable
from sessionkeeper.storage.backend import RemoteEntry
from sessionkeeper.storage.local import CredentialStore


class InMemoryHandle:
    def __init__(self, backend: "InMemoryBackend"):
        self.backend = backend

    async def list_entries(self) -> list[RemoteEntry]:
        self.backend.calls.append("list")
        return [
            RemoteEntry(name=name, ref=ref, size=len(content), modified=modified)
            for ref, (name, content, modified) in self.backend.objects.items()
        ]

    async def download(self, entry: RemoteEntry) -> bytes:
        self.backend.calls.append("download")
        return self.backend.objects[entry.ref][1]

    async def upload(self, name, content, size=None) -> RemoteEntry:
        self.backend.calls.append("upload")
        if self.backend.fail_upload:
            raise SourceUnavailable("upload rejected")
        return self.backend.put(name, content)

    async def delete(self, entry: RemoteEntry) -> None:
        self.backend.calls.append("delete")
        if not self.backend.supports_delete:
            raise NotImplementedError
        del self.backend.objects[entry.ref]


class InMemoryBackend:
    def __init__(self, supports_delete: bool = True):
        self.objects: dict[str, tuple[str, bytes, datetime]] = {}
        self.calls: list[str] = []
        self.supports_delete = supports_delete
        self.fail_upload = False
        self.connect_error: Exception | None = None
        self.connects = 0
        self.releases = 0
        self._counter = 0
        self._epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def put(self, name: str, content: bytes) -> RemoteEntry:
        self._counter += 1
        ref = f"sessions/{name}#{self._counter}"
        modified = self._epoch + timedelta(seconds=self._counter)
        self.objects[ref] = (name, content, modified)
        return RemoteEntry(name=name, ref=ref, size=len(content), modified=modified)

    def contents_named(self, name: str) -> list[bytes]:
        return [content for n, content, _ in self.objects.values() if n == name]

    @asynccontextmanager
    async def connect(self):
        self.connects += 1
        if self.connect_error is not None:
            raise self.connect_error
        try:
            yield InMemoryHandle(self)
        finally:
            self.releases += 1


class FakePasteBackend:
    def __init__(self, content: str | None = None, error: Exception | None = None):
        self.content = content
        self.error = error
        self.requested: list[str] = []

    async def fetch_session(self, session_id: str) -> str:
        self.requested.append(session_id)
        if self.error is not None:
            raise self.error
        return self.content


@pytest.fixture
def temp_session_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "session"


@pytest.fixture
def store(temp_session_dir):
    return CredentialStore(temp_session_dir)


@pytest.fixture
def create_remote_backend():
    return InMemoryBackend


@pytest.fixture
def create_paste_backend():
    return FakePasteBackend


@pytest.fixture
def remote_backend(create_remote_backend):
    return create_remote_backend()


@pytest.fixture
def log_records():
    records = []
    handler_id = logger.add(
        lambda message: records.append(
            (message.record["level"].name, message.record["message"])
        ),
        level="DEBUG",
    )
    yield records
    logger.remove(handler_id)
