from dataclasses import dataclass
from datetime import datetime
from typing import AsyncContextManager, BinaryIO, Optional, Protocol, runtime_checkable


@dataclass
class RemoteEntry:
    name: str
    ref: str
    size: Optional[int] = None
    modified: Optional[datetime] = None


@runtime_checkable
class RemoteHandle(Protocol):
    async def list_entries(self) -> list[RemoteEntry]: ...

    async def download(self, entry: RemoteEntry) -> bytes: ...

    async def upload(
        self, name: str, content: bytes | BinaryIO, size: Optional[int] = None
    ) -> RemoteEntry: ...

    async def delete(self, entry: RemoteEntry) -> None: ...


@runtime_checkable
class RemoteSessionBackend(Protocol):
    def connect(self) -> AsyncContextManager[RemoteHandle]: ...


def find_entries(entries: list[RemoteEntry], name: str) -> list[RemoteEntry]:
    return [e for e in entries if e.name == name]


def find_entry(entries: list[RemoteEntry], name: str) -> Optional[RemoteEntry]:
    """Return the most recently modified entry called ``name``.

    Providers that cannot delete may end up holding several entries with the
    same name; the newest one wins.
    """
    matches = find_entries(entries, name)
    if not matches:
        return None
    dated = [e for e in matches if e.modified is not None]
    if dated:
        return max(dated, key=lambda e: e.modified)
    return matches[-1]
