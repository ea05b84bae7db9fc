from sessionkeeper.storage.backend import (
    RemoteEntry,
    RemoteHandle,
    RemoteSessionBackend,
    find_entry,
)
from sessionkeeper.storage.local import CredentialStore
from sessionkeeper.storage.paste import PasteBackend
from sessionkeeper.storage.s3 import S3SessionBackend

__all__ = [
    "RemoteEntry",
    "RemoteHandle",
    "RemoteSessionBackend",
    "find_entry",
    "CredentialStore",
    "PasteBackend",
    "S3SessionBackend",
]
