from sessionkeeper.acquirer import AcquisitionResult, AcquisitionStatus, SessionAcquirer
from sessionkeeper.bootstrap import BootstrapController, BootstrapState
from sessionkeeper.client import ConnectionClient
from sessionkeeper.config import SessionConfig, load_config
from sessionkeeper.publisher import SessionPublisher
from sessionkeeper.storage import CredentialStore

__all__ = [
    "AcquisitionResult",
    "AcquisitionStatus",
    "SessionAcquirer",
    "BootstrapController",
    "BootstrapState",
    "ConnectionClient",
    "SessionConfig",
    "load_config",
    "SessionPublisher",
    "CredentialStore",
]
