import importlib
from pathlib import Path
from typing import Callable, Protocol, runtime_checkable

from sessionkeeper.config import SessionConfig
from sessionkeeper.errors import ConfigurationIncomplete


@runtime_checkable
class ConnectionClient(Protocol):
    """The long-lived protocol client that consumes the session directory.

    ``on_credentials_rotated`` must be called every time the client rewrites
    the credential files in ``session_dir``. ``start()`` may return once the
    connection is up or keep running until it is cancelled.
    """

    async def start(
        self,
        session_dir: Path,
        *,
        interactive_auth: bool,
        on_credentials_rotated: Callable[[], None],
    ) -> None: ...


ClientFactory = Callable[[SessionConfig], ConnectionClient]


def load_client_factory(import_path: str) -> ClientFactory:
    """Import a client factory from a ``package.module:attribute`` path."""
    module_name, sep, attr = import_path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationIncomplete(
            f"Client must be given as 'module:factory', got '{import_path}'"
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationIncomplete(f"Could not import client module '{module_name}': {e}") from e

    factory = module
    for part in attr.split("."):
        try:
            factory = getattr(factory, part)
        except AttributeError as e:
            raise ConfigurationIncomplete(
                f"Module '{module_name}' has no attribute '{attr}'"
            ) from e

    if not callable(factory):
        raise ConfigurationIncomplete(f"'{import_path}' is not callable")
    return factory
