import asyncio
from enum import Enum
from typing import Optional

from loguru import logger

from sessionkeeper.acquirer import SessionAcquirer
from sessionkeeper.client import ConnectionClient
from sessionkeeper.errors import CriticalStartupFailure
from sessionkeeper.publisher import SessionPublisher
from sessionkeeper.storage.local import CredentialStore

_STOP = object()


class BootstrapState(str, Enum):
    HAS_LOCAL_SESSION = "has_local_session"
    NEEDS_ACQUISITION = "needs_acquisition"
    NEEDS_INTERACTIVE_AUTH = "needs_interactive_auth"


class BootstrapController:
    def __init__(
        self,
        store: CredentialStore,
        acquirer: SessionAcquirer,
        publisher: SessionPublisher,
        client: ConnectionClient,
    ):
        self.store = store
        self.acquirer = acquirer
        self.publisher = publisher
        self.client = client
        self.state: Optional[BootstrapState] = None
        self._rotations: asyncio.Queue = asyncio.Queue()

    async def bootstrap(self) -> BootstrapState:
        if self.store.exists():
            self.state = BootstrapState.HAS_LOCAL_SESSION
            logger.info("Session file found, starting without interactive authentication")
        else:
            self.state = BootstrapState.NEEDS_ACQUISITION
            result = await self.acquirer.acquire()
            if result.found:
                logger.info(f"Session downloaded from {result.source}, starting client")
            else:
                self.state = BootstrapState.NEEDS_INTERACTIVE_AUTH
                logger.info(
                    "No session found or downloaded, the client will ask for interactive pairing"
                )

        await self._start_client(
            interactive_auth=self.state is BootstrapState.NEEDS_INTERACTIVE_AUTH
        )
        return self.state

    async def _start_client(self, interactive_auth: bool) -> None:
        self.store.ensure_dir()
        try:
            await self.client.start(
                self.store.session_dir,
                interactive_auth=interactive_auth,
                on_credentials_rotated=self.notify_credentials_rotated,
            )
        except Exception as e:
            raise CriticalStartupFailure(f"Connection client failed to start: {e}") from e

    def notify_credentials_rotated(self) -> None:
        self._rotations.put_nowait(True)

    async def handle_rotation(self) -> bool:
        logger.info("Credentials rotated, uploading updated session")
        try:
            return await self.publisher.publish()
        except Exception as e:
            logger.error(f"Failed to upload session after credentials update: {e}")
            return False

    async def process_rotations(self) -> None:
        while True:
            item = await self._rotations.get()
            try:
                if item is _STOP:
                    return
                await self.handle_rotation()
            finally:
                self._rotations.task_done()

    async def run(self) -> None:
        """Bootstrap the client while consuming rotation notifications.

        ``client.start()`` may keep running for the lifetime of the
        connection, so rotations are handled concurrently with it. Returns
        after ``stop()``; a ``CriticalStartupFailure`` from the client
        propagates.
        """
        rotations = asyncio.create_task(self.process_rotations())
        startup = asyncio.create_task(self.bootstrap())
        try:
            await asyncio.wait({rotations, startup}, return_when=asyncio.FIRST_COMPLETED)
            if startup.done():
                startup.result()
                await rotations
        finally:
            pending = [t for t in (rotations, startup) if not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def stop(self) -> None:
        self._rotations.put_nowait(_STOP)
