import asyncio
import signal
from typing import Optional

import uvicorn
from fastapi import FastAPI
from loguru import logger

from sessionkeeper.bootstrap import BootstrapController


def create_app(controller: Optional[BootstrapController] = None) -> FastAPI:
    app = FastAPI(title="sessionkeeper")

    @app.get("/")
    async def health():
        state = controller.state if controller is not None else None
        return {
            "status": "ok",
            "session_state": state.value if state is not None else None,
        }

    return app


class SessionKeeperServer:
    """Runs the bootstrap controller next to the HTTP health endpoint."""

    def __init__(self, controller: BootstrapController, host: str = "0.0.0.0", port: int = 3000):
        self.controller = controller
        self.host = host
        self.port = port
        self.http_server: Optional[uvicorn.Server] = None
        self._stopping = False

    def _create_http_server(self) -> uvicorn.Server:
        config = uvicorn.Config(
            create_app(self.controller),
            host=self.host,
            port=self.port,
            log_level="warning",
            access_log=False,
        )
        return uvicorn.Server(config)

    async def start_http(self):
        if self.http_server is None:
            self.http_server = self._create_http_server()
        logger.info(f"Health endpoint listening on http://{self.host}:{self.port}")
        await self.http_server.serve()

    async def start(self):
        """Serve until either side finishes, then shut both down.

        A ``CriticalStartupFailure`` from the controller is re-raised once the
        HTTP server has exited.
        """
        self.http_server = self._create_http_server()
        http_task = asyncio.create_task(self.start_http())
        controller_task = asyncio.create_task(self.controller.run())

        await asyncio.wait(
            {http_task, controller_task}, return_when=asyncio.FIRST_COMPLETED
        )
        await self.stop()
        await asyncio.wait({http_task, controller_task})
        controller_task.result()
        http_task.result()

    async def stop(self):
        if self._stopping:
            return
        self._stopping = True
        logger.info("Shutting down")

        self.controller.stop()
        if self.http_server:
            self.http_server.should_exit = True
            await asyncio.sleep(0.1)


async def run_server_async(controller: BootstrapController, host: str, port: int):
    server = SessionKeeperServer(controller, host=host, port=port)

    loop = asyncio.get_running_loop()

    def handle_shutdown(signum):
        logger.info(f"Received signal {signum}, shutting down...")
        asyncio.create_task(server.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_shutdown(s))

    await server.start()


def run_server(controller: BootstrapController, host: str = "0.0.0.0", port: int = 3000):
    asyncio.run(run_server_async(controller, host, port))
