"""Transcript consumers: terminal output and a WebSocket push server."""

import logging
import sys
from datetime import datetime

from shared.core import LiveTranscriptUpdate

from .errors import ConsumerUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_WS_HOST = "127.0.0.1"
DEFAULT_WS_PORT = 8765


class ConsoleConsumer:
    """Prints each update as a timestamped caption line."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    async def deliver(self, update: LiveTranscriptUpdate):
        stamp = datetime.fromtimestamp(update.emitted_at).strftime("%H:%M:%S")
        print(f"[{stamp}] {update.text}", file=self.stream, flush=True)


class WebSocketConsumer:
    """Pushes updates to the most recently connected WebSocket client.

    Protocol (server → client, JSON text frames):
        {"type": "LIVE_TRANSCRIPT_UPDATE", "text": "...", "emitted_at": 1700000000.0}
    """

    def __init__(self, host: str = DEFAULT_WS_HOST, port: int = DEFAULT_WS_PORT):
        self.host = host
        self.port = port
        self._clients: list = []
        self._server = None

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def uri(self) -> str:
        return f"ws://{self.host}:{self.port}"

    async def start(self):
        import websockets

        self._server = await websockets.serve(self._handler, self.host, self.port)
        logger.info(f"Transcript server listening on {self.uri}")

    async def _handler(self, ws):
        self._clients.append(ws)
        logger.info(f"Consumer connected ({len(self._clients)} total)")
        try:
            await ws.wait_closed()
        finally:
            if ws in self._clients:
                self._clients.remove(ws)
            logger.info(f"Consumer disconnected ({len(self._clients)} left)")

    async def deliver(self, update: LiveTranscriptUpdate):
        """
        Raises:
            ConsumerUnavailableError: No client is connected
        """
        import websockets

        if not self._clients:
            raise ConsumerUnavailableError()

        ws = self._clients[-1]
        try:
            await ws.send(update.model_dump_json())
        except websockets.ConnectionClosed as e:
            if ws in self._clients:
                self._clients.remove(ws)
            raise ConsumerUnavailableError() from e

    async def close(self):
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None
        self._clients.clear()
