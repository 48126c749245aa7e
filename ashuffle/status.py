"""
Optional HTTP status page for a running ashuffle.

Enabled with --status-port (or "status": {"port": N} in config.json):

  GET /status  — pool size, window, queue buffer and loop mode as JSON

The server runs on the same event loop as the idle loop and only reads
state, so it needs no locking.
"""

import logging

from aiohttp import web

from .args import Options
from .loop import LoopState
from .shuffle import ShuffleChain

log = logging.getLogger(__name__)


class StatusServer:
    def __init__(self, chain: ShuffleChain, options: Options, state: LoopState,
                 host: str = "0.0.0.0", port: int = 0):
        self.chain = chain
        self.options = options
        self.state = state
        self.host = host
        self.port = port
        self._runner: web.AppRunner | None = None

    def snapshot(self) -> dict:
        return {
            "groups": self.chain.len(),
            "songs": self.chain.len_uris(),
            "window_size": self.chain.window_size,
            "queue_buffer": self.options.queue_buffer,
            "mode": self.state.mode.value,
            "enqueued": self.state.enqueued,
            "reloads": self.state.reloads,
        }

    def _cors_headers(self):
        return {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "GET, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        }

    async def _handle_status(self, request: web.Request) -> web.Response:
        return web.json_response(self.snapshot(), headers=self._cors_headers())

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/status", self._handle_status)
        return app

    async def start(self):
        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        log.info("Status page on http://%s:%d/status", self.host, self.port)

    async def stop(self):
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
