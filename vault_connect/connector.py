"""
Browser Extension Connector — the only entry/exit point for envelopes.

Extensions connect over a WebSocket bound to a loopback interface and send
JSON text frames tagged ``kwConnect: "request"``. Each frame is answered on
the same socket with exactly one ``kwConnect: "response"`` frame.

Frames from an unexpected origin or a non-loopback address, and frames that
are not requests, are dropped without a reply.
"""
import logging
from collections.abc import Mapping
from typing import Any, Optional

import orjson
from aiohttp import hdrs, web, WSMsgType

from .config import ConnectorConfig, is_loopback
from .protocol.dispatcher import Dispatcher
from .protocol.models import REQUEST, RESPONSE
from .protocol.registry import SessionRegistry

logger = logging.getLogger("vault_connect.connector")


class BrowserExtensionConnector:
    """Listens for extension requests and answers them.

    The connector owns the SessionRegistry; sessions outlive ``stop()`` and
    ``start()`` for as long as the connector object exists.

    Args:
        config: Listener settings, defaults to ``ConnectorConfig()``.
        dispatcher: Optional prebuilt dispatcher; its registry is adopted.
    """

    def __init__(
        self,
        config: Optional[ConnectorConfig] = None,
        dispatcher: Optional[Dispatcher] = None,
    ):
        self.config = config or ConnectorConfig()
        if dispatcher is None:
            self.registry = SessionRegistry()
            self.dispatcher = Dispatcher(self.registry)
        else:
            self.registry = dispatcher.registry
            self.dispatcher = dispatcher
        self._runner: Optional[web.AppRunner] = None

    @property
    def running(self) -> bool:
        return self._runner is not None

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    def accepts(self, origin: Optional[str], remote: Optional[str]) -> bool:
        """Check that a message was sent from our origin on this machine."""
        if origin != self.config.origin:
            return False
        return bool(remote) and is_loopback(remote)

    def handle(
        self, data: Any, origin: Optional[str], remote: Optional[str]
    ) -> Optional[dict]:
        """Process one inbound message.

        Returns:
            The tagged response, or None when the message must be dropped.
        """
        if not self.accepts(origin, remote):
            logger.debug("Dropped message from origin=%r remote=%r", origin, remote)
            return None
        if not isinstance(data, Mapping) or data.get("kwConnect") != REQUEST:
            logger.debug("Dropped message without request marker")
            return None
        response = self.dispatcher.dispatch(data) or {}
        response["kwConnect"] = RESPONSE
        return response

    async def websocket_handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        origin = request.headers.get(hdrs.ORIGIN)
        remote = request.remote
        logger.debug("Extension socket opened: origin=%r remote=%r", origin, remote)

        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                try:
                    data = orjson.loads(msg.data)
                except orjson.JSONDecodeError:
                    logger.debug("Dropped undecodable frame")
                    continue
                response = self.handle(data, origin, remote)
                if response is not None:
                    await ws.send_str(orjson.dumps(response).decode("utf-8"))
            elif msg.type == WSMsgType.ERROR:
                logger.warning(
                    "Extension socket closed with exception: %s", ws.exception()
                )

        logger.debug("Extension socket closed: origin=%r", origin)
        return ws

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get(self.config.path, self.websocket_handler)
        return app

    async def init(self) -> None:
        """Start listening if the connector is enabled in configuration."""
        if self.config.enabled:
            await self.start()

    async def start(self) -> None:
        if self.running:
            return
        runner = web.AppRunner(self.make_app())
        await runner.setup()
        site = web.TCPSite(runner, self.config.host, self.config.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        logger.info(
            "Browser extension connector listening on ws://%s:%d%s",
            self.config.host, self.config.port, self.config.path,
        )

    async def stop(self) -> None:
        if not self.running:
            return
        runner, self._runner = self._runner, None
        await runner.cleanup()
        logger.info("Browser extension connector stopped")

    async def set_enabled(self, enabled: bool) -> None:
        """Apply a change of the ``enabled`` setting."""
        self.config = self.config.model_copy(update={"enabled": enabled})
        if enabled:
            await self.start()
        else:
            await self.stop()
