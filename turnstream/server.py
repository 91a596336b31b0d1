"""Built-in HTTP/WebSocket server for turnstream.

Provides a FastAPI application that accepts custom-LLM websocket
connections from the voice platform at ``{websocket_path}/{call_id}`` and
hands each one to the CallHandler. Also exposes health and status
endpoints.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from loguru import logger

from turnstream import __version__
from turnstream.config import AppConfig, load_config
from turnstream.handler import CallHandler
from turnstream.transports.base import BaseTransport, TransportClosed


class FastAPIWebSocketTransport(BaseTransport):
    """Adapter to make FastAPI's WebSocket work with the transport interface."""

    def __init__(self, ws: WebSocket):
        self._ws = ws
        self._connected = True

    async def send(self, data: str) -> None:
        if not self._connected:
            raise TransportClosed("WebSocket already closed")
        try:
            await self._ws.send_text(data)
        except WebSocketDisconnect as e:
            self._connected = False
            raise TransportClosed(f"WebSocket closed ({e.code})") from e

    async def recv(self) -> str:
        msg = await self._ws.receive()
        if msg["type"] == "websocket.disconnect":
            self._connected = False
            raise TransportClosed(f"WebSocket closed ({msg.get('code')})")
        if msg.get("text") is not None:
            return msg["text"]
        if msg.get("bytes") is not None:
            return msg["bytes"].decode("utf-8")
        raise TransportClosed("Unexpected WebSocket message type")

    async def disconnect(self) -> None:
        if not self._connected:
            return
        self._connected = False
        try:
            await self._ws.close()
        except RuntimeError as e:
            logger.debug(f"WebSocket close after disconnect: {e}")

    def is_connected(self) -> bool:
        return self._connected


def create_app(
    config: AppConfig | dict | str | Path | None = None,
    handler: CallHandler | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: App configuration (YAML path, dict, or AppConfig).
        handler: Optional prebuilt CallHandler (its config wins).

    Returns:
        A FastAPI application instance.
    """
    call_handler = handler or CallHandler(load_config(config))
    app_config = call_handler.config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await call_handler.start()
        try:
            yield
        finally:
            await call_handler.close()

    app = FastAPI(
        title="turnstream",
        description="Streaming custom-LLM server for voice agents",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.handler = call_handler

    @app.get("/health")
    async def health():
        return JSONResponse({
            "status": "ok",
            "active_calls": call_handler.sessions.active_count,
        })

    @app.get("/status")
    async def status():
        sessions: list[dict[str, Any]] = []
        for s in call_handler.sessions.all_sessions:
            sessions.append({
                "session_id": s.session_id,
                "call_id": s.call_id,
                "is_active": s.is_active,
                "turns_handled": s.turns_handled,
                "has_contact": bool(s.contact_summary),
                "duration_ms": s.duration_ms,
            })
        return JSONResponse({
            "llm_provider": app_config.llm.provider,
            "model": app_config.llm.model,
            "active_calls": call_handler.sessions.active_count,
            "sessions": sessions,
        })

    path = app_config.server.websocket_path.rstrip("/")

    @app.websocket(path + "/{call_id}")
    async def llm_websocket(websocket: WebSocket, call_id: str):
        await websocket.accept()
        contact = websocket.query_params.get("contact")
        logger.info(f"Channel connected: call={call_id} from {websocket.client}")

        transport = FastAPIWebSocketTransport(websocket)
        try:
            await call_handler.handle_connection(transport, call_id=call_id, contact=contact)
        except Exception as e:
            logger.error(f"WebSocket handler error for call {call_id}: {e}")
        finally:
            await transport.disconnect()
            logger.info(f"Channel finished: call={call_id}")

    return app


def run_server(
    config: AppConfig | dict | str | Path | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Run the turnstream server with uvicorn.

    Args:
        config: App configuration.
        host: Override the listen host.
        port: Override the listen port.
    """
    app_config = load_config(config)
    app = create_app(app_config)

    uvicorn.run(
        app,
        host=host or app_config.server.host,
        port=port or app_config.server.port,
        log_level=app_config.logging.level.lower(),
    )
