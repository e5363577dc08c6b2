"""
Remoted signaling server — FastAPI application entry point.

Hosts and clients connect over a WebSocket, register, discover each other and
exchange the WebRTC handshake through this server. The media and control
stream that follows is peer-to-peer and never passes through here.
"""

import logging
import ssl
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket

from api.routes import router
from api.websocket import WebSocketSession
from config import API_HOST, API_PORT, LOG_LEVEL, SSL_CERT_PATH, SSL_KEY_PATH
from signaling.registry import ConnectionRegistry
from signaling.router import MessageRouter
from signaling.supervisor import LifecycleSupervisor

# --- Logging ---
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def resolve_ssl_options(key_path: str | None, cert_path: str | None) -> dict:
    """
    Return uvicorn TLS options, or {} to listen in plaintext.

    A certificate that cannot be loaded is not fatal: the server falls back
    to plaintext and says so loudly.
    """
    if not key_path and not cert_path:
        return {}
    if not key_path or not cert_path:
        logger.warning(
            "Both SSL_KEY_PATH and SSL_CERT_PATH are required for TLS; "
            "starting in plaintext (ws://) mode"
        )
        return {}

    try:
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        context.load_cert_chain(certfile=cert_path, keyfile=key_path)
    except (OSError, ssl.SSLError) as e:
        logger.warning(f"Failed to load TLS certificate: {e}")
        logger.warning("Falling back to plaintext (ws://) mode")
        return {}

    return {"ssl_keyfile": key_path, "ssl_certfile": cert_path}


def create_app() -> FastAPI:
    """Build the app together with its own registry, supervisor and router."""
    registry = ConnectionRegistry()
    supervisor = LifecycleSupervisor(registry)
    message_router = MessageRouter(registry, supervisor)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting signaling server...")
        try:
            yield
        finally:
            logger.info("Shutting down signaling server...")
            await registry.shutdown()

    app = FastAPI(
        title="Remoted Signaling Server",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.supervisor = supervisor
    app.state.router = message_router
    app.include_router(router)

    @app.websocket("/")
    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        session = WebSocketSession(websocket)
        await session.accept()
        supervisor.on_connect(session)
        await session.serve(message_router.route, supervisor.close)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    ssl_options = resolve_ssl_options(SSL_KEY_PATH, SSL_CERT_PATH)
    scheme = "wss" if ssl_options else "ws"
    logger.info(f"Signaling server listening on {scheme}://{API_HOST}:{API_PORT}")

    uvicorn.run(
        app,
        host=API_HOST,
        port=API_PORT,
        log_level="info",
        **ssl_options,
    )


if __name__ == "__main__":
    run()
