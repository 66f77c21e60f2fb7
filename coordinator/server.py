"""
Static asset server for the browser benchmark page.

Serves the page bundled in coordinator/public/ and sets the cross-origin
isolation headers on every response. Browsers only expose shared-memory
buffers to worker threads when a page is cross-origin isolated.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
import uvicorn

from coordinator.config import DEFAULT_PUBLIC_DIR


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


CROSS_ORIGIN_ISOLATION_HEADERS = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Embedder-Policy": "require-corp",
}


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field("healthy", description="Server status")


def create_app(public_dir: Optional[str] = None) -> FastAPI:
    """
    Build the asset server app.

    Args:
        public_dir: Directory to serve (defaults to the bundled public/)

    Returns:
        FastAPI application
    """
    directory = public_dir or DEFAULT_PUBLIC_DIR

    app = FastAPI(
        title="Iteration Benchmark Assets",
        description="Static files for the records-vs-vec benchmark page",
        version="0.1.0"
    )

    @app.middleware("http")
    async def cross_origin_isolation(request: Request, call_next):
        logger.info(f"[inbound request]: requested {request.url.path}")
        response = await call_next(request)
        for name, value in CROSS_ORIGIN_ISOLATION_HEADERS.items():
            response.headers[name] = value
        return response

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint."""
        return HealthResponse()

    # Mounted last so /health is matched first
    app.mount("/", StaticFiles(directory=directory, html=True), name="public")

    logger.debug(f"Serving files from: {directory}")
    return app


app = create_app()


# Development server

def run_server(host: str = "0.0.0.0", port: int = 8181, public_dir: Optional[str] = None):
    """
    Run the asset server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 8181)
        public_dir: Directory to serve
    """
    server_app = app if public_dir is None else create_app(public_dir)
    logger.info(f"app is listening on: http://localhost:{port}")
    uvicorn.run(server_app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_server()
