"""FastAPI application for EthStream backend"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ethstream.config import Settings, settings as default_settings
from ethstream.services.runtime import StreamRuntime
from ethstream.api import nodes, stream

# Configure logging
log_level = getattr(logging, default_settings.log_level.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
# Align key loggers with configured level
logging.getLogger("ethstream").setLevel(log_level)
logging.getLogger("uvicorn").setLevel(log_level)
logging.getLogger("uvicorn.access").setLevel(log_level)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    rpc_transport: Optional[httpx.AsyncBaseTransport] = None,
    discovery_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the application; transports are only overridden in tests."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifecycle manager for startup/shutdown"""
        # Startup
        logger.info("Starting EthStream backend...")
        runtime = StreamRuntime.build(
            settings,
            rpc_transport=rpc_transport,
            discovery_transport=discovery_transport,
        )
        app.state.runtime = runtime
        runtime.start()
        logger.info(f"Stream runtime initialized with {runtime.pool.size()} seed endpoints")

        yield

        # Shutdown
        logger.info("Shutting down EthStream backend...")
        await runtime.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Filtered Ethereum transaction streaming over a pool of public JSON-RPC nodes",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(stream.router, prefix="/ws", tags=["Stream"])
    app.include_router(nodes.router, prefix="/api", tags=["Nodes"])

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "status": "running",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
        access_log=True,
    )
