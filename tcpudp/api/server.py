"""
FastAPI server for the command sender

Provides REST API for:
- Target configuration (TCP/UDP, host, port)
- The send action and its field definitions
- Connection status and variables
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from tcpudp import __version__
from tcpudp.api.deps import get_sender
from tcpudp.api.routes import ROUTERS
from tcpudp.config import settings
from tcpudp.exceptions import ConfigurationError, SenderError
from tcpudp.models import ConnectionConfig

logger = structlog.get_logger()


def initial_config() -> ConnectionConfig:
    """Target configured through TCPUDP_TARGET_* settings."""
    try:
        return ConnectionConfig(
            host=settings.target_host,
            port=settings.target_port,
            transport=settings.target_transport,
        )
    except ValidationError as e:
        raise ConfigurationError("Invalid target settings", details={"errors": e.errors()})


@asynccontextmanager
async def lifespan(app: FastAPI):
    sender = app.dependency_overrides.get(get_sender, get_sender)()
    sender.configure(initial_config())
    logger.info(
        "sender_started",
        transport=sender.config.transport.value,
        host=sender.config.host,
        port=sender.config.port,
    )
    try:
        yield
    finally:
        sender.teardown()
        logger.info("sender_stopped")


app = FastAPI(
    title="TCP/UDP Command Sender",
    description="Send text and hex commands to devices over TCP or UDP",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in ROUTERS:
    app.include_router(router)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.warning("configuration_error", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=400, content={"detail": exc.message, **exc.details})


@app.exception_handler(SenderError)
async def sender_error_handler(request: Request, exc: SenderError):
    logger.error("sender_error", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=500, content={"detail": exc.message, **exc.details})


@app.get("/")
async def root():
    return {
        "service": "TCP/UDP Command Sender",
        "version": __version__,
        "status": "operational",
    }
