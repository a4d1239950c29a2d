"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hyperdca.config import settings
from hyperdca.database import create_db_and_tables
from hyperdca.services.errors import TradingError
from hyperdca.utils.logging import setup_logging
from hyperdca.api import auth, profile, agent_wallet, trades, wallet, dca, system

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging()
    create_db_and_tables()
    from hyperdca.engine.scheduler import start_scheduler, stop_scheduler
    start_scheduler()

    yield

    stop_scheduler()


app = FastAPI(
    title="HyperDCA",
    description="Hyperliquid spot trading and dollar-cost averaging service",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TradingError)
async def trading_error_handler(request: Request, exc: TradingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed ({exc.kind}): {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.kind}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Mount routers
app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(agent_wallet.router)
app.include_router(trades.router)
app.include_router(wallet.router)
app.include_router(dca.router)
app.include_router(system.router)
