import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .adapters.entry.http.history_router import router as history_router
from .adapters.entry.http.swap_router import router as swap_router
from .adapters.entry.http.wallet_router import router as wallet_router
from .app_context import AppContext
from .config import get_settings


def _setup_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context for startup/shutdown lifecycle.
    """
    settings = get_settings()
    _setup_logging(settings.LOG_LEVEL)
    logging.getLogger(__name__).info("Starting dust-aggregator (lifespan startup)...")

    ctx = AppContext(settings)
    await ctx.start()
    app.state.ctx = ctx

    try:
        yield
    finally:
        logging.getLogger(__name__).info("Shutting down dust-aggregator (lifespan shutdown)...")
        await ctx.stop()


app = FastAPI(title="dust-aggregator", version="0.1.0", lifespan=lifespan)
app.include_router(wallet_router)
app.include_router(swap_router)
app.include_router(history_router)


@app.get("/healthz")
async def healthz():
    """
    Liveness check endpoint.
    """
    return {"status": "ok"}


def run():
    uvicorn.run("dust_aggregator.main:app", host="0.0.0.0", port=8000)
