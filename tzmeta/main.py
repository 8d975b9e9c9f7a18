from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from tzmeta.api.router import router
from tzmeta.core.config import settings
from tzmeta.workers.fetcher import close_http_client
from tzmeta.workers.node_pool import node_pool


def _configure_logging() -> None:
    """Configure the ``tzmeta`` logger namespace.

    ``logging.basicConfig`` is a no-op when the root logger already has
    handlers (e.g. when uvicorn sets up its own handlers before our lifespan
    runs).  Configuring the ``tzmeta`` namespace directly, with
    ``propagate = False``, ensures all application logs reach stdout
    regardless of uvicorn's root-logger setup.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )
    app_log = logging.getLogger("tzmeta")
    app_log.setLevel(level)
    if not app_log.handlers:
        app_log.addHandler(handler)
    app_log.propagate = False


_configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # ── Startup ──────────────────────────────────────────────────────
    node_pool.ensure_started()
    yield
    # ── Shutdown ─────────────────────────────────────────────────────
    await node_pool.stop()
    await close_http_client()


app = FastAPI(
    title="TzMeta",
    description="Resolves, verifies and classifies TZIP-16 contract metadata.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    return {"status": "ok"}
