"""Orderflow FastAPI application.

Serves the PayOS payment webhook, admin order rejection and the internal
RPC endpoint. Requests under the ordering prefixes run inside the ordering
domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ordering.domain import ordering
from ordering.gateway import configure_gateway
from ordering.services import configure_queues
from ordering.utils.logging import bind_request_context, clear_request_context, configure_logging
from shared.config import Settings
from worker import build_processors, drain

configure_logging()

settings = Settings.from_env()
ordering.init()
configure_gateway(settings)
configure_queues(settings)

logger = structlog.get_logger(__name__)

_DOMAIN_PREFIXES = ("/orders", "/payments", "/rpc")
_DRAIN_INTERVAL = 1.0


async def _drain_memory_queues():
    """Consume the in-process queues. Redis queues are left to worker.py."""
    processors = build_processors(settings)
    while True:
        await asyncio.to_thread(drain, processors)
        await asyncio.sleep(_DRAIN_INTERVAL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    drainer = None
    if settings.queue_backend == "memory":
        drainer = asyncio.create_task(_drain_memory_queues())
        logger.info("In-process queue drain started")

    yield

    if drainer is not None:
        drainer.cancel()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Orderflow API",
    description="Order payment and rejection lifecycle",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context for domain routes."""
    if not request.url.path.startswith(_DOMAIN_PREFIXES):
        return await call_next(request)

    clear_request_context()
    bind_request_context(method=request.method, path=request.url.path)
    try:
        with ordering.domain_context():
            response = await call_next(request)
    finally:
        clear_request_context()
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api import order_router, payment_router, rpc_router  # noqa: E402
from ordering.api.errors import register_error_handlers  # noqa: E402

app.include_router(payment_router)
app.include_router(order_router)
app.include_router(rpc_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": ordering.name,
            "payout_gateway": "payos" if settings.payout_configured else "fake",
            "queue_backend": settings.queue_backend,
        }
    )
