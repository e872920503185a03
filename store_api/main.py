# store_api/main.py
from contextlib import asynccontextmanager, suppress
import asyncio
import logging

import socketio
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi import FastAPI, Request, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from store_api.core.config import get_settings
from store_api.core.realtime import broadcaster, sio
from store_api.database import create_db_and_tables, engine

# Import models so SQLModel metadata is populated before create_all()
from store_api.models import user as _user_models  # noqa: F401
from store_api.models import category as _category_models  # noqa: F401
from store_api.models import product as _product_models  # noqa: F401
from store_api.models import cart as _cart_models  # noqa: F401
from store_api.models import order as _order_models  # noqa: F401
from store_api.models import stock_movement as _stock_movement_models  # noqa: F401
from store_api.models import notification as _notification_models  # noqa: F401

# Routers
from store_api.routers.users import router as users_router
from store_api.routers.categories import router as categories_router
from store_api.routers.products import router as products_router
from store_api.routers.cart import router as cart_router
from store_api.routers.orders import router as orders_router, service as order_service
from store_api.routers.inventory import router as inventory_router
from store_api.routers.notifications import router as notifications_router
from store_api.routers.payments import router as payments_router
from store_api.routers.dashboard import router as dashboard_router
from store_api.routers import realtime as _socket_handlers  # noqa: F401

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


def _auto_confirm_once() -> None:
    with Session(engine) as session:
        order_service.auto_confirm_claimed_orders(session)


async def _auto_confirm_loop(interval_minutes: int) -> None:
    """
    Periodically complete claimed orders past AUTO_CONFIRM_DAYS.
    The sync DB work runs in the threadpool.
    """
    while True:
        try:
            await run_in_threadpool(_auto_confirm_once)
        except SQLAlchemyError:
            logger.exception("Auto-confirm sweep failed; retrying next interval")
        await asyncio.sleep(interval_minutes * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Hand the event loop to the socket broadcaster.
      - Start the auto-confirm sweep (unless interval is 0).

    Shutdown:
      - Stop the sweep.
    """
    logger.info("🔄 Startup: Connecting to database...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: DB connection OK, tables verified.")
    except SQLAlchemyError as e:
        logger.error(f"❌ Startup: DB connection FAILED: {e}")
        raise

    broadcaster.bind(asyncio.get_running_loop())

    sweeper: asyncio.Task | None = None
    if settings.AUTO_CONFIRM_INTERVAL_MINUTES > 0:
        sweeper = asyncio.create_task(
            _auto_confirm_loop(settings.AUTO_CONFIRM_INTERVAL_MINUTES)
        )
        logger.info(
            "⏱️ Auto-confirm every %s min (after %s days claimed)",
            settings.AUTO_CONFIRM_INTERVAL_MINUTES,
            settings.AUTO_CONFIRM_DAYS,
        )

    yield

    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


api = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


api.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@api.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "Request conflicts with existing data"},
    )


# Versioned API prefix, e.g. /api/v1
api.include_router(users_router, prefix=settings.API_V1_STR)
api.include_router(categories_router, prefix=settings.API_V1_STR)
api.include_router(products_router, prefix=settings.API_V1_STR)
api.include_router(cart_router, prefix=settings.API_V1_STR)
api.include_router(orders_router, prefix=settings.API_V1_STR)
api.include_router(inventory_router, prefix=settings.API_V1_STR)
api.include_router(notifications_router, prefix=settings.API_V1_STR)
api.include_router(payments_router, prefix=settings.API_V1_STR)
api.include_router(dashboard_router, prefix=settings.API_V1_STR)


@api.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "campus-store-api"}


# Socket.IO answers on /socket.io; everything else goes to the REST API.
app = socketio.ASGIApp(sio, other_asgi_app=api)
