# app/main.py
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.errors import GENERIC_SERVER_DETAIL, ShopError
from app.core.payment_gateway import get_payment_gateway
from app.database import create_db_and_tables, new_session
from app.dependencies import notification_service, order_repo, product_repo

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import product as _product_models  # noqa: F401
from app.models import delivery as _delivery_models  # noqa: F401
from app.models import coupon as _coupon_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401
from app.models import order as _order_models  # noqa: F401
from app.models import notification as _notification_models  # noqa: F401

# Routers
from app.routers.cart import router as cart_router
from app.routers.orders import router as orders_router
from app.routers.payments import router as payments_router
from app.routers.admin_orders import router as admin_orders_router
from app.routers.admin_delivery_methods import router as admin_delivery_methods_router
from app.services.order_cleanup import ExpiredOrderCleanupWorker

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


def build_cleanup_worker() -> ExpiredOrderCleanupWorker:
    return ExpiredOrderCleanupWorker(
        session_factory=new_session,
        gateway=get_payment_gateway(),
        order_repo=order_repo,
        product_repo=product_repo,
        notifier=notification_service,
        interval=timedelta(minutes=settings.ORDER_CLEANUP_INTERVAL_MINUTES),
        max_age=timedelta(hours=settings.PENDING_PAYMENT_TTL_HOURS),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Start the expired-order cleanup worker (if enabled).

    Shutdown:
      - Signal the worker and wait for the current order to finish.
    """
    logger.info("Startup: connecting to database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error("Startup: DB connection FAILED: %s", e)
        raise

    worker = None
    task = None
    if settings.ORDER_CLEANUP_ENABLED:
        worker = build_cleanup_worker()
        task = asyncio.create_task(worker.run_forever())

    yield

    if worker is not None:
        worker.stop()
        await task
        logger.info("Shutdown: cleanup worker stopped.")


app = FastAPI(
    title=settings.PROJECT_NAME or "PetMart Backend",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    """
    Map business errors to JSON: {"detail": ..., "error_type": ...}.

    5xx details are generic; the real cause is only logged.
    """
    detail = exc.message
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.error_type, request.method, request.url.path, exc.message)
        detail = GENERIC_SERVER_DETAIL
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail, "error_type": exc.error_type},
    )


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(orders_router, prefix=settings.API_V1_STR)
app.include_router(payments_router, prefix=settings.API_V1_STR)
app.include_router(admin_orders_router, prefix=settings.API_V1_STR)
app.include_router(admin_delivery_methods_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "petmart-backend"}
