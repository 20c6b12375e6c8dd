# -------------------------------------------------
# STANDARD IMPORTS
# -------------------------------------------------
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import LOG_LEVEL, cors_origins
from app.db import get_db
from app.errors import StorefrontError

# -------------------------------------------------
# DB MIGRATIONS
# -------------------------------------------------
from .db_auto_migrate import run_migrations

# -------------------------------------------------
# ROUTERS
# -------------------------------------------------
from app.routes import (
    admin_routes,
    auth_routes,
    cart_routes,
    catalog_routes,
    checkout_routes,
    coupon_routes,
    creator_routes,
    order_routes,
    payment_routes,
    profile_routes,
    wallet_routes,
)

# -------------------------------------------------
# LOGGING SETUP
# -------------------------------------------------
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger("storefront")

# -------------------------------------------------
# FASTAPI APP
# -------------------------------------------------
app = FastAPI(
    title="Storefront API",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------------------------------
# STARTUP LIFECYCLE (MIGRATIONS)
# -------------------------------------------------
@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Startup event triggered")

    # --- SAFE DB MIGRATIONS ---
    try:
        logger.info("🛠 Running DB migrations...")
        run_migrations()
        logger.info("✅ Migrations complete")
    except Exception as e:
        logger.error(f"❌ Migration error: {e}")

# -------------------------------------------------
# SERVICE ERRORS → HTTP
# -------------------------------------------------
@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} → {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

# -------------------------------------------------
# ROUTERS
# -------------------------------------------------
app.include_router(auth_routes.router)
app.include_router(catalog_routes.router)
app.include_router(catalog_routes.admin_router)
app.include_router(cart_routes.router)
app.include_router(checkout_routes.router)
app.include_router(payment_routes.router)
app.include_router(order_routes.router)
app.include_router(order_routes.admin_router)
app.include_router(wallet_routes.router)
app.include_router(creator_routes.router)
app.include_router(creator_routes.admin_router)
app.include_router(coupon_routes.router)
app.include_router(profile_routes.router)
app.include_router(admin_routes.router)

# -------------------------------------------------
# HEALTH CHECK (NO DB REQUIRED)
# -------------------------------------------------
@app.get("/health", status_code=status.HTTP_200_OK)
def health():
    return {"status": "ok"}

# -------------------------------------------------
# DB TEST (CONNECTION CHECK)
# -------------------------------------------------
@app.get("/db/test", status_code=status.HTTP_200_OK)
def db_test():
    try:
        conn = get_db()
        conn.close()
        return {"db": "ok"}
    except Exception as e:
        return {"db": "error", "detail": str(e)}
