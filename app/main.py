# app/main.py
import os
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.logging_config import setup_logging
from app.db.mongo import init_db_indexes
from app.services.session_events import SessionHub, log_session_change

# Routers
from app.routes.auth import router as auth_router
from app.routes.referral import router as referral_router
from app.routes.leaderboard import router as leaderboard_router

setup_logging()
logger = logging.getLogger(__name__)

# ---------------------------
# Build FastAPI app
# ---------------------------
fastapi_app = FastAPI(title="ROBOSOCCER 3.0 Referral Backend", version="1.0.0")

# Comma-separated list of origins; "*" keeps it open
_raw_origins = os.getenv("CORS_ORIGINS", "*").strip()
CORS_ORIGINS = ["*"] if _raw_origins in ("", "*") else [o.strip() for o in _raw_origins.split(",") if o.strip()]

fastapi_app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@fastapi_app.get("/health")
async def health_check():
    return {"status": "✅ OK", "message": "Referral backend is running."}

@fastapi_app.get("/")
async def root():
    return {"message": "👋 Welcome to the ROBOSOCCER 3.0 referral backend!"}

# ---------------------------
# Routers
# ---------------------------
fastapi_app.include_router(auth_router)
fastapi_app.include_router(referral_router)
fastapi_app.include_router(leaderboard_router)


# ---------------------------
# Startup / shutdown
# ---------------------------
@fastapi_app.on_event("startup")
async def on_startup():
    hub = SessionHub()
    hub.subscribe(log_session_change)
    fastapi_app.state.session_hub = hub

    try:
        await init_db_indexes()
    except Exception:
        # Don't crash the app if indexes fail; just log it
        logger.exception("Index init error")

@fastapi_app.on_event("shutdown")
async def on_shutdown():
    hub = getattr(fastapi_app.state, "session_hub", None)
    if hub is not None:
        hub.close()


app = fastapi_app
