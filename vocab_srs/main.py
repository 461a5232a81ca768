import logging
import os
from time import perf_counter

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Imports de l'application
from vocab_srs.core.config import settings
from vocab_srs.db.base import Base
from vocab_srs.api.v2.api import api_router
from vocab_srs.db import session as db_session

# --- Configuration du logging ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# --- Initialisation de l'application FastAPI ---
app = FastAPI(
    title="Korean Vocabulary SRS API",
    openapi_url="/api/v2/openapi.json"
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


def _build_cors_origins() -> list[str]:
    base_origins = {_sanitize_origin(o) for o in settings.BACKEND_CORS_ORIGINS}

    additional = os.getenv("ADDITIONAL_CORS_ORIGINS")
    if additional:
        for origin in additional.split(","):
            base_origins.add(_sanitize_origin(origin))

    allow_origins = sorted({origin for origin in base_origins if origin})
    logger.info("CORS origins configured: %s", allow_origins)
    return allow_origins


# --- Configuration des Middlewares ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=_build_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type", "X-App-Lang"],
)


@app.middleware("http")
async def log_slow_requests(request: Request, call_next):
    start = perf_counter()
    response = await call_next(request)
    elapsed_ms = (perf_counter() - start) * 1000.0
    threshold_ms = settings.REQUEST_SLOW_THRESHOLD_MS
    if threshold_ms > 0 and elapsed_ms >= threshold_ms:
        logger.warning(
            "Slow request (%.1f ms) - %s %s -> %s",
            elapsed_ms,
            request.method,
            request.url.path,
            response.status_code,
        )
    return response


app.include_router(api_router, prefix="/api/v2")


# --- Événement de Démarrage ---
@app.on_event("startup")
def startup():
    logger.info("Checking and creating database tables...")
    Base.metadata.create_all(bind=db_session.sync_engine)
    logger.info("Database tables are ready.")


# --- Route Racine ---
@app.get("/")
def read_root():
    return {"message": "Welcome to the Korean Vocabulary SRS API!"}
