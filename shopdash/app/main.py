import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shopdash.app.api.v1.api import api_router
from shopdash.app.core.config import settings
from shopdash.app.middleware.language import LanguageMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Shop Dashboard Reports")

# ─── CORS: restrict to configured origins ────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Accept-Language"],
    expose_headers=["X-Report-Request-Id", "Content-Language"],
)

# ─── Custom middleware ───────────────────────────────────────────────────────
app.add_middleware(LanguageMiddleware)

app.include_router(api_router)
