import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.config.settings import settings

logger = logging.getLogger(__name__)

def setup_logging():
    """Configure root logging from settings"""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

def setup_middleware(app: FastAPI):
    """CORS for the POS frontend plus one log line per request"""

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin"],
        max_age=3600
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        # 5xx a WARNING
        icon, level = ("🌐", logging.INFO) if response.status_code < 500 else ("🔥", logging.WARNING)
        logger.log(
            level,
            f"{icon} {request.method} {request.url.path} → {response.status_code} ({elapsed_ms:.1f} ms)"
        )
        return response
