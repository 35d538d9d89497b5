# app/core/exceptions.py
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """
    Error de dominio con código HTTP asociado.

    `extra` se agrega tal cual al cuerpo de la respuesta junto a `error`.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT


class StorageError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Error interno del servidor", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TransactionTimeoutError(StorageError):
    def __init__(self, elapsed_seconds: float):
        super().__init__(f"La operación excedió el tiempo máximo ({elapsed_seconds:.1f}s)")
        self.elapsed_seconds = elapsed_seconds


def setup_exception_handlers(app: FastAPI):
    """Traducir errores de dominio a respuestas JSON `{error: ...}`"""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if isinstance(exc, StorageError):
            logger.error(
                f"❌ {request.method} {request.url.path} - {exc.message}",
                exc_info=exc.cause or exc
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, **exc.extra}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Datos de entrada inválidos",
                "detalles": [
                    {"campo": ".".join(str(p) for p in err.get("loc", ())), "mensaje": err.get("msg")}
                    for err in exc.errors()
                ]
            }
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"💥 {request.method} {request.url.path} - error no controlado: {exc!r}", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Error interno del servidor"}
        )
