import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config.settings import settings
from app.config.database import Base, engine
from app.core.exceptions import setup_exception_handlers
from app.core.middleware import setup_logging, setup_middleware
from app.api.v1.router import api_router

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Taller Stock API Starting...")
    logger.info(f"📍 Version: {settings.version}")
    logger.info(f"🌍 Environment: {'Development' if settings.debug else 'Production'}")
    logger.info(f"⏱️ Transaction timeout: {settings.transaction_timeout_seconds}s")

    if settings.auto_create_db:
        Base.metadata.create_all(bind=engine)
        logger.info("🗄️ Esquema de base de datos verificado")

    yield

    # Shutdown
    logger.info("🛑 Taller Stock API Shutting down...")

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Inventario de repuestos, ventas y órdenes de servicio técnico",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# Setup middleware and error mapping
setup_middleware(app)
setup_exception_handlers(app)

# Include routers
app.include_router(api_router)

# Root endpoint
@app.get("/")
async def root():
    return {
        "message": "🚀 Taller Stock API",
        "version": settings.version,
        "status": "running",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "endpoints": ["/marcas", "/tipos-repuesto", "/tipos-equipo", "/productos", "/ventas", "/ordenes-servicio"]
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
