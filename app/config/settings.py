from pydantic import Field
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # App Info
    app_name: str = "Taller Stock API"
    version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str
    auto_create_db: bool = True

    # Security
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 10080  # 1 week

    # CORS
    allowed_origins: List[str] = ["http://localhost:8100"]

    # Transacciones
    transaction_timeout_seconds: Optional[float] = Field(
        default=30.0,
        description="Tiempo máximo de una escritura compuesta (0 o vacío lo desactiva)"
    )

    # Listados
    default_page_size: int = Field(default=10, description="Tamaño de página por defecto")
    max_page_size: int = Field(default=100, description="Tamaño de página máximo")
    low_stock_threshold: int = Field(default=10, description="Umbral de stock bajo para estadísticas")

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()
