"""
Application settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Document store
    DATABASE_URL: str = "sqlite:///./data/receipt_studio.db"

    # Security
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # File storage
    DATA_DIR: str = "./data"
    UPLOAD_DIR: str = "./data/uploads"
    # Prefix for public blob URLs; empty means host-relative "/blobs/..."
    PUBLIC_BASE_URL: str = ""
    MAX_LOGO_BYTES: int = 2 * 1024 * 1024

    # Rendering
    RECEIPT_LOCALE: str = "en_US"
    # TTF used for PDFs; the built-in Helvetica lacks glyphs such as ₦ and ₹
    PDF_FONT_PATH: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
