from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Receipt Scanner"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_KEY: str = ""

    # AWS Textract
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""

    # Storage
    RECEIPT_BUCKET: str = "receipts"

    # Image preprocessing
    MAX_IMAGE_DIMENSION: int = 1600
    JPEG_QUALITY: int = 85
    MAX_UPLOAD_MB: int = 10
    AUTO_DESKEW: bool = False

    # Export
    BUSINESS_NAME: str = "Carino"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
