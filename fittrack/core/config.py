import os
from dotenv import load_dotenv
from urllib.parse import quote_plus

from fittrack.enums.store_enums import StoreMode

load_dotenv()

class Settings:
    # Environment setting
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

    # Which stores receive reads and writes (dual | document-only | relational-only)
    DATABASE_MODE = os.getenv("DATABASE_MODE", "dual")

    # Document store
    MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DATABASE = os.getenv("MONGODB_DATABASE", "fittrack")

    # Relational store creds
    MYSQL_HOST = os.getenv("MYSQL_HOST", "localhost")
    MYSQL_PORT = os.getenv("MYSQL_PORT", "3306")
    MYSQL_USER = os.getenv("MYSQL_USER", "root")
    MYSQL_PASSWORD = os.getenv("MYSQL_PASSWORD", "")
    MYSQL_DATABASE = os.getenv("MYSQL_DATABASE", "fittrack")

    # Auth
    JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-production-please-0123456789")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(24 * 60)))

    # Import / export uploads
    UPLOADS_DIR = os.getenv("UPLOADS_DIR", "uploads")
    MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(5 * 1024 * 1024)))

    # External statistics providers
    REDIS_URL = os.getenv("REDIS_URL")
    STATS_CACHE_TTL = int(os.getenv("STATS_CACHE_TTL", "3600"))
    WHO_API_BASE_URL = os.getenv("WHO_API_BASE_URL", "https://ghoapi.azureedge.net/api")
    WORLD_BANK_API_BASE_URL = os.getenv("WORLD_BANK_API_BASE_URL", "https://api.worldbank.org/v2")
    HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))

    def _build_database_url(self):
        override = os.getenv("RELATIONAL_DATABASE_URL")
        if override:
            return override
        return (
            f"mysql+aiomysql://{self.MYSQL_USER}:{quote_plus(self.MYSQL_PASSWORD)}"
            f"@{self.MYSQL_HOST}:{self.MYSQL_PORT}/{self.MYSQL_DATABASE}?charset=utf8mb4"
        )

    @property
    def RELATIONAL_DATABASE_URL(self):
        return self._build_database_url()

    @property
    def STORE_MODE(self) -> StoreMode:
        return StoreMode.parse(self.DATABASE_MODE)

settings = Settings()
