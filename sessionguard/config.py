"""Application configuration"""
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = "sqlite:///./sessionguard.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_POOL_RECYCLE: int = 3600  # Recycle connections after 1 hour

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: List[str] = ["100/minute", "1000/hour"]
    RATE_LIMIT_STORAGE_URI: str = "memory://"  # Use redis:// for production

    # Monitoring
    METRICS_ENABLED: bool = True
    METRICS_PATH: str = "/metrics"

    # JWT signing. Access and refresh tokens use distinct secrets.
    JWT_SECRET: str = "access-secret-change-in-production"
    REFRESH_JWT_SECRET: str = "refresh-secret-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRY: str = "15m"    # <n>[smhd] or bare seconds
    REFRESH_TOKEN_EXPIRY: str = "7d"

    # Refresh tokens with less than this many hours left are rotated on refresh
    REFRESH_ROTATION_THRESHOLD_HOURS: float = 24.0

    # Expired refresh-token reaper
    TOKEN_REAPER_ENABLED: bool = True
    TOKEN_REAPER_INTERVAL_SECONDS: int = 24 * 60 * 60

    # Cookies
    COOKIE_SECURE: bool = True
    COOKIE_PATH: str = "/"
    ACCESS_COOKIE_NAME: str = "accessToken"
    REFRESH_COOKIE_NAME: str = "refreshToken"

    # Registration
    PASSWORD_MIN_LENGTH: int = 8

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]


settings = Settings()
