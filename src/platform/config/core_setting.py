from pathlib import Path
from typing import List, Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Trip Booking System'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Security
    SECRET_KEY: SecretStr = SecretStr('test_secret_key_change_in_production')
    ALGORITHM: str = 'HS256'

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = []  # add your frontend URL here

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith('['):
            return [i.strip() for i in v.split(',')]
        elif isinstance(v, list):
            return v
        return []

    # Document store backend
    DOCUMENT_STORE_BACKEND: Literal['postgres', 'memory'] = 'postgres'

    # PostgreSQL (document store)
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'trip_booking'
    POSTGRES_PORT: int = 5432

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        password = self.POSTGRES_PASSWORD.get_secret_value()
        return f'postgresql+asyncpg://{self.POSTGRES_USER}:{password}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'

    # asyncpg Connection Pool
    ASYNCPG_POOL_MIN_SIZE: int = 2
    ASYNCPG_POOL_MAX_SIZE: int = 20
    ASYNCPG_POOL_COMMAND_TIMEOUT: float = 10.0  # Per-statement timeout (seconds)
    ASYNCPG_POOL_TIMEOUT: float = 10.0  # Connection acquire timeout (seconds)
    ASYNCPG_POOL_MAX_INACTIVE_LIFETIME: float = 300.0

    # Redis (change notifications for live subscriptions)
    REDIS_HOST: str = 'localhost'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ''
    REDIS_POOL_MAX_CONNECTIONS: int = 50
    REDIS_POOL_SOCKET_TIMEOUT: int = 10
    REDIS_POOL_SOCKET_CONNECT_TIMEOUT: int = 10
    REDIS_POOL_HEALTH_CHECK_INTERVAL: int = 30

    # Booking commit
    BOOKING_ID_PREFIX: str = 'HR'
    BOOKING_COMMIT_MAX_ATTEMPTS: int = 5
    BOOKING_COMMIT_BACKOFF_BASE_SECONDS: float = 0.05
    BOOKING_COMMIT_BACKOFF_MAX_SECONDS: float = 1.0

    # User bookings reads
    USER_BOOKINGS_CACHE_TTL_SECONDS: float = 300.0  # 5 minutes
    USER_BOOKINGS_PAGE_SIZE: int = 50
    USER_BOOKINGS_THROTTLE_SECONDS: float = 1.0

    # Degraded mode (local pending-sync records)
    PENDING_SYNC_ENABLED: bool = False
    PENDING_SYNC_MAX_REPLAY_ATTEMPTS: int = 10
    PENDING_SYNC_RECONCILE_INTERVAL_SECONDS: float = 30.0


settings = Settings()  # type: ignore
