"""
Config Maker
"""

# pyright: basic

__all__ = ("settings",)

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings

from checkplease import __project__, __version__


class Settings(BaseSettings):
    PROJECT_NAME: str = __project__
    PROJECT_VERSION: str = __version__
    API_VERSION: int = 1
    DEBUG: bool = False
    LOG_MESSAGE_MAX_LEN: int = 2000

    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8083
    APP_WORKERS: int = 1
    APP_AUTH_KEY: str

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB_BROKER: int = 0
    REDIS_DB_RESULTS: int = 1
    REDIS_DB_RECORDS: int = 2
    REDIS_DB_PUBSUB: int = 3
    REDIS_PASSWORD: str | None = None
    RECORD_TTL_SECONDS: int | None = None

    # Run enqueued fixity checks in-process instead of through the Redis queue
    RUN_QUEUED_JOBS_INLINE: bool = False

    AWS_REGION: str = "us-east-1"
    AWS_ENDPOINT_URL: str | None = None
    AWS_ACCESS_KEY_ID: str | None = None
    AWS_SECRET_ACCESS_KEY: str | None = None
    S3_READ_CHUNK_SIZE: int = 1024 * 1024

    # Topic for a run is BROADCAST_STREAM_PREFIX + "fixity_check:" + job_identifier
    BROADCAST_STREAM_PREFIX: str = "CheckPlease:development:"

    # A heartbeat goes out every PROGRESS_EVERY_N_CHUNKS * S3_READ_CHUNK_SIZE
    # bytes (100 MiB by default) or every PROGRESS_INTERVAL_SECONDS. The
    # stalled-check reaper fails any run quiet for STALLED_CHECK_TIMEOUT_SECONDS,
    # so with chunk_count the timeout must cover 100 MiB at the slowest expected
    # link speed (about 116 KB/s for the 15 minute default).
    PROGRESS_POLICY: Literal["chunk_count", "elapsed_time"] = "chunk_count"
    PROGRESS_EVERY_N_CHUNKS: int = 100
    PROGRESS_INTERVAL_SECONDS: float = 10.0

    STALLED_CHECK_TIMEOUT_SECONDS: int = 900  # 15 minutes
    STALLED_CHECK_CRON: str = "*/5 * * * *"

    @model_validator(mode="after")
    def _heartbeat_within_stall_timeout(self) -> "Settings":
        too_slow = self.PROGRESS_INTERVAL_SECONDS >= self.STALLED_CHECK_TIMEOUT_SECONDS
        if self.PROGRESS_POLICY == "elapsed_time" and too_slow:
            raise ValueError(
                "PROGRESS_INTERVAL_SECONDS must be shorter than STALLED_CHECK_TIMEOUT_SECONDS, "
                "or every running check is reaped as stalled"
            )
        return self

    class Config:
        env_file = ".env"
        env_prefix = "CHECKPLEASE_"
        env_file_encoding = "utf-8"
        extra = "ignore"
        case_sensitive = True


settings = Settings()  # type: ignore[call-arg]
