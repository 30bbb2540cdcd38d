"""
MODULE OVERVIEW:
Application-wide configuration using Pydantic Settings.

WHAT IS HAPPENING HERE:
Every tunable of the stream client lives here: where the sentiment feed is,
which key to present, how long to wait before reconnecting, and the bounds the
aggregation engine clamps to. Values can be overridden from the environment
or a local `.env` file (prefix `SENTIMENT_`).
"""
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "sentiment_stream.log"

    # Stream endpoint
    STREAM_BASE_URL: str = "https://timeline-tuner-backend.soc1024.com:5003"
    STREAM_PATH: str = "/sentiment/stream"
    API_KEY: str = "dev-local-key"
    CONNECT_TIMEOUT_S: float = 10.0

    # Lifecycle
    RECONNECT_DELAY_S: float = 2.0
    RECONNECT_BASE_DELAY_S: float = 1.0
    RECONNECT_MAX_DELAY_S: float = 32.0

    # Aggregation
    INITIAL_VALUE: float = 30.0
    VALUE_MIN: float = 0.0
    VALUE_MAX: float = 100.0
    HISTORY_CAPACITY: int = 50
    HISTORY_DEFAULT_LIMIT: int = 20

    # Widget push target: "none" or "log"
    WIDGET_BACKEND: str = "none"

    # Development stream server
    PORT: int = 5003
    SSE_HEARTBEAT_INTERVAL_S: float = 15.0
    SIM_EMIT_INTERVAL_S: float = 1.0

    class Config:
        env_prefix = "SENTIMENT_"
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'

settings = Settings()
