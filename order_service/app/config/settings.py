"""Settings for the order service. Every field can be overridden from the environment or `.env`."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    rabbitmq_connection_string: str = Field(
        "amqp://localhost",
        validation_alias="RABBITMQ_CONNECTION_STRING",
    )

    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(3000, validation_alias="PORT")

    queue_name: str = Field("order_queue", validation_alias="QUEUE_NAME")
    queue_durable: bool = Field(True, validation_alias="QUEUE_DURABLE")
    # 0 leaves the queue unbounded; >0 adds x-max-length with reject-publish overflow.
    queue_max_length: int = Field(0, validation_alias="QUEUE_MAX_LENGTH")
    publisher_confirms: bool = Field(True, validation_alias="PUBLISHER_CONFIRMS")

    connect_timeout_seconds: float = Field(3.0, validation_alias="CONNECT_TIMEOUT_SECONDS")
    publish_confirm_timeout_seconds: float = Field(5.0, validation_alias="PUBLISH_CONFIRM_TIMEOUT_SECONDS")
    session_wait_timeout_seconds: float = Field(10.0, validation_alias="SESSION_WAIT_TIMEOUT_SECONDS")

    initial_backoff_seconds: float = Field(0.5, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(30.0, validation_alias="MAX_BACKOFF_SECONDS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")
    backoff_jitter: float = Field(0.2, validation_alias="BACKOFF_JITTER")
    # 0 keeps reconnecting until success or shutdown.
    max_reconnect_attempts: int = Field(0, validation_alias="MAX_RECONNECT_ATTEMPTS")

    publisher_backend: str = Field("rabbitmq", validation_alias="PUBLISHER_BACKEND")

    cors_allow_origins: list[str] = Field(["*"], validation_alias="CORS_ALLOW_ORIGINS")
