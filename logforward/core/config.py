from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict

from logforward.core.constants import DEFAULT_FLUENTD_IMAGE, DEFAULT_VECTOR_IMAGE


class LogLevel(str, Enum):
    INFO = "INFO"
    DEBUG = "DEBUG"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    LOG_LEVEL: LogLevel = LogLevel.INFO

    FLUENTD_IMAGE: str = DEFAULT_FLUENTD_IMAGE
    VECTOR_IMAGE: str = DEFAULT_VECTOR_IMAGE

    # cluster-wide proxy, injected verbatim into the collector container
    HTTP_PROXY: str = ""
    HTTPS_PROXY: str = ""
    NO_PROXY: str = ""

    # cluster-wide TLS security profile applied to every secure output
    TLS_MIN_VERSION: str = ""
    TLS_CIPHERS: str = ""

    STATUS_CONFLICT_RETRY_DELAY: float = 1.0
    STATUS_CONFLICT_RETRY_ATTEMPTS: int = 3


cfg = Settings()
