from pydantic import field_validator
from pydantic_settings import BaseSettings

from src.delivery.budget import MEMORY_CEILING, parse_size


class Settings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Storage
    files_root: str = "./files"

    # Transfer
    transfer_mode: str = "stream"  # "stream" or "offload"
    offload_header: str = "X-Sendfile"
    memory_limit: str = "128M"
    memory_ceiling: int = MEMORY_CEILING
    chunk_size: int = 1024 * 1024
    strict_memory_budget: bool = False
    legacy_user_agent_token: str = "MSIE"

    # Detection / display
    detect_mime: bool = True
    default_locale: str = "en_US"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("transfer_mode")
    @classmethod
    def _check_mode(cls, value: str) -> str:
        if value not in ("stream", "offload"):
            raise ValueError(f"transfer_mode must be 'stream' or 'offload', got {value!r}")
        return value

    @field_validator("memory_limit")
    @classmethod
    def _check_memory_limit(cls, value: str) -> str:
        parse_size(value)
        return value


settings = Settings()
