from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Environment variables DATA_FILE / PORT override the defaults below
    DATA_FILE: str = Field("manufacturing_data.json", validation_alias="DATA_FILE")
    HOST: str = "0.0.0.0"
    PORT: int = Field(3000, validation_alias="PORT")

    # LAN stations connect from any machine
    CORS_ORIGINS: List[str] = ["*"]

    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Ho_Chi_Minh"   # used for exported timestamps

    # WebSocket timing (seconds)
    WS_RECEIVE_TIMEOUT: float = 30.0   # idle → "heartbeat"
    WS_SEND_TIMEOUT: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
