from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "MediaSnap"

    # HTTP
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Paths
    DOWNLOAD_DIR: Path = Field(default=Path("./downloads"))
    LOG_DIR: Path = Field(default=Path("./logs"))

    # ==== yt-dlp ====
    YTDLP_BIN: str = "yt-dlp"
    YTDLP_OUTTMPL: str = "%(title).100s-%(id)s.%(ext)s"
    YTDLP_DEFAULT_FORMAT: str = "bv*+ba/b"
    # comma-separated, e.g. http://user:pass@ip:port,https://ip:port
    PROXY_LIST: str = ""
    PREVIEW_TIMEOUT_SECS: float = 30.0

    # ==== ffmpeg (GIF) ====
    FFMPEG_BIN: str = "ffmpeg"
    GIF_FPS: int = 12
    GIF_MAX_WIDTH: int = 600
    GIF_MAX_SECS: int = 30

    # requests per minute per client address on submit; 0 disables
    RATE_LIMIT_RPM: int = 30
    # peers allowed to set X-Real-IP / X-Forwarded-For (comma-separated)
    TRUSTED_PROXIES: str = "127.0.0.1,::1"

    STREAM_INTERVAL_SECS: float = 1.0
    HISTORY_WINDOW: int = 100

    LOG_LEVEL: str = "INFO"
    LOG_MAX_BYTES: int = 2_000_000
    LOG_BACKUPS: int = 5

    @property
    def proxies(self) -> list[str]:
        return [p.strip() for p in self.PROXY_LIST.split(",") if p.strip()]

    @property
    def trusted_proxies(self) -> set[str]:
        return {p.strip() for p in self.TRUSTED_PROXIES.split(",") if p.strip()}


settings = Settings()
