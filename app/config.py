from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8098
    CORS_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_PATH: str = "livegift.db"
    DATABASE_URL: str = ""
    DATABASE_ECHO: bool = False
    SQLITE_BUSY_TIMEOUT: float = 30.0

    # Auth（身份由外部登录服务签发，这里只解析）
    AUTH_JWT_SECRET: str = "livegift-dev-secret"
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_REQUIRED: bool = False

    # 实时事件
    SSE_HEARTBEAT_SECONDS: float = 25.0
    SSE_QUEUE_SIZE: int = 256

    # 经济规则
    CHAT_MESSAGE_POINTS: int = 1

    # 推流 / 播放链接模板
    VIDEO_PUSH_URL_TEMPLATE: str = "https://vdo.ninja/?push={key}&webcam&quality=0&proaudio"
    VIDEO_VIEW_URL_TEMPLATE: str = "https://vdo.ninja/?view={key}&cleanoutput"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or f"sqlite+aiosqlite:///{self.DATABASE_PATH}"

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in (self.CORS_ORIGINS or "").split(",") if item.strip()] or ["*"]


settings = Settings()
