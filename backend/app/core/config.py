from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    """
    应用程序配置设置类，从环境变量或.env文件加载所有配置项。
    使用Pydantic进行数据验证和类型检查。

    DATABASE_URL 为空时不创建存储适配器，/save 以 skip 模式运行（本地调试用）。
    """
    # Server
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    # Model configuration tells Pydantic where to find the .env file.
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=True
    )

    PROJECT_NAME: str = "Gaze Log Service"

    BACKEND_CORS_ORIGINS: List[str] = []

    # Database (Heroku Postgres 注入 DATABASE_URL)
    DATABASE_URL: Optional[str] = None

    # Connection pool
    DB_POOL_SIZE: int = 5
    DB_POOL_RECYCLE_SECONDS: int = 30
    DB_POOL_TIMEOUT_SECONDS: int = 10
    DB_CONNECT_TIMEOUT_SECONDS: int = 10
    DB_STATEMENT_TIMEOUT_MS: int = 15000
    DB_SSLMODE: str = "require"

    # Static client (index.html / webgazer.js 等)
    STATIC_DIR: Optional[str] = None
    STATIC_MAX_AGE_SECONDS: int = 3600

    GZIP_MINIMUM_SIZE: int = 1000

    @field_validator("DATABASE_URL", "STATIC_DIR", mode="before")
    @classmethod
    def _blank_as_none(cls, value):
        # 空字符串等同于未配置
        if isinstance(value, str) and not value.strip():
            return None
        return value

# Create a single, globally accessible instance of the settings.
settings = Settings()
