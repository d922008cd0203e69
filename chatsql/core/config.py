import os
from typing import Optional

from pydantic import validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "chatsql")
    API_PREFIX: str = os.getenv("API_PREFIX", "/api")

    # 元数据存储（连接配置 / 聊天记录 / 问答示例）
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./chatsql.db")
    SQL_ECHO: bool = os.getenv("SQL_ECHO", "false").lower() == "true"

    # ==========================================
    # 会话上下文配置
    # ==========================================
    # 工具调用未携带 connectionId 时使用的默认连接
    # 为空表示不设置默认连接，此时未指定连接的调用将直接失败
    # ==========================================
    DEFAULT_CONNECTION_ID: Optional[str] = os.getenv("DEFAULT_CONNECTION_ID") or None

    # ==========================================
    # 问答示例召回配置
    # ==========================================
    # 召回的样本数量（Top-K）
    EXAMPLE_TOP_K: int = int(os.getenv("EXAMPLE_TOP_K", "3"))
    # 最低词汇相关度（0.0-1.0）
    EXAMPLE_MIN_SCORE: float = float(os.getenv("EXAMPLE_MIN_SCORE", "0.0"))

    # SQL 执行返回行数上限（调用方请求更多时也会被截断）
    MAX_EXECUTE_ROWS: int = int(os.getenv("MAX_EXECUTE_ROWS", "100"))

    # 聊天历史
    DEFAULT_HISTORY_LIMIT: int = int(os.getenv("DEFAULT_HISTORY_LIMIT", "20"))
    MAX_MESSAGE_HISTORY: int = int(os.getenv("MAX_MESSAGE_HISTORY", "10"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @validator("DEFAULT_CONNECTION_ID", pre=True)
    def blank_connection_id_to_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @validator("EXAMPLE_TOP_K", "MAX_EXECUTE_ROWS", "DEFAULT_HISTORY_LIMIT")
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = 'ignore'  # 忽略.env中未在Settings类中定义的额外字段


settings = Settings()
