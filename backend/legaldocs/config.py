"""应用配置"""
from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    """应用配置类"""

    # 应用信息
    APP_NAME: str = "LegalDocs"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # 数据库配置
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/legaldocs.db"

    # CORS配置
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # OpenAI（需求匹配器）；未配置 API Key 时退回确定性匹配
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    MODEL_HIGH: str = "gpt-4o"
    MODEL_LOW: str = "gpt-4o-mini"
    MATCHER_TIMEOUT_SEC: int = 120
    MATCHER_MAX_ARTICLES: int = 200

    # 文档文本获取
    DOCUMENT_FETCH_TIMEOUT_SEC: int = 60

    # 任务队列
    JOBS_DATA_DIR: str = str(Path(__file__).resolve().parents[1] / "data" / "jobs")
    CONCURRENCY_EXTRACT_ARTICLES: int = 1
    CONCURRENCY_REQ_IDENTIFICATIONS: int = 1
    LIMIT_EXTRACT_ARTICLES: int = 10  # 每个窗口最多启动的抽取任务数，0 表示不限流
    LIMIT_EXTRACT_ARTICLES_WINDOW_SEC: float = 5.0
    JOBS_REMOVE_ON_COMPLETE: int = 10
    JOBS_REMOVE_ON_FAIL: int = 5

    @model_validator(mode="before")
    @classmethod
    def treat_empty_env_as_unset(cls, data):
        """
        将空字符串环境变量按“未配置”处理。
        这样 .env 中留空不会覆盖默认值，也避免复杂类型解析报错。
        """
        if not isinstance(data, dict):
            return data

        cleaned = dict(data)
        for field_name, field in cls.model_fields.items():
            default = field.default

            # 仅当字段本身有可用默认值时，空字符串才回退到默认值
            if default in (None, ""):
                continue

            if cleaned.get(field_name) == "":
                cleaned.pop(field_name, None)

        return cleaned

    @property
    def cors_origins_list(self) -> List[str]:
        """获取CORS允许的源列表"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def matcher_enabled(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    def model_for_level(self, intelligence_level: str | None) -> str:
        """按智能等级选择模型（High / Low），缺省走 Low。"""
        if (intelligence_level or "").strip().lower() == "high":
            return self.MODEL_HIGH
        return self.MODEL_LOW

    class Config:
        env_file = (".env", "backend/.env")
        case_sensitive = True
        extra = "ignore"


# 全局配置实例
settings = Settings()
