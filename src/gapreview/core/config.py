"""GapReview 配置管理

使用 Pydantic Settings 管理配置，支持环境变量和 .env 文件。
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GapReviewSettings(BaseSettings):
    """GapReview 全局配置"""

    model_config = SettingsConfigDict(
        env_prefix="GAPREVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 后端服务配置
    server_url: str = Field(
        default="http://127.0.0.1:3000",
        description="差距分析后端地址",
    )
    analyze_path: str = Field(
        default="/api/analyze-gaps",
        description="差距分析接口路径（POST）",
    )

    # 超时配置（读取不设超时，流停滞时会话一直阻塞）
    connect_timeout: float = Field(
        default=30.0,
        description="连接超时（秒）",
    )
    read_timeout: float | None = Field(
        default=None,
        description="读取超时（秒），None 表示不限制",
    )

    # 结果集合配置
    duplicate_policy: Literal["upsert", "append"] = Field(
        default="upsert",
        description="重复 id 的处理方式: upsert（后到覆盖）, append（追加保留）",
    )
    select_actionable_on_review: bool = Field(
        default=True,
        description="进入审阅阶段时是否默认选中所有存在差距的条目",
    )

    # 日志配置
    log_level: str = Field(
        default="INFO",
        description="CLI 日志级别",
    )

    @property
    def analyze_url(self) -> str:
        """差距分析接口完整 URL"""
        return self.server_url.rstrip("/") + "/" + self.analyze_path.lstrip("/")


# 全局配置实例（延迟初始化）
_settings: GapReviewSettings | None = None


def get_settings() -> GapReviewSettings:
    """获取全局配置实例"""
    global _settings
    if _settings is None:
        _settings = GapReviewSettings()
    return _settings


def reset_settings():
    """重置全局配置（主要用于测试）"""
    global _settings
    _settings = None
