"""差距分析 HTTP 客户端

发起一次 POST 请求（携带 0-based selectedIndices），返回 SSE 响应体的字节流。
非成功响应解析 {"error": str} 结构化错误体；网络异常统一转换为 TransportError。
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from loguru import logger

from gapreview.core.config import GapReviewSettings, get_settings
from gapreview.core.exceptions import TransportError


def _error_message(response: httpx.Response) -> str:
    """从非成功响应中提取错误信息

    Args:
        response: 已读取响应体的 httpx 响应

    Returns:
        后端给出的 error 字段，无法解析时返回通用信息
    """
    fallback = f"差距分析失败 (HTTP {response.status_code})"
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict):
        message = body.get("error")
        if isinstance(message, str) and message:
            return message
    return fallback


class GapAnalysisClient:
    """差距分析接口客户端

    Attributes:
        url: 分析接口完整 URL
    """

    def __init__(
        self,
        url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        settings: GapReviewSettings | None = None,
    ):
        """初始化客户端

        Args:
            url: 分析接口完整 URL，默认取自配置
            http_client: 外部提供的 httpx 客户端（测试中注入 MockTransport）
            settings: 配置，默认使用全局配置
        """
        settings = settings or get_settings()
        self.url = url or settings.analyze_url
        self._owns_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.read_timeout, connect=settings.connect_timeout),
        )
        self.request_count = 0

    @asynccontextmanager
    async def open_stream(self, selected_indices: list[int]) -> AsyncIterator[AsyncIterator[bytes]]:
        """打开分析事件流

        Args:
            selected_indices: 0-based 条目位置

        Yields:
            响应体字节流

        Raises:
            TransportError: 网络失败或非成功响应
        """
        self.request_count += 1
        logger.debug(f"[Client] POST {self.url} selectedIndices={selected_indices}")
        try:
            async with self._http_client.stream(
                "POST",
                self.url,
                json={"selectedIndices": selected_indices},
                headers={"Accept": "text/event-stream"},
            ) as response:
                if not response.is_success:
                    await response.aread()
                    raise TransportError(_error_message(response), status_code=response.status_code)
                yield response.aiter_bytes()
        except httpx.HTTPError as e:
            raise TransportError(f"网络错误: {type(e).__name__}: {e}") from e

    async def aclose(self) -> None:
        """关闭自有的 httpx 客户端"""
        if self._owns_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "GapAnalysisClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
