"""会话回调系统

定义流会话向渲染层发送通知的回调协议和基础实现。
渲染层只接收通知，不直接修改核心状态。
"""

from typing import Protocol, runtime_checkable

from loguru import logger

from gapreview.models import GapResult


@runtime_checkable
class SessionCallback(Protocol):
    """会话回调协议

    使用 Protocol 而非 ABC，支持鸭子类型。
    """

    async def on_session_started(self, item_ids: list[int]) -> None:
        """会话开始，item_ids 为本次提交的 1-based 条目 id"""
        ...

    async def on_item_started(self, item_id: int) -> None:
        """条目开始分析"""
        ...

    async def on_result_applied(self, result: GapResult) -> None:
        """结果已写入集合"""
        ...

    async def on_log_line(self, text: str) -> None:
        """后端日志行"""
        ...

    async def on_progress(self, done: int, total: int) -> None:
        """进度更新"""
        ...

    async def on_session_complete(self, actionable_count: int, no_gap_count: int) -> None:
        """会话成功结束，审阅就绪"""
        ...

    async def on_session_failed(self, message: str) -> None:
        """会话失败"""
        ...


class NullCallback:
    """空回调实现

    不需要渲染时使用，避免 None 检查。
    """

    async def on_session_started(self, item_ids: list[int]) -> None:
        pass

    async def on_item_started(self, item_id: int) -> None:
        pass

    async def on_result_applied(self, result: GapResult) -> None:
        pass

    async def on_log_line(self, text: str) -> None:
        pass

    async def on_progress(self, done: int, total: int) -> None:
        pass

    async def on_session_complete(self, actionable_count: int, no_gap_count: int) -> None:
        pass

    async def on_session_failed(self, message: str) -> None:
        pass


class CompositeCallback:
    """组合回调

    将多个回调组合在一起，通知会广播给所有回调。
    单个回调失败只记录警告，不影响其他回调和会话本身。
    """

    def __init__(self, callbacks: list[SessionCallback] | None = None):
        """初始化组合回调

        Args:
            callbacks: 回调列表
        """
        self._callbacks: list[SessionCallback] = callbacks or []

    def add(self, callback: SessionCallback) -> None:
        """添加回调"""
        self._callbacks.append(callback)

    def remove(self, callback: SessionCallback) -> None:
        """移除回调"""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def clear(self) -> None:
        """清空所有回调"""
        self._callbacks.clear()

    async def _broadcast(self, method: str, *args) -> None:
        for callback in self._callbacks:
            try:
                await getattr(callback, method)(*args)
            except Exception as e:
                logger.warning(f"回调执行失败: {type(callback).__name__}.{method}: {e}")

    async def on_session_started(self, item_ids: list[int]) -> None:
        await self._broadcast("on_session_started", item_ids)

    async def on_item_started(self, item_id: int) -> None:
        await self._broadcast("on_item_started", item_id)

    async def on_result_applied(self, result: GapResult) -> None:
        await self._broadcast("on_result_applied", result)

    async def on_log_line(self, text: str) -> None:
        await self._broadcast("on_log_line", text)

    async def on_progress(self, done: int, total: int) -> None:
        await self._broadcast("on_progress", done, total)

    async def on_session_complete(self, actionable_count: int, no_gap_count: int) -> None:
        await self._broadcast("on_session_complete", actionable_count, no_gap_count)

    async def on_session_failed(self, message: str) -> None:
        await self._broadcast("on_session_failed", message)


class LoggingCallback:
    """日志回调

    将会话通知转换为 loguru 日志，便于调试。
    """

    def __init__(self, level: str = "DEBUG"):
        """初始化日志回调

        Args:
            level: 日志级别（DEBUG/INFO/WARNING/ERROR）
        """
        self._level = level.upper()

    def _log(self, message: str) -> None:
        logger.log(self._level, message)

    async def on_session_started(self, item_ids: list[int]) -> None:
        self._log(f"[Session] 开始分析 {len(item_ids)} 个需求: {item_ids}")

    async def on_item_started(self, item_id: int) -> None:
        self._log(f"[Session] 条目 #{item_id} 分析中")

    async def on_result_applied(self, result: GapResult) -> None:
        outcome = f"存在差距 ({result.complexity.value})" if result.has_gap else "无差距"
        self._log(f"[Session] 条目 #{result.id}: {outcome}")

    async def on_log_line(self, text: str) -> None:
        self._log(f"[Backend] {text}")

    async def on_progress(self, done: int, total: int) -> None:
        self._log(f"[Session] 进度 {done}/{total}")

    async def on_session_complete(self, actionable_count: int, no_gap_count: int) -> None:
        self._log(f"[Session] 完成: {actionable_count} 个差距 / {no_gap_count} 个已满足")

    async def on_session_failed(self, message: str) -> None:
        logger.warning(f"[Session] 失败: {message}")
