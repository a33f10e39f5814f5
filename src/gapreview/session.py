"""流会话控制器

负责一次分析运行的完整过程：发起请求 → 驱动解码器 → 将结果写入集合 → 报告终态。

会话协议：
1. 子集为空时立即拒绝（不发起网络请求）
2. 非成功响应解析结构化错误并以该信息失败
3. 逐帧读取直到底层流结束，按事件类型分派
4. 成功：阶段进入（或保持）reviewed，重算统计并通知审阅就绪
5. 失败（含非预期异常）：阶段回退，已写入的结果保留（不回滚），错误信息返回给调用方

同一工作流实例同时只允许一个会话，由调用方保证；核心不做串行化。
"""

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from gapreview.callbacks import NullCallback, SessionCallback
from gapreview.classifier import NoGapClassifier, NoGapPredicate
from gapreview.client import GapAnalysisClient
from gapreview.core.exceptions import BackendReportedError, RequestRejectedError, TransportError
from gapreview.phase import PhaseStateMachine
from gapreview.selection import SelectionAggregator
from gapreview.store import GapCollectionStore
from gapreview.stream.decoder import iter_frames
from gapreview.stream.events import StreamEvent, StreamEventType, decode_event


@dataclass
class SessionOutcome:
    """会话成功结束后的统计"""

    applied: int
    """本次会话写入的结果数"""

    actionable_count: int
    """集合中存在差距的结果数"""

    no_gap_count: int
    """集合中无差距的结果数"""

    sub_run: bool = False
    """是否为从 reviewed 重新进入的补充分析"""


class StreamSession:
    """流会话控制器

    每次 run() 对应一个会话；控制器本身可重复使用，
    但每个会话都会创建新的帧解码器。
    """

    def __init__(
        self,
        client: GapAnalysisClient,
        store: GapCollectionStore,
        phase: PhaseStateMachine,
        aggregator: SelectionAggregator,
        callback: SessionCallback | None = None,
        classifier: NoGapPredicate | None = None,
        select_actionable_on_review: bool = True,
    ):
        """初始化会话控制器

        Args:
            client: 分析接口客户端
            store: 差距结果集合
            phase: 阶段状态机
            aggregator: 选择聚合器
            callback: 渲染层回调
            classifier: 无差距分类器（返回 True 表示无差距）
            select_actionable_on_review: 进入审阅时是否默认选中可执行项
        """
        self._client = client
        self._store = store
        self._phase = phase
        self._aggregator = aggregator
        self._callback = callback or NullCallback()
        self._classifier = classifier or NoGapClassifier()
        self._select_actionable_on_review = select_actionable_on_review

        self.done = 0
        self.total = 0
        self.completed = False

    async def run(self, selected_indices: Sequence[int]) -> SessionOutcome:
        """运行一次分析会话

        Args:
            selected_indices: 0-based 条目位置

        Returns:
            会话统计

        Raises:
            RequestRejectedError: 子集为空（不发起请求，阶段不变）
            TransportError: 网络失败、非成功响应或流在 complete 之前结束
            ProtocolError: 负载解析失败
            BackendReportedError: 后端发送 error 事件
        """
        indices = list(selected_indices)
        if not indices:
            raise RequestRejectedError("请至少选择一个需求进行分析")

        self._phase.begin_analysis(len(indices))
        sub_run = self._phase.is_sub_run
        self.done = 0
        self.total = len(indices)
        self.completed = False

        logger.info(f"[Session] 开始分析 {self.total} 个需求{'（补充分析）' if sub_run else ''}")
        try:
            await self._callback.on_session_started([i + 1 for i in indices])
            await self._callback.on_progress(0, self.total)

            async with self._client.open_stream(indices) as byte_stream:
                async for frame in iter_frames(byte_stream):
                    event = decode_event(frame)
                    if event is None:
                        logger.debug(f"[Session] 忽略未识别事件: {frame.event_type}")
                        continue
                    await self._dispatch(event)

            if not self.completed:
                raise TransportError("事件流在 complete 事件之前结束")
        except Exception as e:
            await self._fail(e)
            raise

        self._phase.complete_analysis()
        self._aggregator.reveal_for_review(self._select_actionable_on_review)
        actionable_count, no_gap_count = self._store.count_by_outcome()

        logger.info(
            f"[Session] 分析完成: 本次 {self.done} 条, "
            f"共 {actionable_count} 个差距 / {no_gap_count} 个已满足"
        )
        await self._callback.on_session_complete(actionable_count, no_gap_count)
        return SessionOutcome(
            applied=self.done,
            actionable_count=actionable_count,
            no_gap_count=no_gap_count,
            sub_run=sub_run,
        )

    async def _dispatch(self, event: StreamEvent) -> None:
        """按事件类型分派"""
        if event.event_type == StreamEventType.ITEM_STARTED:
            await self._callback.on_item_started(event.item_id)

        elif event.event_type == StreamEventType.RESULT:
            result = event.to_result()
            result.has_gap = not self._classifier(result)
            result.selected = False
            self._store.append(result)
            self.done += 1
            self._aggregator.recompute()
            await self._callback.on_result_applied(result)
            await self._callback.on_progress(self.done, self.total)

        elif event.event_type == StreamEventType.LOG:
            await self._callback.on_log_line(event.message)

        elif event.event_type == StreamEventType.COMPLETE:
            # 仅标记成功，读取循环由底层流结束终止
            self.completed = True

        elif event.event_type == StreamEventType.ERROR:
            raise BackendReportedError(event.message or "后端报告了未知错误")

    async def _fail(self, error: Exception) -> None:
        """失败处理：回退阶段，保留已写入结果，通知渲染层"""
        reverted = self._phase.fail_analysis()
        self._aggregator.recompute()
        logger.warning(
            f"[Session] 分析失败（已保留 {self.done} 条结果，阶段回退到 {reverted.value}）: {error}"
        )
        await self._callback.on_session_failed(str(error))
