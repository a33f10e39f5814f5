"""差距审阅工作流

一个 GapWorkflow 实例拥有一次完整工作流的全部状态：候选条目、结果集合、
阶段状态机、选择聚合器。用户交互处理与流会话都通过它访问这些状态，
不存在模块级全局状态；reset() 将实例恢复到 idle。
"""

from collections.abc import Iterable

from loguru import logger

from gapreview.callbacks import CompositeCallback, SessionCallback
from gapreview.classifier import NoGapPredicate
from gapreview.client import GapAnalysisClient
from gapreview.core.config import GapReviewSettings, get_settings
from gapreview.core.exceptions import InvalidPhaseTransitionError, RequestRejectedError
from gapreview.models import AnalysisItem, GapResult, ItemStatus
from gapreview.phase import Phase, PhaseStateMachine
from gapreview.selection import SelectionAggregator, SelectionState
from gapreview.session import SessionOutcome, StreamSession
from gapreview.store import DuplicatePolicy, GapCollectionStore


class _ItemStatusTracker:
    """根据会话通知更新候选条目的显示状态"""

    def __init__(self, workflow: "GapWorkflow"):
        self._workflow = workflow

    async def on_session_started(self, item_ids: list[int]) -> None:
        pass

    async def on_item_started(self, item_id: int) -> None:
        item = self._workflow.item_by_id(item_id)
        if item is not None:
            item.status = ItemStatus.ANALYZING

    async def on_result_applied(self, result: GapResult) -> None:
        item = self._workflow.locate_item(result)
        if item is None:
            logger.warning(f"[Workflow] 结果 #{result.id} 找不到对应的候选条目")
            return
        item.status = ItemStatus.GAP_FOUND if result.has_gap else ItemStatus.NO_GAP

    async def on_log_line(self, text: str) -> None:
        pass

    async def on_progress(self, done: int, total: int) -> None:
        pass

    async def on_session_complete(self, actionable_count: int, no_gap_count: int) -> None:
        self._workflow._sync_review_controls()

    async def on_session_failed(self, message: str) -> None:
        # 补充分析失败回到 reviewed，已保留的结果需要同步控件
        if self._workflow.phase == Phase.REVIEWED:
            self._workflow._sync_review_controls()
        else:
            self._workflow._restore_controls()


class GapWorkflow:
    """差距审阅工作流

    Attributes:
        items: 候选条目（index = id - 1）
        store: 差距结果集合
        phase_machine: 阶段状态机
        selection: 选择聚合器
    """

    def __init__(
        self,
        client: GapAnalysisClient | None = None,
        callback: SessionCallback | None = None,
        classifier: NoGapPredicate | None = None,
        settings: GapReviewSettings | None = None,
    ):
        """初始化工作流

        Args:
            client: 分析接口客户端，默认按配置创建
            callback: 渲染层回调
            classifier: 无差距分类器
            settings: 配置，默认使用全局配置
        """
        self._settings = settings or get_settings()
        self._owns_client = client is None
        self.client = client or GapAnalysisClient(settings=self._settings)

        self.items: list[AnalysisItem] = []
        self.store = GapCollectionStore(DuplicatePolicy(self._settings.duplicate_policy))
        self.phase_machine = PhaseStateMachine()
        self.selection = SelectionAggregator(self.items, self.store, self.phase_machine)

        callbacks: list[SessionCallback] = [_ItemStatusTracker(self)]
        if callback is not None:
            callbacks.append(callback)
        self._session = StreamSession(
            client=self.client,
            store=self.store,
            phase=self.phase_machine,
            aggregator=self.selection,
            callback=CompositeCallback(callbacks),
            classifier=classifier,
            select_actionable_on_review=self._settings.select_actionable_on_review,
        )

    async def aclose(self) -> None:
        """关闭工作流自行创建的客户端"""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "GapWorkflow":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ==================== 状态查询 ====================

    @property
    def phase(self) -> Phase:
        return self.phase_machine.phase

    @property
    def selected_count(self) -> int:
        return self.selection.selected_count

    @property
    def selection_state(self) -> SelectionState:
        return self.selection.state

    @property
    def can_analyze(self) -> bool:
        return self.selection.can_analyze

    @property
    def can_dispatch(self) -> bool:
        return self.selection.can_dispatch

    def item_by_id(self, item_id: int) -> AnalysisItem | None:
        """按 1-based id 取候选条目（index = id - 1）"""
        index = item_id - 1
        if 0 <= index < len(self.items):
            return self.items[index]
        return None

    def locate_item(self, result: GapResult) -> AnalysisItem | None:
        """定位结果对应的候选条目

        主标识为 index = id - 1；越界时退回到需求文本精确匹配。
        需求文本不保证唯一，文本匹配只作为兜底。
        """
        item = self.item_by_id(result.id)
        if item is not None:
            return item
        text = result.requirement_text.strip()
        if not text:
            return None
        for candidate in self.items:
            if candidate.requirement_text.strip() == text:
                logger.warning(f"[Workflow] 结果 #{result.id} 按需求文本匹配到条目 #{candidate.id}")
                return candidate
        return None

    def skipped_indices(self) -> list[int]:
        """上一次分析中被跳过的条目 0-based 位置"""
        return [item.index for item in self.items if item.status == ItemStatus.SKIPPED]

    def selected_for_dispatch(self) -> list[GapResult]:
        """审阅阶段选中、可进入下游派发的结果"""
        return self.selection.selected_results()

    # ==================== 生命周期 ====================

    def load_requirements(self, texts: Iterable[str]) -> list[AnalysisItem]:
        """载入候选需求：idle → selecting，全部默认勾选

        Args:
            texts: 需求文本序列（顺序决定 id）

        Returns:
            候选条目列表
        """
        self.phase_machine.enter_selecting()
        self.items[:] = [
            AnalysisItem(id=position + 1, requirement_text=text)
            for position, text in enumerate(texts)
        ]
        self.selection.recompute()
        logger.info(f"[Workflow] 载入 {len(self.items)} 个候选需求")
        return self.items

    def reset(self) -> None:
        """整体重置：清空条目与结果，阶段回到 idle"""
        self.items.clear()
        self.store.clear()
        self.phase_machine.reset()
        self.selection.recompute()
        logger.info("[Workflow] 已重置")

    # ==================== 用户交互 ====================

    def set_checked(self, item_id: int, checked: bool) -> bool:
        """单个条目勾选变更（按当前阶段选择策略）"""
        applied = self.selection.set_checked(item_id, checked)
        self._after_selection_change()
        return applied

    def select_all(self, checked: bool) -> None:
        """全选 / 全不选"""
        self.selection.select_all(checked)
        self._after_selection_change()

    def toggle_all(self) -> bool:
        """反转全选"""
        new_state = self.selection.toggle_all()
        self._after_selection_change()
        return new_state

    # ==================== 分析 ====================

    async def start_analysis(self) -> SessionOutcome:
        """对 selecting 阶段勾选的条目进行分析

        Raises:
            RequestRejectedError: 未勾选任何条目（不发起请求，阶段不变）
            InvalidPhaseTransitionError: 当前不在 selecting 阶段
        """
        if self.phase != Phase.SELECTING:
            raise InvalidPhaseTransitionError(self.phase.value, Phase.ANALYZING.value)
        indices = self.selection.chosen_indices()
        if not indices:
            raise RequestRejectedError("请至少选择一个需求进行分析")

        chosen = set(indices)
        for item in self.items:
            item.disabled = True
            item.status = ItemStatus.QUEUED if item.index in chosen else ItemStatus.SKIPPED
        try:
            return await self._session.run(indices)
        finally:
            self._mark_unanswered_skipped(indices)

    async def analyze_skipped(self) -> SessionOutcome:
        """对上一次被跳过的条目进行补充分析（reviewed → analyzing → reviewed）

        Raises:
            RequestRejectedError: 没有被跳过的条目
            InvalidPhaseTransitionError: 当前不在 reviewed 阶段
        """
        if self.phase != Phase.REVIEWED:
            raise InvalidPhaseTransitionError(self.phase.value, Phase.ANALYZING.value)
        indices = self.skipped_indices()
        if not indices:
            raise RequestRejectedError("没有需要补充分析的需求")

        for index in indices:
            self.items[index].status = ItemStatus.QUEUED
        try:
            return await self._session.run(indices)
        finally:
            self._mark_unanswered_skipped(indices)

    # ==================== 控件同步 ====================

    def _mark_unanswered_skipped(self, indices: list[int]) -> None:
        # 未收到结果的条目标记为跳过，可再次补充分析
        for index in indices:
            if self.items[index].status in (ItemStatus.QUEUED, ItemStatus.ANALYZING):
                self.items[index].status = ItemStatus.SKIPPED

    def _after_selection_change(self) -> None:
        if self.phase == Phase.REVIEWED:
            self._sync_review_controls()

    def _sync_review_controls(self) -> None:
        """审阅阶段：无差距或未分析条目的选择控件禁用"""
        for item in self.items:
            result = self.store.get(item.id)
            item.disabled = result is None or not result.has_gap
            item.checked = result is not None and bool(result.selected)

    def _restore_controls(self) -> None:
        """首次分析失败回到 selecting：恢复候选控件"""
        if self.phase_machine.phase != Phase.SELECTING:
            return
        for item in self.items:
            item.disabled = False
        self.selection.recompute()
