"""选择聚合器

按当前阶段在两种互斥的选择策略之间切换：

- selecting 阶段：作用于候选条目（尚未分析），勾选表示提交分析
- reviewed 阶段：仅作用于存在差距的结果；无差距结果永久不可选

每次变更后重算 selected_count，并给出三态（全选 / 未选 / 部分选中）。
聚合器不拥有任何实体，只写候选的 checked 标志与结果的 selected 标志。
"""

from enum import Enum

from loguru import logger

from gapreview.models import AnalysisItem, GapResult
from gapreview.phase import Phase, PhaseStateMachine
from gapreview.store import GapCollectionStore


class SelectionState(str, Enum):
    """全选控件三态"""

    NONE = "none"
    PARTIAL = "partial"   # 驱动 indeterminate 显示
    ALL = "all"


class SelectionAggregator:
    """阶段感知的选择聚合器"""

    def __init__(
        self,
        candidates: list[AnalysisItem],
        store: GapCollectionStore,
        phase: PhaseStateMachine,
    ):
        """初始化聚合器

        Args:
            candidates: 候选条目列表（由工作流持有，原地更新）
            store: 差距结果集合
            phase: 阶段状态机
        """
        self._candidates = candidates
        self._store = store
        self._phase = phase
        self._selected_count = 0
        self._selectable_count = 0

    # ==================== 只读聚合 ====================

    @property
    def selected_count(self) -> int:
        """当前策略下已选中的数量"""
        return self._selected_count

    @property
    def selectable_count(self) -> int:
        """当前策略下可选的数量"""
        return self._selectable_count

    @property
    def state(self) -> SelectionState:
        """全选控件三态"""
        if self._selected_count == 0:
            return SelectionState.NONE
        if self._selected_count == self._selectable_count:
            return SelectionState.ALL
        return SelectionState.PARTIAL

    @property
    def is_indeterminate(self) -> bool:
        return self.state == SelectionState.PARTIAL

    @property
    def can_analyze(self) -> bool:
        """分析按钮是否可用（selecting 阶段至少勾选一个）"""
        return self._phase.phase == Phase.SELECTING and self._selected_count > 0

    @property
    def can_dispatch(self) -> bool:
        """派发按钮是否可用（reviewed 阶段至少选中一个可执行项）"""
        return self._phase.phase == Phase.REVIEWED and self._selected_count > 0

    def chosen_indices(self) -> list[int]:
        """selecting 阶段勾选的候选条目 0-based 位置"""
        return [item.index for item in self._candidate_pool() if item.checked]

    def selected_results(self) -> list[GapResult]:
        """reviewed 阶段选中的可执行结果（保持到达顺序）"""
        return [r for r in self._store.actionable() if r.selected]

    def is_selectable(self, item_id: int) -> bool:
        """条目在当前策略下是否可选

        Args:
            item_id: 1-based 条目 id
        """
        if self._uses_candidates():
            item = self._find_candidate(item_id)
            return item is not None and not item.disabled
        result = self._store.get(item_id)
        return result is not None and bool(result.has_gap)

    # ==================== 变更操作 ====================

    def set_checked(self, item_id: int, checked: bool) -> bool:
        """单个条目勾选 / 取消

        Args:
            item_id: 1-based 条目 id
            checked: 目标状态

        Returns:
            是否实际生效（不可选条目或非交互阶段返回 False）
        """
        applied = False
        if self._is_interactive():
            if self._uses_candidates():
                item = self._find_candidate(item_id)
                if item is not None and not item.disabled:
                    item.checked = checked
                    applied = True
            else:
                result = self._store.get(item_id)
                if result is not None and result.has_gap:
                    result.selected = checked
                    applied = True
        if not applied:
            logger.debug(f"[Selection] 忽略条目 {item_id} 的选择变更（阶段: {self._phase.phase.value}）")
        self.recompute()
        return applied

    def select_all(self, checked: bool) -> None:
        """全选 / 全不选（仅作用于当前策略下的可选条目）

        Args:
            checked: 目标状态
        """
        if self._is_interactive():
            self._apply_uniform(checked)
        self.recompute()

    def toggle_all(self) -> bool:
        """反转全选：任一已选中则全部取消，否则全部选中

        Returns:
            应用后的统一状态
        """
        new_state = not self._any_selected()
        if self._is_interactive():
            self._apply_uniform(new_state)
        self.recompute()
        return new_state

    def reveal_for_review(self, select_actionable: bool = True) -> None:
        """进入审阅阶段时初始化结果的选中状态

        存在差距的结果默认选中；无差距结果一律取消选中。

        Args:
            select_actionable: 是否默认选中存在差距的结果
        """
        for result in self._store:
            result.selected = bool(result.has_gap) and select_actionable
        self.recompute()

    def recompute(self) -> None:
        """按当前策略重算计数缓存"""
        if self._uses_candidates():
            pool = self._candidate_pool()
            self._selectable_count = len(pool)
            self._selected_count = sum(1 for item in pool if item.checked)
        else:
            actionable = self._store.actionable()
            self._selectable_count = len(actionable)
            self._selected_count = sum(1 for r in actionable if r.selected)

    # ==================== 内部方法 ====================

    def _uses_candidates(self) -> bool:
        return self._phase.phase in (Phase.IDLE, Phase.SELECTING)

    def _is_interactive(self) -> bool:
        return self._phase.phase in (Phase.SELECTING, Phase.REVIEWED)

    def _candidate_pool(self) -> list[AnalysisItem]:
        return [item for item in self._candidates if not item.disabled]

    def _find_candidate(self, item_id: int) -> AnalysisItem | None:
        index = item_id - 1
        if 0 <= index < len(self._candidates) and self._candidates[index].id == item_id:
            return self._candidates[index]
        for item in self._candidates:
            if item.id == item_id:
                return item
        return None

    def _any_selected(self) -> bool:
        if self._uses_candidates():
            return any(item.checked for item in self._candidate_pool())
        return any(r.selected for r in self._store.actionable())

    def _apply_uniform(self, checked: bool) -> None:
        if self._uses_candidates():
            for item in self._candidate_pool():
                item.checked = checked
        else:
            for result in self._store.actionable():
                result.selected = checked
