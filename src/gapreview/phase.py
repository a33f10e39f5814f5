"""阶段状态机

阶段决定哪一种选择策略生效：

    idle → selecting → analyzing → reviewed
                ↑           │
                └── 失败 ───┘

- selecting → analyzing 需要至少选中一个候选条目，否则拒绝且不改变状态
- analyzing → reviewed 仅在会话收到 complete 事件并正常结束后发生
- reviewed → analyzing 为「补充分析」子运行，结束后回到 reviewed，不清空已有结果
- 任意阶段 → idle 为整体重置
"""

from enum import Enum

from loguru import logger

from gapreview.core.exceptions import InvalidPhaseTransitionError, RequestRejectedError


class Phase(str, Enum):
    """工作流阶段"""

    IDLE = "idle"
    SELECTING = "selecting"
    ANALYZING = "analyzing"
    REVIEWED = "reviewed"


class PhaseStateMachine:
    """阶段状态机

    持有当前阶段值，并记录进入 analyzing 之前的阶段，
    用于区分首次分析与补充分析子运行。
    """

    def __init__(self, initial: Phase = Phase.IDLE):
        self._phase = initial
        self._entered_from: Phase | None = None

    @property
    def phase(self) -> Phase:
        """当前阶段"""
        return self._phase

    @property
    def is_sub_run(self) -> bool:
        """当前分析是否为从 reviewed 重新进入的子运行"""
        return self._phase == Phase.ANALYZING and self._entered_from == Phase.REVIEWED

    def enter_selecting(self) -> None:
        """候选条目可供选择：idle → selecting"""
        if self._phase not in (Phase.IDLE, Phase.SELECTING):
            raise InvalidPhaseTransitionError(self._phase.value, Phase.SELECTING.value)
        self._set(Phase.SELECTING)

    def begin_analysis(self, chosen_count: int) -> None:
        """开始一次分析会话

        Args:
            chosen_count: 本次提交的条目数

        Raises:
            RequestRejectedError: 未选择任何条目（状态不变）
            InvalidPhaseTransitionError: 当前阶段不允许开始分析
        """
        if self._phase not in (Phase.SELECTING, Phase.REVIEWED):
            raise InvalidPhaseTransitionError(self._phase.value, Phase.ANALYZING.value)
        if chosen_count <= 0:
            raise RequestRejectedError("请至少选择一个需求进行分析")
        self._entered_from = self._phase
        self._set(Phase.ANALYZING)

    def complete_analysis(self) -> None:
        """会话成功结束：analyzing → reviewed"""
        self._require(Phase.ANALYZING, Phase.REVIEWED)
        self._entered_from = None
        self._set(Phase.REVIEWED)

    def fail_analysis(self) -> Phase:
        """会话失败：首次分析回到 selecting，子运行回到 reviewed

        Returns:
            回退后的阶段
        """
        target = Phase.REVIEWED if self._entered_from == Phase.REVIEWED else Phase.SELECTING
        self._require(Phase.ANALYZING, target)
        self._entered_from = None
        self._set(target)
        return target

    def reset(self) -> None:
        """整体重置：任意阶段 → idle"""
        self._entered_from = None
        self._set(Phase.IDLE)

    def _require(self, expected: Phase, target: Phase) -> None:
        if self._phase != expected:
            raise InvalidPhaseTransitionError(self._phase.value, target.value)

    def _set(self, target: Phase) -> None:
        if target != self._phase:
            logger.debug(f"[Phase] {self._phase.value} → {target.value}")
        self._phase = target
