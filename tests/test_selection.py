"""测试选择聚合器"""

import pytest

from gapreview.models import AnalysisItem, GapResult
from gapreview.phase import Phase, PhaseStateMachine
from gapreview.selection import SelectionAggregator, SelectionState
from gapreview.store import GapCollectionStore


class SelectionHarness:
    """聚合器测试环境"""

    def __init__(self, count: int = 4):
        self.candidates = [AnalysisItem(id=i + 1, requirement_text=f"req {i + 1}") for i in range(count)]
        self.store = GapCollectionStore()
        self.phase = PhaseStateMachine()
        self.phase.enter_selecting()
        self.aggregator = SelectionAggregator(self.candidates, self.store, self.phase)
        self.aggregator.recompute()

    def review(self, outcomes: dict[int, bool]) -> None:
        """模拟一次成功分析：写入结果并进入 reviewed"""
        self.phase.begin_analysis(len(outcomes))
        for item_id, has_gap in outcomes.items():
            self.store.append(GapResult(id=item_id, has_gap=has_gap))
        self.phase.complete_analysis()
        self.aggregator.reveal_for_review()


class TestSelectingPhase:
    """selecting 阶段策略测试"""

    @pytest.fixture
    def harness(self) -> SelectionHarness:
        return SelectionHarness()

    def test_all_checked_initially(self, harness: SelectionHarness) -> None:
        """测试候选默认全部勾选"""
        agg = harness.aggregator
        assert agg.selected_count == 4
        assert agg.state == SelectionState.ALL
        assert agg.can_analyze
        assert agg.chosen_indices() == [0, 1, 2, 3]

    def test_single_toggle(self, harness: SelectionHarness) -> None:
        """测试单个条目取消勾选"""
        agg = harness.aggregator
        assert agg.set_checked(2, False) is True
        assert agg.selected_count == 3
        assert agg.state == SelectionState.PARTIAL
        assert agg.is_indeterminate
        assert agg.chosen_indices() == [0, 2, 3]

    def test_disabled_candidate_ignored(self, harness: SelectionHarness) -> None:
        """测试禁用条目不参与选择"""
        harness.candidates[0].disabled = True
        harness.aggregator.recompute()
        agg = harness.aggregator
        assert agg.set_checked(1, False) is False
        agg.select_all(False)
        assert harness.candidates[0].checked is True
        assert agg.selectable_count == 3
        assert agg.selected_count == 0
        assert agg.state == SelectionState.NONE
        assert not agg.can_analyze

    def test_select_all(self, harness: SelectionHarness) -> None:
        """测试全选 / 全不选"""
        agg = harness.aggregator
        agg.select_all(False)
        assert agg.chosen_indices() == []
        agg.select_all(True)
        assert agg.selected_count == 4

    def test_toggle_all_inverts_when_any_checked(self, harness: SelectionHarness) -> None:
        """测试任一勾选时反转为全部取消"""
        agg = harness.aggregator
        agg.select_all(False)
        agg.set_checked(3, True)
        assert agg.toggle_all() is False
        assert agg.selected_count == 0

    @pytest.mark.parametrize("initial", [True, False])
    def test_toggle_all_twice_restores_uniform_state(self, harness: SelectionHarness, initial: bool) -> None:
        """测试统一状态下两次反转恢复原状"""
        agg = harness.aggregator
        agg.select_all(initial)
        before = [item.checked for item in harness.candidates]
        agg.toggle_all()
        agg.toggle_all()
        assert [item.checked for item in harness.candidates] == before

    def test_unknown_item(self, harness: SelectionHarness) -> None:
        """测试不存在的条目"""
        assert harness.aggregator.set_checked(99, False) is False
        assert not harness.aggregator.is_selectable(99)


class TestReviewedPhase:
    """reviewed 阶段策略测试"""

    @pytest.fixture
    def harness(self) -> SelectionHarness:
        harness = SelectionHarness()
        harness.review({1: False, 2: True, 3: True})
        return harness

    def test_reveal_defaults_actionable_selected(self, harness: SelectionHarness) -> None:
        """测试进入审阅后可执行项默认选中"""
        agg = harness.aggregator
        assert harness.store.get(1).selected is False
        assert harness.store.get(2).selected is True
        assert agg.selectable_count == 2
        assert agg.selected_count == 2
        assert agg.state == SelectionState.ALL
        assert agg.can_dispatch
        assert not agg.can_analyze

    def test_no_gap_never_selectable(self, harness: SelectionHarness) -> None:
        """测试无差距结果不可选"""
        agg = harness.aggregator
        assert not agg.is_selectable(1)
        assert agg.set_checked(1, True) is False
        agg.select_all(True)
        agg.toggle_all()
        agg.toggle_all()
        assert harness.store.get(1).selected is False

    def test_unanalyzed_item_not_selectable(self, harness: SelectionHarness) -> None:
        """测试未分析条目在审阅阶段不可选"""
        assert not harness.aggregator.is_selectable(4)
        assert harness.aggregator.set_checked(4, True) is False

    def test_deselect_drives_counts(self, harness: SelectionHarness) -> None:
        """测试取消选中后计数与按钮状态"""
        agg = harness.aggregator
        agg.set_checked(2, False)
        assert agg.selected_count == 1
        assert agg.state == SelectionState.PARTIAL
        assert [r.id for r in agg.selected_results()] == [3]
        agg.set_checked(3, False)
        assert agg.state == SelectionState.NONE
        assert not agg.can_dispatch

    def test_toggle_all_within_actionable(self, harness: SelectionHarness) -> None:
        """测试反转只作用于可执行项"""
        agg = harness.aggregator
        assert agg.toggle_all() is False
        assert agg.selected_count == 0
        assert agg.toggle_all() is True
        assert agg.selected_count == 2

    def test_candidate_flags_untouched(self, harness: SelectionHarness) -> None:
        """测试审阅阶段的操作不修改候选勾选"""
        before = [item.checked for item in harness.candidates]
        harness.aggregator.select_all(False)
        assert [item.checked for item in harness.candidates] == before


class TestCrossPhase:
    """跨阶段行为测试"""

    def test_selecting_select_all_then_review_keeps_no_gap_unselected(self) -> None:
        """测试 selecting 全选后进入审阅，无差距结果仍不可选"""
        harness = SelectionHarness()
        harness.aggregator.select_all(True)
        harness.review({1: False, 2: True})
        assert harness.store.get(1).selected is False
        assert harness.store.get(2).selected is True

    def test_mutations_ignored_while_analyzing(self) -> None:
        """测试分析中不接受选择变更"""
        harness = SelectionHarness()
        harness.phase.begin_analysis(4)
        assert harness.phase.phase == Phase.ANALYZING
        assert harness.aggregator.set_checked(1, False) is False
        harness.aggregator.select_all(False)
        assert all(item.checked for item in harness.candidates)
