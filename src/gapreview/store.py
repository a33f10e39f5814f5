"""差距结果集合

按到达顺序保存 GapResult，维护可执行项（has_gap）计数缓存。
集合在一个工作流生命周期内只增不减，只能通过 clear() 整体清空。
"""

from collections.abc import Iterable, Iterator
from enum import Enum

from loguru import logger

from gapreview.models import GapResult


class DuplicatePolicy(str, Enum):
    """重复 id 的处理方式"""

    UPSERT = "upsert"   # 后到覆盖，保留原位置
    APPEND = "append"   # 追加保留（可能重复计数）


class GapCollectionStore:
    """差距结果集合

    Attributes:
        duplicate_policy: 重复 id 的处理方式
    """

    def __init__(self, duplicate_policy: DuplicatePolicy | str = DuplicatePolicy.UPSERT):
        """初始化集合

        Args:
            duplicate_policy: 重复 id 的处理方式
        """
        self.duplicate_policy = DuplicatePolicy(duplicate_policy)
        self._results: list[GapResult] = []
        self._actionable_count = 0

    def append(self, result: GapResult) -> None:
        """添加结果并重算可执行项计数

        UPSERT 策略下，已存在的 id 原位替换；APPEND 策略下直接追加。

        Args:
            result: 已完成 has_gap 分类的结果
        """
        if self.duplicate_policy == DuplicatePolicy.UPSERT:
            position = self._position_of(result.id)
            if position is not None:
                logger.debug(f"[Store] id={result.id} 已存在，覆盖旧结果")
                self._results[position] = result
                self._recount()
                return
        self._results.append(result)
        self._recount()

    def replace_all(self, results: Iterable[GapResult]) -> None:
        """整体替换集合内容

        Args:
            results: 新的结果序列
        """
        self._results = list(results)
        self._recount()

    def clear(self) -> None:
        """清空集合"""
        self._results = []
        self._actionable_count = 0

    def actionable(self) -> list[GapResult]:
        """返回存在差距的结果（保持到达顺序）"""
        return [r for r in self._results if r.has_gap]

    def no_gap(self) -> list[GapResult]:
        """返回无差距的结果（保持到达顺序）"""
        return [r for r in self._results if not r.has_gap]

    def count_by_outcome(self) -> tuple[int, int]:
        """统计结果

        Returns:
            (actionable_count, no_gap_count)
        """
        return self._actionable_count, len(self._results) - self._actionable_count

    @property
    def actionable_count(self) -> int:
        return self._actionable_count

    def get(self, item_id: int) -> GapResult | None:
        """按 id 查找结果（APPEND 策略下返回最后一次到达的结果）"""
        for result in reversed(self._results):
            if result.id == item_id:
                return result
        return None

    def ids(self) -> set[int]:
        """已有结果的 id 集合"""
        return {r.id for r in self._results}

    def _position_of(self, item_id: int) -> int | None:
        for position, existing in enumerate(self._results):
            if existing.id == item_id:
                return position
        return None

    def _recount(self) -> None:
        self._actionable_count = sum(1 for r in self._results if r.has_gap)

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[GapResult]:
        return iter(list(self._results))

    def __contains__(self, item_id: int) -> bool:
        return self._position_of(item_id) is not None
