"""无差距分类器

判断一条差距分析结果是否表示「无差距 / 已实现」。
后端没有统一的无差距标记，这里通过差距描述中的常见短语识别。
"""

from typing import Callable

from gapreview.models import Complexity, GapResult

# 分类器签名：返回 True 表示无差距
NoGapPredicate = Callable[[GapResult], bool]

DEFAULT_NO_GAP_PATTERNS: tuple[str, ...] = (
    "no gap",
    "none",
    "no changes needed",
    "already implemented",
    "fully implemented",
    "no action",
    "requirement met",
    "requirement is met",
    "no modification",
    "no work needed",
    "n/a",
    "not applicable",
    "already exists",
    "already in place",
    "no additional",
    "fully met",
    "compliant",
    "complete as-is",
    "nothing to",
    "no missing",
)


class NoGapClassifier:
    """基于短语匹配的无差距分类器

    判定顺序：
    1. 负载中显式给出 hasGap 时直接采用
    2. 复杂度显式为 none / n/a
    3. 差距描述（小写）包含任一无差距短语
    """

    def __init__(self, patterns: tuple[str, ...] | list[str] | None = None):
        """初始化分类器

        Args:
            patterns: 无差距短语列表，默认使用 DEFAULT_NO_GAP_PATTERNS
        """
        source = DEFAULT_NO_GAP_PATTERNS if patterns is None else patterns
        self._patterns = tuple(p.lower() for p in source)

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    def is_no_gap(self, result: GapResult) -> bool:
        """判断结果是否为无差距

        Args:
            result: 差距分析结果

        Returns:
            True 表示无差距（不可派发）
        """
        if result.has_gap is not None:
            return not result.has_gap
        if result.complexity == Complexity.NONE:
            return True
        text = result.gap_description.lower()
        return any(p in text for p in self._patterns)

    def __call__(self, result: GapResult) -> bool:
        return self.is_no_gap(result)


def is_no_gap(result: GapResult) -> bool:
    """使用默认短语表判断结果是否为无差距"""
    return _default_classifier.is_no_gap(result)


_default_classifier = NoGapClassifier()
