"""数据模型

定义候选需求条目（AnalysisItem）与后端返回的差距分析结果（GapResult）。

标识约定：AnalysisItem.id 从 1 开始，等于该条目在原始需求列表中的位置 + 1，
即 index = id - 1。GapResult.id 与对应的 AnalysisItem.id 相同。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Complexity(str, Enum):
    """差距复杂度"""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"
    NONE = "None"          # 后端显式标记无差距（none / n/a）
    UNKNOWN = "Unknown"    # 缺失或无法识别


_COMPLEXITY_LOOKUP = {
    "low": Complexity.LOW,
    "medium": Complexity.MEDIUM,
    "high": Complexity.HIGH,
    "critical": Complexity.CRITICAL,
    "none": Complexity.NONE,
    "n/a": Complexity.NONE,
    "na": Complexity.NONE,
    "-": Complexity.NONE,
}


class ItemStatus(str, Enum):
    """候选条目的显示状态（仅用于 UI，不参与核心计数）"""

    PENDING = "pending"
    QUEUED = "queued"
    ANALYZING = "analyzing"
    SKIPPED = "skipped"
    NO_GAP = "no_gap"
    GAP_FOUND = "gap_found"


@dataclass
class AnalysisItem:
    """候选需求条目"""

    id: int
    """1-based 标识，等于原始列表位置 + 1"""

    requirement_text: str
    """需求文本"""

    checked: bool = True
    """选择阶段是否勾选（提交分析）"""

    disabled: bool = False
    """选择控件是否禁用"""

    status: ItemStatus = ItemStatus.PENDING
    """显示状态"""

    @property
    def index(self) -> int:
        """0-based 位置（发送给后端的 selectedIndices 使用此值）"""
        return self.id - 1


class GapResult(BaseModel):
    """单个条目的差距分析结果

    从 result 事件负载解析，字段名兼容后端的 camelCase 与旧字段名。
    has_gap 在负载中可显式给出；否则由无差距分类器在应用结果时计算。
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(description="条目标识（与 AnalysisItem.id 一致）")
    requirement_text: str = Field(
        default="",
        validation_alias=AliasChoices("requirementText", "requirement", "requirement_text"),
        description="需求文本",
    )
    complexity: Complexity = Field(default=Complexity.UNKNOWN, description="复杂度")
    current_state: str = Field(
        default="",
        validation_alias=AliasChoices("currentState", "current_state"),
        description="当前实现状态",
    )
    gap_description: str = Field(
        default="",
        validation_alias=AliasChoices("gap", "gapDescription", "gap_description"),
        description="差距描述",
    )
    estimated_effort: str = Field(
        default="",
        validation_alias=AliasChoices("estimatedEffort", "estimated_effort"),
        description="预估工作量",
    )
    details: str | None = Field(default=None, description="补充说明")
    has_gap: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("hasGap", "has_gap"),
        description="是否存在差距（应用后必为 bool）",
    )
    selected: bool = Field(default=False, description="审阅阶段是否选中（仅 has_gap 时有意义）")

    @field_validator("complexity", mode="before")
    @classmethod
    def _normalize_complexity(cls, value: Any) -> Complexity:
        if isinstance(value, Complexity):
            return value
        if value is None:
            return Complexity.UNKNOWN
        return _COMPLEXITY_LOOKUP.get(str(value).strip().lower(), Complexity.UNKNOWN)

    @field_validator("requirement_text", "current_state", "gap_description", "estimated_effort", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def is_actionable(self) -> bool:
        """是否为可执行项（存在差距，可进入下游派发）"""
        return bool(self.has_gap)

    @property
    def index(self) -> int:
        """对应候选条目的 0-based 位置"""
        return self.id - 1
