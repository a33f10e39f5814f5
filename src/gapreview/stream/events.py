"""流事件类型与负载解码

将 Frame 解码为带类型的 StreamEvent。负载 JSON 解析失败视为协议失步，
抛出 ProtocolError（致命错误，由会话向上传播）。
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import TypeAdapter, ValidationError

from gapreview.core.exceptions import ProtocolError
from gapreview.models import GapResult
from gapreview.stream.decoder import Frame

# 与 GapResult.id 相同的宽松整数转换
_ID_ADAPTER = TypeAdapter(int)


class StreamEventType(str, Enum):
    """分析流事件类型"""

    ITEM_STARTED = "item-started"   # 条目开始分析（仅 UI 状态）
    RESULT = "result"               # 单条差距分析结果
    LOG = "log"                     # 日志行
    COMPLETE = "complete"           # 会话成功结束标记
    ERROR = "error"                 # 后端报告的致命错误


# 后端旧事件名
EVENT_ALIASES: dict[str, StreamEventType] = {
    "gap-started": StreamEventType.ITEM_STARTED,
    "gap": StreamEventType.RESULT,
}


def resolve_event_type(name: str) -> StreamEventType | None:
    """解析事件名称

    Args:
        name: 帧中的事件名

    Returns:
        事件类型，未识别时返回 None
    """
    try:
        return StreamEventType(name)
    except ValueError:
        return EVENT_ALIASES.get(name)


@dataclass
class StreamEvent:
    """已解码的流事件"""

    event_type: StreamEventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def item_id(self) -> int:
        """item-started 事件中的条目 id"""
        value = self.data.get("id")
        try:
            return _ID_ADAPTER.validate_python(value)
        except ValidationError as e:
            raise ProtocolError(
                f"{self.event_type.value} 事件缺少有效的 id: {value!r}",
                event_type=self.event_type.value,
            ) from e

    @property
    def message(self) -> str:
        """log / error 事件中的文本"""
        if self.event_type == StreamEventType.ERROR:
            value = self.data.get("error") or self.data.get("message")
        else:
            value = self.data.get("message")
        return "" if value is None else str(value)

    def to_result(self) -> GapResult:
        """将 result 事件负载转换为 GapResult

        兼容两种负载形式：扁平的 {id, requirementText, ...}
        以及包裹形式 {"gap": {...}} / {"result": {...}}。

        Raises:
            ProtocolError: 负载不符合结果结构
        """
        body = self.data
        for key in ("gap", "result"):
            if isinstance(body.get(key), dict):
                body = body[key]
                break
        try:
            return GapResult.model_validate(body)
        except ValidationError as e:
            raise ProtocolError(
                f"无法解析 result 负载: {e.error_count()} 个字段错误",
                event_type=self.event_type.value,
            ) from e


def decode_event(frame: Frame) -> StreamEvent | None:
    """将帧解码为 StreamEvent

    Args:
        frame: SSE 帧

    Returns:
        StreamEvent；未识别的事件名返回 None（负载不解析）

    Raises:
        ProtocolError: 负载不是合法的 JSON 对象
    """
    event_type = resolve_event_type(frame.event_type)
    if event_type is None:
        return None

    try:
        data = json.loads(frame.payload)
    except json.JSONDecodeError as e:
        raise ProtocolError(
            f"{frame.event_type} 事件负载不是合法 JSON: {e.msg}",
            event_type=frame.event_type,
        ) from e

    if not isinstance(data, dict):
        raise ProtocolError(
            f"{frame.event_type} 事件负载必须是 JSON 对象",
            event_type=frame.event_type,
        )
    return StreamEvent(event_type=event_type, data=data)
