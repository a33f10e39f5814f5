"""事件流层

- SSEFrameDecoder: 增量 SSE 帧解码
- StreamEvent: 带类型的事件与负载解码
"""

from gapreview.stream.decoder import Frame, SSEFrameDecoder, decode_frames, iter_frames, parse_block
from gapreview.stream.events import (
    EVENT_ALIASES,
    StreamEvent,
    StreamEventType,
    decode_event,
    resolve_event_type,
)

__all__ = [
    # Decoder
    "Frame",
    "SSEFrameDecoder",
    "decode_frames",
    "iter_frames",
    "parse_block",
    # Events
    "EVENT_ALIASES",
    "StreamEvent",
    "StreamEventType",
    "decode_event",
    "resolve_event_type",
]
