"""SSE 事件帧解码器

将逐块到达的字节流切分为 (event_type, payload) 帧。

帧格式：
    event: <name>
    data: <json>
    <空行>

- 帧仅在其结束边界（空行）完整缓冲后才产出，跨块的残余数据留待下一次读取
- 缺少 event 行或 data 行的块静默丢弃（不是错误）
- 不解析 payload 内容，结构化解码由调用方负责
- 每个流会话创建新的解码器实例，不复用
"""

import codecs
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass

from loguru import logger

from gapreview.core.exceptions import ProtocolError

_BLOCK_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class Frame:
    """一个完整的 SSE 帧"""

    event_type: str
    """事件名称"""

    payload: str
    """原始 data 内容（未解析）"""


def parse_block(block: str) -> Frame | None:
    """解析单个以空行分隔的块

    接受 `event:` / `data:` 后带或不带单个空格；以 `:` 开头的注释行忽略；
    多个 data 行按 SSE 标准以换行拼接。

    Args:
        block: 不含结尾空行的块文本

    Returns:
        Frame，若缺少 event 或 data 则返回 None
    """
    event_type = ""
    data_lines: list[str] = []

    for raw_line in block.split("\n"):
        line = raw_line.rstrip("\r")
        if not line or line.startswith(":"):
            continue
        field, sep, value = line.partition(":")
        if not sep:
            continue
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_type = value
        elif field == "data":
            data_lines.append(value)

    payload = "\n".join(data_lines)
    if not event_type or not payload:
        return None
    return Frame(event_type=event_type, payload=payload)


class SSEFrameDecoder:
    """增量 SSE 帧解码器

    使用方式：
        decoder = SSEFrameDecoder()
        for chunk in chunks:
            for frame in decoder.feed(chunk):
                ...
        for frame in decoder.flush():
            ...
    """

    def __init__(self, encoding: str = "utf-8"):
        """初始化解码器

        Args:
            encoding: 字节流编码
        """
        self._text_decoder = codecs.getincrementaldecoder(encoding)()
        self._buffer = ""
        self._closed = False
        self._frame_count = 0

    @property
    def pending(self) -> str:
        """尚未构成完整帧的缓冲内容"""
        return self._buffer

    @property
    def frame_count(self) -> int:
        """已产出的帧数"""
        return self._frame_count

    def feed(self, chunk: bytes) -> list[Frame]:
        """追加一块字节数据，返回其中已完整的帧

        Args:
            chunk: 新到达的字节

        Returns:
            按到达顺序排列的完整帧列表（可能为空）

        Raises:
            ProtocolError: 字节无法按编码解码
            RuntimeError: 解码器已 flush
        """
        if self._closed:
            raise RuntimeError("SSEFrameDecoder 已结束，不能继续写入")

        self._buffer += self._decode(chunk, final=False)
        # \r\n 可能跨块，拼接后再统一换行符
        self._buffer = self._buffer.replace("\r\n", "\n")

        blocks = self._buffer.split(_BLOCK_SEPARATOR)
        self._buffer = blocks.pop()
        return self._collect(blocks)

    def flush(self) -> list[Frame]:
        """流结束时调用，将剩余缓冲作为最后一个块处理

        Returns:
            剩余的帧（0 或 1 个）
        """
        if self._closed:
            return []
        self._closed = True

        self._buffer += self._decode(b"", final=True)
        remainder = self._buffer.replace("\r\n", "\n")
        self._buffer = ""
        if not remainder.strip():
            return []
        return self._collect(remainder.split(_BLOCK_SEPARATOR))

    def _decode(self, data: bytes, final: bool) -> str:
        try:
            return self._text_decoder.decode(data, final=final)
        except UnicodeDecodeError as e:
            raise ProtocolError(f"事件流编码错误: {e}") from e

    def _collect(self, blocks: list[str]) -> list[Frame]:
        frames: list[Frame] = []
        for block in blocks:
            if not block.strip():
                continue
            frame = parse_block(block)
            if frame is None:
                logger.debug(f"[SSE] 丢弃不完整的块: {block[:80]!r}")
                continue
            frames.append(frame)
        self._frame_count += len(frames)
        return frames


async def iter_frames(byte_stream: AsyncIterator[bytes]) -> AsyncIterator[Frame]:
    """从异步字节流中逐个产出帧

    每块读取是一个挂起点；底层流结束时 flush 残余数据。

    Args:
        byte_stream: 异步字节迭代器（如 httpx Response.aiter_bytes()）

    Yields:
        按到达顺序的 Frame
    """
    decoder = SSEFrameDecoder()
    async for chunk in byte_stream:
        for frame in decoder.feed(chunk):
            yield frame
    for frame in decoder.flush():
        yield frame


def decode_frames(chunks: Iterable[bytes]) -> list[Frame]:
    """同步解码一组字节块（便于离线回放和测试）

    Args:
        chunks: 字节块序列

    Returns:
        全部帧
    """
    decoder = SSEFrameDecoder()
    frames: list[Frame] = []
    for chunk in chunks:
        frames.extend(decoder.feed(chunk))
    frames.extend(decoder.flush())
    return frames
