"""测试 SSE 帧解码器"""

import pytest

from gapreview.core.exceptions import ProtocolError
from gapreview.stream.decoder import Frame, SSEFrameDecoder, decode_frames, iter_frames, parse_block


class TestParseBlock:
    """parse_block 单元测试"""

    def test_event_and_data(self) -> None:
        """测试标准块"""
        frame = parse_block('event: result\ndata: {"id":1}')
        assert frame == Frame(event_type="result", payload='{"id":1}')

    def test_without_space_after_colon(self) -> None:
        """测试冒号后无空格"""
        frame = parse_block('event:log\ndata:{"message":"hi"}')
        assert frame == Frame(event_type="log", payload='{"message":"hi"}')

    def test_missing_event_line(self) -> None:
        """测试缺少 event 行的块被丢弃"""
        assert parse_block('data: {"id":1}') is None

    def test_missing_data_line(self) -> None:
        """测试缺少 data 行的块被丢弃"""
        assert parse_block("event: complete") is None

    def test_unrecognized_lines_only(self) -> None:
        """测试没有可识别行的块被丢弃"""
        assert parse_block("id: 7\nretry: 1000") is None

    def test_comment_lines_ignored(self) -> None:
        """测试注释行"""
        frame = parse_block(': keep-alive\nevent: log\ndata: {}')
        assert frame is not None
        assert frame.event_type == "log"

    def test_multiple_data_lines_joined(self) -> None:
        """测试多个 data 行按换行拼接"""
        frame = parse_block('event: result\ndata: {"id":\ndata: 2}')
        assert frame is not None
        assert frame.payload == '{"id":\n2}'


class TestSSEFrameDecoder:
    """SSEFrameDecoder 单元测试"""

    def test_single_complete_frame(self) -> None:
        """测试完整帧立即产出"""
        decoder = SSEFrameDecoder()
        frames = decoder.feed(b'event: result\ndata: {"id":1}\n\n')
        assert frames == [Frame("result", '{"id":1}')]
        assert decoder.pending == ""

    def test_frame_withheld_until_boundary(self) -> None:
        """测试结束边界到达前不产出帧"""
        decoder = SSEFrameDecoder()
        assert decoder.feed(b'event: result\ndata: {"id":1}\n') == []
        assert decoder.feed(b"\n") == [Frame("result", '{"id":1}')]

    @pytest.mark.parametrize("first_cut,second_cut", [(1, 5), (6, 14), (13, 20), (20, 27)])
    def test_split_across_two_boundaries(self, first_cut: int, second_cut: int) -> None:
        """测试跨任意两个字节边界切分只产出一个帧"""
        raw = b'event: result\ndata: {"id":1}'
        chunks = [raw[:first_cut], raw[first_cut:second_cut], raw[second_cut:]]
        frames = decode_frames(chunks)
        assert frames == [Frame("result", '{"id":1}')]

    def test_blank_line_split_between_chunks(self) -> None:
        """测试空行分隔符被拆到两个块中"""
        decoder = SSEFrameDecoder()
        assert decoder.feed(b'event: log\ndata: {"message":"a"}\n') == []
        frames = decoder.feed(b'\nevent: log\ndata: {"message":"b"}\n\n')
        assert [f.payload for f in frames] == ['{"message":"a"}', '{"message":"b"}']

    def test_multiple_frames_in_order(self) -> None:
        """测试一个块内多个帧按到达顺序产出"""
        data = (
            b'event: item-started\ndata: {"id":1}\n\n'
            b'event: result\ndata: {"id":1}\n\n'
            b'event: complete\ndata: {"success":true}\n\n'
        )
        frames = SSEFrameDecoder().feed(data)
        assert [f.event_type for f in frames] == ["item-started", "result", "complete"]

    def test_incomplete_blocks_dropped(self) -> None:
        """测试不完整的块静默丢弃"""
        data = b'event: result\n\ndata: {"id":1}\n\nevent: log\ndata: {"message":"ok"}\n\n'
        frames = SSEFrameDecoder().feed(data)
        assert frames == [Frame("log", '{"message":"ok"}')]

    def test_crlf_line_endings(self) -> None:
        """测试 CRLF 换行（含跨块的 \\r\\n）"""
        decoder = SSEFrameDecoder()
        assert decoder.feed(b'event: log\r\ndata: {"message":"x"}\r\n\r') == []
        assert decoder.feed(b"\n") == [Frame("log", '{"message":"x"}')]

    def test_multibyte_character_split(self) -> None:
        """测试多字节 UTF-8 字符被拆分到两个块"""
        raw = 'event: log\ndata: {"message":"差距"}\n\n'.encode("utf-8")
        cut = raw.index("差".encode("utf-8")) + 1
        decoder = SSEFrameDecoder()
        assert decoder.feed(raw[:cut]) == []
        frames = decoder.feed(raw[cut:])
        assert frames[0].payload == '{"message":"差距"}'

    def test_invalid_utf8_raises_protocol_error(self) -> None:
        """测试非法编码"""
        decoder = SSEFrameDecoder()
        with pytest.raises(ProtocolError):
            decoder.feed(b"event: log\ndata: \xff\xfe\n\n")

    def test_flush_emits_trailing_block(self) -> None:
        """测试流结束时残余块被产出"""
        decoder = SSEFrameDecoder()
        assert decoder.feed(b'event: complete\ndata: {"success":true}') == []
        assert decoder.flush() == [Frame("complete", '{"success":true}')]

    def test_flush_drops_incomplete_trailing_block(self) -> None:
        """测试流结束时不完整的残余块被丢弃"""
        decoder = SSEFrameDecoder()
        decoder.feed(b"event: result")
        assert decoder.flush() == []

    def test_not_reusable_after_flush(self) -> None:
        """测试 flush 后不能继续写入"""
        decoder = SSEFrameDecoder()
        decoder.flush()
        assert decoder.flush() == []
        with pytest.raises(RuntimeError):
            decoder.feed(b"event: log\n")

    def test_frame_count(self) -> None:
        """测试帧计数"""
        decoder = SSEFrameDecoder()
        decoder.feed(b'event: log\ndata: {}\n\nevent: log\ndata: {}\n\n')
        assert decoder.frame_count == 2


class TestIterFrames:
    """iter_frames 异步迭代测试"""

    @pytest.mark.asyncio
    async def test_async_chunks(self) -> None:
        """测试逐块读取"""

        async def chunks():
            yield b"event: res"
            yield b'ult\ndata: {"id":3}\n'
            yield b'\nevent: complete\ndata: {"success":true}'

        frames = [frame async for frame in iter_frames(chunks())]
        assert frames == [
            Frame("result", '{"id":3}'),
            Frame("complete", '{"success":true}'),
        ]

    @pytest.mark.asyncio
    async def test_empty_stream(self) -> None:
        """测试空流"""

        async def chunks():
            return
            yield b""

        frames = [frame async for frame in iter_frames(chunks())]
        assert frames == []
