"""GapReview 自定义异常类"""


class GapReviewError(Exception):
    """GapReview 基础异常类"""

    pass


class RequestRejectedError(GapReviewError):
    """请求被拒绝（未选择任何条目，不发起网络请求）"""

    pass


class TransportError(GapReviewError):
    """网络或响应错误"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ProtocolError(GapReviewError):
    """事件流协议错误（负载无法解析，视为协议失步）"""

    def __init__(self, message: str, event_type: str | None = None):
        self.event_type = event_type
        super().__init__(message)


class BackendReportedError(GapReviewError):
    """后端通过 error 事件显式报告的错误"""

    pass


class InvalidPhaseTransitionError(GapReviewError):
    """非法的阶段转换"""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"不允许从阶段 '{current}' 转换到 '{target}'")
