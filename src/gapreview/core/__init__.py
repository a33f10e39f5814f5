"""GapReview 核心层

提供全局配置和异常定义。
"""

from .config import GapReviewSettings, get_settings, reset_settings
from .exceptions import (
    BackendReportedError,
    GapReviewError,
    InvalidPhaseTransitionError,
    ProtocolError,
    RequestRejectedError,
    TransportError,
)

__all__ = [
    # Config
    "GapReviewSettings",
    "get_settings",
    "reset_settings",
    # Exceptions
    "GapReviewError",
    "RequestRejectedError",
    "TransportError",
    "ProtocolError",
    "BackendReportedError",
    "InvalidPhaseTransitionError",
]
