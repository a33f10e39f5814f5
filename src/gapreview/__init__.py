"""GapReview - 需求差距分析流式客户端

将后端以 SSE 流式返回的逐条差距分析结果合并到本地状态，
维护选择聚合与阶段状态，为下游派发准备数据。
"""

from gapreview.callbacks import CompositeCallback, LoggingCallback, NullCallback, SessionCallback
from gapreview.classifier import NoGapClassifier, is_no_gap
from gapreview.client import GapAnalysisClient
from gapreview.core import (
    BackendReportedError,
    GapReviewError,
    GapReviewSettings,
    InvalidPhaseTransitionError,
    ProtocolError,
    RequestRejectedError,
    TransportError,
    get_settings,
)
from gapreview.models import AnalysisItem, Complexity, GapResult, ItemStatus
from gapreview.phase import Phase, PhaseStateMachine
from gapreview.selection import SelectionAggregator, SelectionState
from gapreview.session import SessionOutcome, StreamSession
from gapreview.store import DuplicatePolicy, GapCollectionStore
from gapreview.workflow import GapWorkflow

__version__ = "0.1.0"

__all__ = [
    # Models
    "AnalysisItem",
    "Complexity",
    "GapResult",
    "ItemStatus",
    # Core state
    "DuplicatePolicy",
    "GapCollectionStore",
    "Phase",
    "PhaseStateMachine",
    "SelectionAggregator",
    "SelectionState",
    # Session
    "GapAnalysisClient",
    "SessionOutcome",
    "StreamSession",
    "GapWorkflow",
    # Classifier
    "NoGapClassifier",
    "is_no_gap",
    # Callbacks
    "SessionCallback",
    "NullCallback",
    "CompositeCallback",
    "LoggingCallback",
    # Config / errors
    "GapReviewSettings",
    "get_settings",
    "GapReviewError",
    "RequestRejectedError",
    "TransportError",
    "ProtocolError",
    "BackendReportedError",
    "InvalidPhaseTransitionError",
]
