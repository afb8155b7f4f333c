from .context import SyncContext
from .load import LoadReconciler, LoadResult, LoadSource, merge_snapshots
from .mutations import MutationReconciler
from .notices import Notice, NoticeBoard, NoticeKind
from .session import FALLBACK_REPLY, LifelogSession

__all__ = [
    "LifelogSession",
    "LoadReconciler",
    "LoadResult",
    "LoadSource",
    "MutationReconciler",
    "SyncContext",
    "Notice",
    "NoticeBoard",
    "NoticeKind",
    "merge_snapshots",
    "FALLBACK_REPLY",
]
