"""taskfeed Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    CLOSED_STATUSES,
    HIGH_PRIORITY_ACTIONS,
    NOTIFICATION_TYPE_LABELS,
    REMINDER_TYPES,
    HistoryAction,
    NotificationType,
    Priority,
    TaskStage,
    TaskStatus,
    is_reminder_type,
)
from .history import (
    ACTION_DESCRIPTIONS,
    FieldChange,
    HistoryEntry,
    HistoryMetadata,
    StatusChange,
    TransferDetails,
)
from .notification import (
    MarkAllReadResult,
    Notification,
    NotificationPage,
    NotificationStats,
    Pagination,
)
from .task import Assignment, Task
from .user import UserProfile

__all__ = [
    # 枚举
    "HistoryAction",
    "NotificationType",
    "Priority",
    "TaskStatus",
    "TaskStage",
    "REMINDER_TYPES",
    "CLOSED_STATUSES",
    "HIGH_PRIORITY_ACTIONS",
    "NOTIFICATION_TYPE_LABELS",
    "is_reminder_type",
    # History
    "HistoryEntry",
    "FieldChange",
    "HistoryMetadata",
    "TransferDetails",
    "StatusChange",
    "ACTION_DESCRIPTIONS",
    # Notification
    "Notification",
    "NotificationPage",
    "Pagination",
    "MarkAllReadResult",
    "NotificationStats",
    # Task / User
    "Task",
    "Assignment",
    "UserProfile",
]
