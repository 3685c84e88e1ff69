"""枚举定义 -- 历史动作、通知类型、优先级、任务状态/阶段

HistoryAction 是封闭枚举，是收件人解析、内容渲染、通知类型映射的唯一分派键。
"""

from enum import StrEnum


class HistoryAction(StrEnum):
    """任务历史动作（封闭集合，未知值在写入时拒绝）"""

    CREATED = "created"
    ASSIGNED = "assigned"
    STATUS_CHANGED = "status_changed"
    STAGE_CHANGED = "stage_changed"
    TRANSFERRED = "transferred"
    REMARK_ADDED = "remark_added"
    ATTACHMENT_ADDED = "attachment_added"
    ATTACHMENT_REMOVED = "attachment_removed"
    DEADLINE_CHANGED = "deadline_changed"
    PRIORITY_CHANGED = "priority_changed"
    COMPLETED = "completed"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(StrEnum):
    """通知类别"""

    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    TASK_APPROVED = "task_approved"
    TASK_REJECTED = "task_rejected"
    TASK_TRANSFERRED = "task_transferred"
    TASK_DEADLINE_REMINDER = "task_deadline_reminder"
    TASK_OVERDUE = "task_overdue"
    REMARK_ADDED = "remark_added"
    STATUS_CHANGED = "status_changed"
    STAGE_CHANGED = "stage_changed"
    SYSTEM_ANNOUNCEMENT = "system_announcement"


class Priority(StrEnum):
    """优先级（任务优先级与通知优先级共用同一取值集合）"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(StrEnum):
    """任务审批状态"""

    CREATED = "created"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    APPROVED = "approved"
    REJECTED = "rejected"
    TRANSFERRED = "transferred"
    PENDING = "pending"


class TaskStage(StrEnum):
    """任务执行阶段"""

    NOT_STARTED = "not_started"
    PENDING = "pending"
    DONE = "done"


# 提醒类通知：仅这些类型在创建时应用按天去重
REMINDER_TYPES: set[NotificationType] = {
    NotificationType.TASK_DEADLINE_REMINDER,
    NotificationType.TASK_OVERDUE,
}

# 已结束审批的状态，提醒扫描跳过
CLOSED_STATUSES: set[TaskStatus] = {
    TaskStatus.APPROVED,
    TaskStatus.REJECTED,
}

# 动作本身即升级为 high 的集合，优先于任务优先级
HIGH_PRIORITY_ACTIONS: set[HistoryAction] = {
    HistoryAction.COMPLETED,
    HistoryAction.APPROVED,
    HistoryAction.REJECTED,
    HistoryAction.TRANSFERRED,
}

# 通知类型展示标签
NOTIFICATION_TYPE_LABELS: dict[NotificationType, str] = {
    NotificationType.TASK_ASSIGNED: "Task Assigned",
    NotificationType.TASK_COMPLETED: "Task Completed",
    NotificationType.TASK_APPROVED: "Task Approved",
    NotificationType.TASK_REJECTED: "Task Rejected",
    NotificationType.TASK_TRANSFERRED: "Task Transferred",
    NotificationType.TASK_DEADLINE_REMINDER: "Deadline Reminder",
    NotificationType.TASK_OVERDUE: "Task Overdue",
    NotificationType.STATUS_CHANGED: "Status Changed",
    NotificationType.STAGE_CHANGED: "Stage Changed",
    NotificationType.SYSTEM_ANNOUNCEMENT: "System Announcement",
}


def is_reminder_type(notification_type: NotificationType) -> bool:
    """判断通知类型是否为提醒类（需按天去重）"""
    return notification_type in REMINDER_TYPES
