"""通知内容渲染 -- 标题、正文、优先级、通知类型

所有按动作区分的行为都放在以 HistoryAction 为键的表中，
未登记的动作落到通用模板与 status_changed 类型。
"""

from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import Any

from .config import MESSAGE_MAX_LENGTH, TITLE_MAX_LENGTH
from .models.enums import HIGH_PRIORITY_ACTIONS, HistoryAction, NotificationType, Priority
from .models.history import HistoryEntry
from .models.task import Task

UNKNOWN_ACTOR = "Someone"
UNTITLED_TASK = "Untitled Task"


@dataclass(frozen=True)
class RenderedContent:
    """渲染结果"""

    title: str
    message: str
    priority: Priority


# 标题模板
TITLE_TEMPLATES: dict[HistoryAction, str] = {
    HistoryAction.CREATED: "New Task Created: {title}",
    HistoryAction.ASSIGNED: "Task Assigned: {title}",
    HistoryAction.STATUS_CHANGED: "Task Status Changed: {title}",
    HistoryAction.STAGE_CHANGED: "Task Stage Updated: {title}",
    HistoryAction.TRANSFERRED: "Task Transferred: {title}",
    HistoryAction.COMPLETED: "Task Completed: {title}",
    HistoryAction.APPROVED: "Task Approved: {title}",
    HistoryAction.REJECTED: "Task Rejected: {title}",
    HistoryAction.DEADLINE_CHANGED: "Deadline Changed: {title}",
    HistoryAction.PRIORITY_CHANGED: "Priority Changed: {title}",
    HistoryAction.ATTACHMENT_ADDED: "Attachment Added: {title}",
    HistoryAction.ATTACHMENT_REMOVED: "Attachment Removed: {title}",
}
DEFAULT_TITLE = "Task Updated: {title}"

# 固定正文模板（结构化动作由下方函数渲染）
MESSAGE_TEMPLATES: dict[HistoryAction, str] = {
    HistoryAction.ASSIGNED: 'You have been assigned to task "{title}" by {actor}',
    HistoryAction.TRANSFERRED: 'Task "{title}" has been transferred by {actor}',
    HistoryAction.COMPLETED: '{actor} marked task "{title}" as completed',
    HistoryAction.APPROVED: 'Task "{title}" has been approved by {actor}. Great work!',
    HistoryAction.REJECTED: (
        'Task "{title}" has been rejected by {actor}. Please check and resubmit.'
    ),
    HistoryAction.ATTACHMENT_ADDED: '{actor} added an attachment to task "{title}"',
    HistoryAction.ATTACHMENT_REMOVED: '{actor} removed an attachment from task "{title}"',
}
DEFAULT_MESSAGE = '{actor} updated task "{title}"'

# 动作 -> 通知类型
NOTIFICATION_TYPES: dict[HistoryAction, NotificationType] = {
    HistoryAction.CREATED: NotificationType.TASK_ASSIGNED,
    HistoryAction.ASSIGNED: NotificationType.TASK_ASSIGNED,
    HistoryAction.STATUS_CHANGED: NotificationType.STATUS_CHANGED,
    HistoryAction.STAGE_CHANGED: NotificationType.STAGE_CHANGED,
    HistoryAction.TRANSFERRED: NotificationType.TASK_TRANSFERRED,
    HistoryAction.COMPLETED: NotificationType.TASK_COMPLETED,
    HistoryAction.APPROVED: NotificationType.TASK_APPROVED,
    HistoryAction.REJECTED: NotificationType.TASK_REJECTED,
    HistoryAction.DEADLINE_CHANGED: NotificationType.STATUS_CHANGED,
    HistoryAction.PRIORITY_CHANGED: NotificationType.STATUS_CHANGED,
    HistoryAction.ATTACHMENT_ADDED: NotificationType.STATUS_CHANGED,
    HistoryAction.ATTACHMENT_REMOVED: NotificationType.STATUS_CHANGED,
}


def notification_type_for(action: HistoryAction) -> NotificationType:
    """动作对应的通知类型，未登记时为 status_changed"""
    return NOTIFICATION_TYPES.get(action, NotificationType.STATUS_CHANGED)


def notification_priority(action: HistoryAction, task_priority: Priority | None) -> Priority:
    """通知优先级：动作优先，其次继承任务的 urgent/high"""
    if action in HIGH_PRIORITY_ACTIONS:
        return Priority.HIGH
    if task_priority == Priority.URGENT:
        return Priority.URGENT
    if task_priority == Priority.HIGH:
        return Priority.HIGH
    return Priority.MEDIUM


def truncate(text: str, limit: int) -> str:
    """超长文本截断到 limit（含省略号）"""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def parse_moment(value: Any) -> datetime | None:
    """解析变更值中的时间，无法解析返回 None"""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str) and value:
        try:
            moment = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment


def format_locale_date(moment: datetime, tz: tzinfo) -> str:
    """日期格式 M/D/YYYY（无前导零）"""
    local = moment.astimezone(tz)
    return f"{local.month}/{local.day}/{local.year}"


def _new_value(entry: HistoryEntry) -> Any:
    if entry.changes is None:
        return None
    return entry.changes.new_value or None


def _created_message(entry: HistoryEntry, task: Task, actor: str, title: str, tz: tzinfo) -> str:
    priority = task.priority.value.upper() if task.priority else "Not set"
    return f'{actor} created a new task "{title}". Priority: {priority}'


def _status_message(entry: HistoryEntry, task: Task, actor: str, title: str, tz: tzinfo) -> str:
    change = entry.status_change
    if change is None:
        return f'{actor} updated the status of task "{title}"'
    from_status = change.from_status.upper() if change.from_status else "Unknown"
    to_status = change.to_status.upper() if change.to_status else "Unknown"
    return f'{actor} changed status of "{title}" from {from_status} to {to_status}'


def _stage_message(entry: HistoryEntry, task: Task, actor: str, title: str, tz: tzinfo) -> str:
    new_stage = _new_value(entry)
    if new_stage is None:
        return f'{actor} updated the stage of task "{title}"'
    new_stage = str(new_stage)
    if new_stage == "done":
        return f'{actor} marked task "{title}" as completed and ready for review'
    # 只替换第一个下划线
    label = new_stage.replace("_", " ", 1).upper()
    return f'{actor} changed stage of "{title}" to {label}'


def _deadline_message(entry: HistoryEntry, task: Task, actor: str, title: str, tz: tzinfo) -> str:
    moment = parse_moment(_new_value(entry))
    if moment is None:
        return f'{actor} updated the deadline of task "{title}"'
    return f'{actor} changed deadline of "{title}" to {format_locale_date(moment, tz)}'


def _priority_message(entry: HistoryEntry, task: Task, actor: str, title: str, tz: tzinfo) -> str:
    new_priority = _new_value(entry)
    if new_priority is None:
        return f'{actor} updated the priority of task "{title}"'
    return f'{actor} changed priority of "{title}" to {str(new_priority).upper()}'


MESSAGE_RENDERERS = {
    HistoryAction.CREATED: _created_message,
    HistoryAction.STATUS_CHANGED: _status_message,
    HistoryAction.STAGE_CHANGED: _stage_message,
    HistoryAction.DEADLINE_CHANGED: _deadline_message,
    HistoryAction.PRIORITY_CHANGED: _priority_message,
}


def render_content(
    entry: HistoryEntry,
    task: Task,
    actor_name: str | None,
    tz: tzinfo = UTC,
) -> RenderedContent:
    """根据历史记录与任务快照渲染通知内容

    Args:
        entry: 历史记录
        task: 任务快照
        actor_name: 操作者显示名，缺失时渲染为 Someone
        tz: 日期渲染时区
    """
    actor = actor_name or UNKNOWN_ACTOR
    title = task.title or UNTITLED_TASK

    title_template = TITLE_TEMPLATES.get(entry.action, DEFAULT_TITLE)
    renderer = MESSAGE_RENDERERS.get(entry.action)
    if renderer is not None:
        message = renderer(entry, task, actor, title, tz)
    else:
        template = MESSAGE_TEMPLATES.get(entry.action, DEFAULT_MESSAGE)
        message = template.format(actor=actor, title=title)

    return RenderedContent(
        title=truncate(title_template.format(title=title), TITLE_MAX_LENGTH),
        message=truncate(message, MESSAGE_MAX_LENGTH),
        priority=notification_priority(entry.action, task.priority),
    )


def render_reminder(
    notification_type: NotificationType,
    task: Task,
    tz: tzinfo = UTC,
) -> RenderedContent:
    """渲染截止/逾期提醒内容"""
    title = task.title or UNTITLED_TASK
    if notification_type == NotificationType.TASK_DEADLINE_REMINDER:
        deadline = format_locale_date(task.deadline, tz) if task.deadline else "Not set"
        heading = f"Deadline Reminder: {title}"
        message = f'Task "{title}" is due soon. Deadline: {deadline}'
    elif notification_type == NotificationType.TASK_OVERDUE:
        heading = f"Task Overdue: {title}"
        message = f'Task "{title}" is now overdue. Please complete it as soon as possible.'
    else:
        raise ValueError(f"不是提醒类通知: {notification_type}")
    return RenderedContent(
        title=truncate(heading, TITLE_MAX_LENGTH),
        message=truncate(message, MESSAGE_MAX_LENGTH),
        priority=Priority.MEDIUM,
    )
