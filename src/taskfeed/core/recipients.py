"""收件人解析 -- 按 HistoryAction 分派的纯函数

给定历史记录与任务快照，计算需要通知的用户集合。
操作者本人永远不在结果中。
"""

from collections.abc import Callable

import structlog

from .models.enums import HistoryAction
from .models.history import HistoryEntry
from .models.task import Task

log = structlog.get_logger()

RecipientRule = Callable[[HistoryEntry, Task], set[str]]


def _assignees(entry: HistoryEntry, task: Task) -> set[str]:
    return set(task.assignee_ids)


def _creator(entry: HistoryEntry, task: Task) -> set[str]:
    return {task.created_by} if task.created_by else set()


def _creator_and_assignees(entry: HistoryEntry, task: Task) -> set[str]:
    return _creator(entry, task) | _assignees(entry, task)


def _transfer_parties(entry: HistoryEntry, task: Task) -> set[str]:
    details = entry.transfer_details
    if details is None:
        return set()
    return {user for user in (details.to_user, details.from_user) if user}


def _nobody(entry: HistoryEntry, task: Task) -> set[str]:
    return set()


RECIPIENT_RULES: dict[HistoryAction, RecipientRule] = {
    HistoryAction.CREATED: _assignees,
    HistoryAction.ASSIGNED: _assignees,
    HistoryAction.STATUS_CHANGED: _creator_and_assignees,
    HistoryAction.STAGE_CHANGED: _creator,
    HistoryAction.TRANSFERRED: _transfer_parties,
    HistoryAction.COMPLETED: _creator_and_assignees,
    HistoryAction.APPROVED: _creator_and_assignees,
    HistoryAction.REJECTED: _creator_and_assignees,
    HistoryAction.DEADLINE_CHANGED: _assignees,
    HistoryAction.PRIORITY_CHANGED: _assignees,
    HistoryAction.ATTACHMENT_ADDED: _creator_and_assignees,
    HistoryAction.ATTACHMENT_REMOVED: _creator_and_assignees,
    # 备注只记录不通知
    HistoryAction.REMARK_ADDED: _nobody,
}


def resolve_recipients(entry: HistoryEntry, task: Task) -> set[str]:
    """计算一条历史记录的收件人（已排除操作者）

    未登记规则的动作返回空集合，并记录 unmapped_action 便于排查。
    """
    rule = RECIPIENT_RULES.get(entry.action)
    if rule is None:
        log.warning(
            "unmapped_action",
            action=str(entry.action),
            history_id=entry.history_id,
            task_id=entry.task_id,
        )
        return set()
    recipients = rule(entry, task)
    recipients.discard(entry.performed_by)
    return recipients
